"""Tests for the CLI module."""

import argparse
import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from career_planner.cli import _check_config_toml, cmd_doctor, cmd_plan, main
from career_planner.errors import NotFoundError


def _run_main(*argv: str) -> None:
	with patch("sys.argv", ["career-planner", *argv]), patch("career_planner.cli.setup_logging"):
		main()


def test_no_command_prints_help_and_exits_1():
	with pytest.raises(SystemExit) as exc_info:
		_run_main()
	assert exc_info.value.code == 1


@pytest.mark.parametrize("argv", [
	("serve", "--help"),
	("doctor", "--help"),
	("plan", "--help"),
	("plan", "show", "--help"),
	("plan", "create", "--help"),
	("plan", "list", "--help"),
])
def test_subparsers_registered(argv):
	with pytest.raises(SystemExit) as exc_info:
		_run_main(*argv)
	assert exc_info.value.code == 0


def test_plan_create_dispatches():
	with patch("career_planner.cli._create_plan", AsyncMock()) as create:
		_run_main("plan", "create", "user-1", "Analyst to PM", "2025-01-06")
	create.assert_awaited_once_with("user-1", "Analyst to PM", "2025-01-06")


def test_plan_show_dispatches_summary_flag():
	with patch("career_planner.cli._show_plan", AsyncMock()) as show:
		_run_main("plan", "show", "plan-1", "--summary")
	show.assert_awaited_once_with("plan-1", True)


def test_plan_without_action_exits_1(capsys):
	with pytest.raises(SystemExit) as exc_info:
		cmd_plan(argparse.Namespace(plan_action=None))
	assert exc_info.value.code == 1
	assert "Usage" in capsys.readouterr().out


def test_plan_show_missing_plan_exits_1(capsys):
	args = argparse.Namespace(plan_action="show", plan_id="missing", summary=False)
	with patch("career_planner.cli._show_plan", AsyncMock(side_effect=NotFoundError("plan", "missing"))):
		with pytest.raises(SystemExit) as exc_info:
			cmd_plan(args)
	assert exc_info.value.code == 1
	assert "Plan not found: missing" in capsys.readouterr().out


class TestCheckConfigToml:
	"""Tests for config.toml validation."""

	def test_missing_toml(self, tmp_path: Path):
		status, issue = _check_config_toml(tmp_path)
		assert "not found" in status
		assert issue is None

	def test_valid_toml(self, tmp_path: Path):
		(tmp_path / "config.toml").write_text("debounce_seconds = 1.0\n")
		status, issue = _check_config_toml(tmp_path)
		assert status == "valid"
		assert issue is None

	def test_invalid_toml(self, tmp_path: Path):
		(tmp_path / "config.toml").write_text("this is [not valid toml\n")
		status, issue = _check_config_toml(tmp_path)
		assert "INVALID" in status
		assert issue is not None


class TestDoctor:
	"""Tests for the doctor command."""

	@pytest.fixture
	def env(self, tmp_path: Path):
		with patch.dict(os.environ, {
			"CAREER_PLANNER_CONFIG_DIR": str(tmp_path / "config"),
			"CAREER_PLANNER_DATA_DIR": str(tmp_path / "data"),
		}):
			yield

	def test_doctor_passes(self, env, capsys):
		with patch("career_planner.cli._check_server_startup", return_value=("OK (3 tools registered)", None)):
			cmd_doctor(argparse.Namespace())
		out = capsys.readouterr().out
		assert "All checks passed." in out
		assert "atomic_reorder:" in out

	def test_doctor_exits_1_on_issues(self, env):
		"""Doctor should exit(1) when there are issues."""
		with (
			patch("career_planner.cli.pkg_version", side_effect=Exception("nope")),
			patch("career_planner.cli._check_server_startup", return_value=("OK", None)),
		):
			with pytest.raises(SystemExit) as exc_info:
				cmd_doctor(argparse.Namespace())
			assert exc_info.value.code == 1
