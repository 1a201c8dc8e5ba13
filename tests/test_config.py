"""Tests for the configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

from career_planner.config import Config, _apply_env_overrides, _apply_toml, load_config


def test_config_defaults():
	"""Config should have sensible defaults."""
	config = Config()
	assert config.config_dir.is_absolute()
	assert config.data_dir.is_absolute()
	assert config.db_path == config.data_dir / "career_planner.db"
	assert config.log_dir == config.data_dir / "logs"
	assert config.debounce_seconds == 2.0
	assert config.max_canvases == 3
	assert config.atomic_reorder is True


def test_config_env_overrides():
	"""Environment variables should override defaults."""
	config = Config()
	with patch.dict(os.environ, {
		"CAREER_PLANNER_DATA_DIR": "/tmp/test-data",
		"CAREER_PLANNER_CONFIG_DIR": "/tmp/test-config",
		"CAREER_PLANNER_DEBOUNCE_SECONDS": "0.5",
		"CAREER_PLANNER_MAX_CANVASES": "5",
		"CAREER_PLANNER_ATOMIC_REORDER": "0",
	}):
		config = _apply_env_overrides(config)
		assert config.data_dir == Path("/tmp/test-data")
		assert config.config_dir == Path("/tmp/test-config")
		# Derived paths should be recomputed
		assert config.db_path == Path("/tmp/test-data/career_planner.db")
		assert config.debounce_seconds == 0.5
		assert config.max_canvases == 5
		assert config.atomic_reorder is False


def test_config_atomic_reorder_env_truthy_values():
	for value in ("1", "true", "yes", "on"):
		config = Config()
		with patch.dict(os.environ, {"CAREER_PLANNER_ATOMIC_REORDER": value}):
			assert _apply_env_overrides(config).atomic_reorder is True


def test_config_toml_overrides(tmp_path: Path):
	"""config.toml values should be applied."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text(
		'debounce_seconds = 1.5\nmax_canvases = 4\natomic_reorder = false\n'
	)
	config = _apply_toml(Config(config_dir=config_dir, data_dir=tmp_path / "data"))
	assert config.debounce_seconds == 1.5
	assert config.max_canvases == 4
	assert config.atomic_reorder is False


def test_config_ensure_dirs(tmp_path: Path):
	"""ensure_dirs should create all required directories."""
	config = Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
	)
	config.ensure_dirs()
	assert config.config_dir.exists()
	assert config.data_dir.exists()
	assert config.log_dir.exists()


def test_load_config_applies_env_and_creates_dirs(tmp_path: Path):
	with patch.dict(os.environ, {
		"CAREER_PLANNER_CONFIG_DIR": str(tmp_path / "config"),
		"CAREER_PLANNER_DATA_DIR": str(tmp_path / "data"),
		"CAREER_PLANNER_MAX_CANVASES": "7",
	}):
		config = load_config()
	assert config.max_canvases == 7
	assert config.data_dir == tmp_path / "data"
	assert config.data_dir.exists()
	assert config.log_dir.exists()
