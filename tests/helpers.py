"""Shared test fixtures and helpers for career-planner tests."""

from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

from career_planner.canvas.models import SECTION_FIELDS
from career_planner.config import Config
from career_planner.database import Database
from career_planner.plans.models import Plan


async def open_memory_db() -> Database:
	"""An initialized in-memory database."""
	db = Database(":memory:")
	await db.init()
	return db


def make_config(tmp_path: Path, **overrides) -> Config:
	"""A Config rooted in a temp dir."""
	return Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
		**overrides,
	)


def capture_tools(config: MagicMock, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Mock config object to pass to the registration function
		register_fn: The registration function (e.g., register_plans_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config)
	return captured


def by_week(plan: Plan) -> dict:
	"""Map week_number -> milestone id."""
	return {m.week_number: m.id for m in plan.milestones}


def ids_for_weeks(plan: Plan, weeks: list[int]) -> list[str]:
	"""Milestone ids of a plan, in the given week-label order."""
	lookup = by_week(plan)
	return [lookup[w] for w in weeks]


def filled_sections(text: str = "Early-career analysts moving into product roles") -> dict:
	"""All nine canvas sections filled with realistic text."""
	return {key: f"{text} ({i + 1})" for i, key in enumerate(SECTION_FIELDS)}
