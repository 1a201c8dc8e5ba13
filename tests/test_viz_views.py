"""Tests for visualizer Rich views."""

from datetime import date

from rich.console import Console

from career_planner.plans.models import Milestone, MilestoneStatus, Plan
from career_planner.visualizer.plan_progress import render_plan_progress, render_plan_summary


def _make_plan(**overrides) -> Plan:
	milestones = [
		Milestone(
			id=f"m-{week}",
			plan_id="plan-1",
			week_number=week,
			order_index=12 - week,
			goal=f"Goal for week {week}" if week <= 3 else "",
			status=MilestoneStatus.COMPLETED if week <= 2 else MilestoneStatus.NOT_STARTED,
		)
		for week in range(1, 13)
	]
	fields = dict(
		id="plan-1",
		owner_id="user-1",
		title="Analyst to PM",
		start_date=date(2025, 1, 6),
		end_date=date(2025, 3, 31),
		milestones=sorted(milestones, key=lambda m: m.order_index),
	)
	fields.update(overrides)
	return Plan(**fields)


def _console() -> Console:
	return Console(record=True, width=120)


def test_render_plan_progress_lists_weeks_in_display_order():
	console = _console()
	render_plan_progress(_make_plan(), console=console)
	output = console.export_text()

	assert "Analyst to PM" in output
	assert "2/12 weeks" in output
	assert output.index("Goal for week 3") < output.index("Goal for week 1")
	assert "2025-01-06" in output


def test_render_plan_summary():
	console = _console()
	render_plan_summary(_make_plan(parent_plan_id="plan-0", sequence_number=2), console=console)
	output = console.export_text()

	assert "2025-01-06 to 2025-03-31" in output
	assert "Continues: plan-0 (part 2)" in output
	assert "2/12 weeks (17%)" in output


def test_plan_to_markdown():
	markdown = _make_plan().to_markdown()
	assert markdown.startswith("# Analyst to PM")
	assert "- [x] Week 1: Goal for week 1" in markdown
	assert "- [ ] Week 12: _(no goal yet)_" in markdown
