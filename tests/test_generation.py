"""Tests for milestone generation from a canvas."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError as SchemaError

from career_planner.canvas.linker import CanvasPlanLinker
from career_planner.canvas.models import SECTION_FIELDS
from career_planner.canvas.store import CanvasStore
from career_planner.errors import LinkConflictError, TransportError, ValidationError
from career_planner.generation import (
	GeneratedMilestone,
	PlanFromCanvas,
	apply_generated_milestones,
	build_canvas_context,
)
from career_planner.plans.store import PlanStore

from .helpers import by_week, filled_sections, open_memory_db


@pytest.fixture
async def db():
	database = await open_memory_db()
	yield database
	await database.close()


@pytest.fixture
def plans(db):
	return PlanStore(db)


@pytest.fixture
def canvases(db):
	return CanvasStore(db)


@pytest.fixture
def linker(canvases, plans):
	return CanvasPlanLinker(canvases, plans)


def _weeks(*titles: str) -> list[GeneratedMilestone]:
	return [GeneratedMilestone(week=i + 1, title=t) for i, t in enumerate(titles)]


# -- context --

def test_context_skips_blank_sections_and_labels_the_rest():
	context = build_canvas_context({
		"section_1_helpers": "Nonprofits",
		"section_2_activities": "  ",
		"section_6_skills": "Grant writing",
	})
	assert context == "Who I Help: Nonprofits\n\nSkills I Need: Grant writing"


def test_context_follows_section_order():
	context = build_canvas_context({key: "x" for key in reversed(SECTION_FIELDS)})
	assert context.startswith("Who I Help: x")
	assert context.endswith("Outcomes I Want: x")


# -- applying results --

class TestApplyGenerated:
	"""Tests for writing generated titles into milestones."""

	@pytest.mark.asyncio
	async def test_titles_match_by_week_not_position(self, plans):
		plan = await plans.create("user-1", "Plan", date(2025, 1, 6))
		weeks = by_week(plan)
		# Move week 3 to the top first
		await plans.milestones.update(weeks[3], {"order_index": 0})
		await plans.milestones.update(weeks[1], {"order_index": 2})

		await apply_generated_milestones(plans.milestones, plan.id, [
			GeneratedMilestone(week=3, title="Shadow a PM"),
			GeneratedMilestone(week=1, title="Map your network"),
		])

		assert (await plans.milestones.get(weeks[3])).goal == "Shadow a PM"
		assert (await plans.milestones.get(weeks[1])).goal == "Map your network"
		assert (await plans.milestones.get(weeks[3])).order_index == 0

	@pytest.mark.asyncio
	async def test_long_titles_are_truncated(self, plans):
		plan = await plans.create("user-1", "Plan", date(2025, 1, 6))
		updated = await apply_generated_milestones(
			plans.milestones, plan.id, [GeneratedMilestone(week=2, title="t" * 260)],
		)
		assert len(updated[0].goal) == 200

	@pytest.mark.asyncio
	async def test_missing_weeks_keep_their_goal(self, plans):
		plan = await plans.create("user-1", "Plan", date(2025, 1, 6))
		weeks = by_week(plan)
		await plans.milestones.update(weeks[12], {"goal": "Keep me"})

		await apply_generated_milestones(plans.milestones, plan.id, _weeks("A", "B"))
		assert (await plans.milestones.get(weeks[12])).goal == "Keep me"

	def test_week_out_of_range_is_rejected_by_schema(self):
		with pytest.raises(SchemaError):
			GeneratedMilestone(week=13, title="Too late")


class TestPlanFromCanvas:
	"""Tests for plan creation wired to a canvas."""

	@pytest.mark.asyncio
	async def test_create_links_and_generates(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path", sections=filled_sections())
		generator = AsyncMock(return_value=_weeks(*(f"Week {i} goal" for i in range(1, 13))))

		plan = await PlanFromCanvas(plans, linker, generator).create(canvas.id, "PM plan", date(2025, 1, 6))

		generator.assert_awaited_once_with(canvas.sections(), plan.id)
		assert [m.goal for m in plan.milestones] == [f"Week {i} goal" for i in range(1, 13)]
		assert (await canvases.get(canvas.id)).plan_id == plan.id

	@pytest.mark.asyncio
	async def test_sparse_canvas_is_rejected_before_creating_a_plan(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path", sections={"section_1_helpers": "Me"})
		generator = AsyncMock()

		with pytest.raises(ValidationError):
			await PlanFromCanvas(plans, linker, generator).create(canvas.id, "PM plan", date(2025, 1, 6))

		generator.assert_not_awaited()
		assert await plans.list_plans("user-1") == []

	@pytest.mark.asyncio
	async def test_missing_generator_is_rejected_before_creating_a_plan(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path", sections=filled_sections())

		with pytest.raises(ValidationError):
			await PlanFromCanvas(plans, linker).create(canvas.id, "PM plan", date(2025, 1, 6))

		assert await plans.list_plans("user-1") == []
		assert (await canvases.get(canvas.id)).plan_id is None
		assert await linker.can_create_plan_for_canvas(canvas.id) is True

	@pytest.mark.asyncio
	async def test_create_without_generation(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path")
		plan = await PlanFromCanvas(plans, linker).create(canvas.id, "PM plan", "2025-01-06", generate=False)

		assert all(m.goal == "" for m in plan.milestones)
		assert (await canvases.get(canvas.id)).plan_id == plan.id

	@pytest.mark.asyncio
	async def test_linked_canvas_refuses_second_plan(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path")
		builder = PlanFromCanvas(plans, linker)
		await builder.create(canvas.id, "First", date(2025, 1, 6), generate=False)

		with pytest.raises(LinkConflictError):
			await builder.create(canvas.id, "Second", date(2025, 4, 7), generate=False)
		assert len(await plans.list_plans("user-1")) == 1

	@pytest.mark.asyncio
	async def test_generator_failure_propagates_and_keeps_plan(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path", sections=filled_sections())
		generator = AsyncMock(side_effect=TransportError("generator unavailable"))

		with pytest.raises(TransportError):
			await PlanFromCanvas(plans, linker, generator).create(canvas.id, "PM plan", date(2025, 1, 6))

		generator.assert_awaited_once()
		saved = await plans.list_plans("user-1")
		assert len(saved) == 1
		assert (await canvases.get(canvas.id)).plan_id == saved[0].id

	@pytest.mark.asyncio
	async def test_lost_link_race_removes_new_plan(self, canvases, plans, linker):
		canvas = await canvases.create("user-1", "PM path")

		with patch.object(linker, "link_canvas_to_plan", AsyncMock(side_effect=LinkConflictError("taken"))):
			with pytest.raises(LinkConflictError):
				await PlanFromCanvas(plans, linker).create(canvas.id, "PM plan", date(2025, 1, 6), generate=False)

		assert await plans.list_plans("user-1") == []
