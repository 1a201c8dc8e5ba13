"""Tests for milestone field updates and their validation."""

from datetime import date
from unittest.mock import patch

import pytest

from career_planner.errors import AtomicReorderUnavailable, NotFoundError, ValidationError
from career_planner.plans.milestone_store import MilestoneStore
from career_planner.plans.models import (
	MilestoneStatus,
	next_status,
	plan_progress,
	validate_milestone_update,
)
from career_planner.plans.store import PlanStore

from .helpers import by_week, open_memory_db


@pytest.fixture
async def db():
	database = await open_memory_db()
	yield database
	await database.close()


@pytest.fixture
async def plan_store(db):
	return PlanStore(db)


@pytest.fixture
async def plan(plan_store):
	return await plan_store.create("user-1", "Analyst to PM", date(2025, 1, 6))


# -- validation --

def test_goal_at_limit_is_accepted():
	values = validate_milestone_update({"goal": "x" * 200})
	assert len(values["goal"]) == 200


def test_goal_over_limit_is_rejected():
	with pytest.raises(ValidationError) as exc_info:
		validate_milestone_update({"goal": "x" * 201})
	assert exc_info.value.field == "goal"


@pytest.mark.parametrize("fields", [{"goal": 42}, {"notes": ["a"]}])
def test_non_text_goal_or_notes_is_rejected(fields):
	with pytest.raises(ValidationError) as exc_info:
		validate_milestone_update(fields)
	assert exc_info.value.field == next(iter(fields))


def test_unknown_field_is_rejected():
	with pytest.raises(ValidationError):
		validate_milestone_update({"week_number": 3})


def test_invalid_status_is_rejected():
	with pytest.raises(ValidationError) as exc_info:
		validate_milestone_update({"status": "blocked"})
	assert exc_info.value.field == "status"


@pytest.mark.parametrize("idx", [-1, 12, "3", True])
def test_invalid_order_index_is_rejected(idx):
	with pytest.raises(ValidationError):
		validate_milestone_update({"order_index": idx})


def test_status_is_normalized_to_value():
	values = validate_milestone_update({"status": MilestoneStatus.COMPLETED})
	assert values["status"] == "completed"


def test_next_status_cycle():
	assert next_status(MilestoneStatus.NOT_STARTED) == MilestoneStatus.IN_PROGRESS
	assert next_status(MilestoneStatus.IN_PROGRESS) == MilestoneStatus.COMPLETED
	assert next_status("completed") == MilestoneStatus.NOT_STARTED


# -- store --

class TestMilestoneUpdate:
	"""Tests for MilestoneStore.update."""

	@pytest.mark.asyncio
	async def test_update_goal_notes_status(self, plan_store, plan):
		milestone_id = by_week(plan)[3]
		updated = await plan_store.milestones.update(milestone_id, {
			"goal": "Finish SQL course",
			"notes": "Evenings only",
			"status": "in_progress",
		})

		assert updated.goal == "Finish SQL course"
		assert updated.notes == "Evenings only"
		assert updated.status == MilestoneStatus.IN_PROGRESS
		assert updated.week_number == 3
		assert updated.order_index == 2

	@pytest.mark.asyncio
	async def test_goal_of_exactly_200_characters_persists(self, plan_store, plan):
		milestone_id = by_week(plan)[1]
		updated = await plan_store.milestones.update(milestone_id, {"goal": "g" * 200})
		assert len(updated.goal) == 200

	@pytest.mark.asyncio
	async def test_250_character_goal_never_reaches_database(self, plan_store, plan, db):
		"""A too-long goal fails before any statement is executed."""
		milestone_id = by_week(plan)[1]
		with patch.object(db, "execute", wraps=db.execute) as execute:
			with pytest.raises(ValidationError):
				await plan_store.milestones.update(milestone_id, {"goal": "g" * 250})
			execute.assert_not_called()

		reloaded = await plan_store.milestones.get(milestone_id)
		assert reloaded.goal == ""

	@pytest.mark.asyncio
	async def test_any_status_transition_is_allowed(self, plan_store, plan):
		milestone_id = by_week(plan)[5]
		updated = await plan_store.milestones.update(milestone_id, {"status": "completed"})
		assert updated.status == MilestoneStatus.COMPLETED
		updated = await plan_store.milestones.update(milestone_id, {"status": "not_started"})
		assert updated.status == MilestoneStatus.NOT_STARTED

	@pytest.mark.asyncio
	async def test_update_missing_milestone(self, plan_store):
		with pytest.raises(NotFoundError):
			await plan_store.milestones.update("missing", {"goal": "x"})

	@pytest.mark.asyncio
	async def test_update_leaves_other_milestones_alone(self, plan_store, plan):
		weeks = by_week(plan)
		await plan_store.milestones.update(weeks[2], {"goal": "Only me"})
		reloaded = await plan_store.get(plan.id)
		assert [m.goal for m in reloaded.milestones if m.id != weeks[2]] == [""] * 11

	@pytest.mark.asyncio
	async def test_progress_reflects_statuses(self, plan_store, plan):
		weeks = by_week(plan)
		await plan_store.milestones.update(weeks[1], {"status": "completed"})
		await plan_store.milestones.update(weeks[2], {"status": "completed"})
		await plan_store.milestones.update(weeks[3], {"status": "completed"})
		await plan_store.milestones.update(weeks[4], {"status": "in_progress"})

		reloaded = await plan_store.get(plan.id)
		progress = plan_progress(reloaded.milestones)
		assert progress == {"total": 12, "completed": 3, "in_progress": 1, "percent_complete": 25.0}


class TestAtomicReorderSwitch:
	"""Tests for the atomic reorder primitive being disabled."""

	@pytest.mark.asyncio
	async def test_disabled_store_raises_unavailable(self, db, plan):
		store = MilestoneStore(db, atomic_reorder=False)
		with pytest.raises(AtomicReorderUnavailable):
			await store.reorder_atomic(plan.id, [m.id for m in plan.milestones])
