"""Plan and milestone tools."""

import json
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..config import Config
from ..errors import PartialReorderFailure, PlannerError, ValidationError
from ..plans.models import MilestoneStatus, SubmissionStatus, next_status, validate_milestone_update
from ..plans.reorder import ReorderCoordinator
from ..plans.store import get_plan_store


def _split_ids(value: str) -> list[str]:
	return [part.strip() for part in value.split(",") if part.strip()]


def register_plans_tools(mcp: FastMCP, config: Config) -> None:
	"""Register plan management tools."""

	@mcp.tool()
	async def create_plan(owner_id: str, title: str, start_date: str) -> str:
		"""
		Create a 12-week plan with twelve blank weekly milestones.

		Args:
			owner_id: Owner of the plan
			title: Plan title
			start_date: First day of week 1 (YYYY-MM-DD)
		"""
		store = await get_plan_store()
		try:
			plan = await store.create(owner_id, title, start_date)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"plan_id": plan.id,
			"start_date": plan.start_date.isoformat(),
			"end_date": plan.end_date.isoformat(),
			"milestone_count": len(plan.milestones),
		}, indent=2)

	@mcp.tool()
	async def get_plan(plan_id: str) -> str:
		"""
		Get a plan with its milestones in display order.

		Args:
			plan_id: The plan ID
		"""
		store = await get_plan_store()
		try:
			plan = await store.get(plan_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"plan": plan.model_dump(mode="json"),
			"progress": plan.get_progress(),
			"markdown": plan.to_markdown(),
		}, indent=2)

	@mcp.tool()
	async def list_plans(owner_id: str) -> str:
		"""
		List an owner's plans, newest first.

		Args:
			owner_id: Owner ID
		"""
		store = await get_plan_store()
		plans = await store.list_plans(owner_id)
		return json.dumps({
			"plans": [
				{
					"id": p.id,
					"title": p.title,
					"start_date": p.start_date.isoformat(),
					"end_date": p.end_date.isoformat(),
					"submission_status": p.submission_status.value,
					"sequence_number": p.sequence_number,
					"progress": p.get_progress(),
				}
				for p in plans
			],
			"count": len(plans),
		}, indent=2)

	@mcp.tool()
	async def update_plan(plan_id: str, title: str = "", start_date: str = "") -> str:
		"""
		Edit a plan's title and/or start date. Empty values are left unchanged.

		Args:
			plan_id: Plan ID
			title: New title
			start_date: New start date (YYYY-MM-DD); end date follows
		"""
		store = await get_plan_store()
		try:
			plan = await store.update_plan(plan_id, title=title or None, start_date=start_date or None)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"plan_id": plan.id,
			"title": plan.title,
			"start_date": plan.start_date.isoformat(),
			"end_date": plan.end_date.isoformat(),
		}, indent=2)

	@mcp.tool()
	async def set_submission_status(plan_id: str, status: str) -> str:
		"""
		Set a plan's mentor review status.

		Args:
			plan_id: Plan ID
			status: draft, submitted, under_review or approved
		"""
		store = await get_plan_store()
		try:
			plan = await store.update_submission_status(plan_id, status)
		except ValidationError as e:
			return json.dumps({
				"error": str(e),
				"valid_statuses": [s.value for s in SubmissionStatus],
			})
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"plan_id": plan.id,
			"submission_status": plan.submission_status.value,
		}, indent=2)

	@mcp.tool()
	async def delete_plan(plan_id: str) -> str:
		"""
		Delete a plan and its milestones. Deleting a missing plan succeeds.

		Args:
			plan_id: Plan ID
		"""
		store = await get_plan_store()
		try:
			await store.delete(plan_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"success": True, "plan_id": plan_id}, indent=2)

	@mcp.tool()
	async def update_milestone(
		milestone_id: str,
		goal: Optional[str] = None,
		notes: Optional[str] = None,
		status: Optional[str] = None,
	) -> str:
		"""
		Update a milestone's goal, notes and/or status.

		Args:
			milestone_id: Milestone ID
			goal: Week goal (max 200 characters)
			notes: Free-form notes
			status: not_started, in_progress or completed
		"""
		fields = {
			key: value
			for key, value in {"goal": goal, "notes": notes, "status": status}.items()
			if value is not None
		}
		try:
			values = validate_milestone_update(fields)
		except ValidationError as e:
			result = {"error": str(e), "field": e.field}
			if e.field == "status":
				result["valid_statuses"] = [s.value for s in MilestoneStatus]
			return json.dumps(result)

		store = await get_plan_store()
		try:
			milestone = await store.milestones.update(milestone_id, values)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({"success": True, "milestone": milestone.model_dump(mode="json")}, indent=2)

	@mcp.tool()
	async def cycle_milestone_status(milestone_id: str) -> str:
		"""
		Move a milestone to its next status (not_started -> in_progress -> completed -> not_started).

		Args:
			milestone_id: Milestone ID
		"""
		store = await get_plan_store()
		try:
			current = await store.milestones.get(milestone_id)
			milestone = await store.milestones.update(
				milestone_id, {"status": next_status(current.status).value},
			)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"milestone_id": milestone.id,
			"previous_status": current.status.value,
			"status": milestone.status.value,
		}, indent=2)

	@mcp.tool()
	async def reorder_milestones(plan_id: str, milestone_ids: str) -> str:
		"""
		Set the display order of a plan's milestones.

		Args:
			plan_id: Plan ID
			milestone_ids: Comma-separated milestone IDs in the new order (all twelve)
		"""
		store = await get_plan_store()
		coordinator = ReorderCoordinator(store.milestones)
		try:
			path = await coordinator.reorder(plan_id, _split_ids(milestone_ids))
		except PartialReorderFailure as e:
			plan = await store.get(plan_id)
			return json.dumps({
				"error": str(e),
				"failed_ids": e.failed_ids,
				"stored_order": [m.id for m in plan.milestones],
			})
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		plan = await store.get(plan_id)
		return json.dumps({
			"success": True,
			"plan_id": plan_id,
			"path": path.value,
			"weeks_in_order": [m.week_number for m in plan.milestones],
		}, indent=2)

	@mcp.tool()
	async def create_continuation_plan(plan_id: str, title: str, owner_id: str = "") -> str:
		"""
		Create the plan that continues an existing one, starting the day after it ends.

		Args:
			plan_id: Plan to continue
			title: Title of the new plan
			owner_id: Caller; must be the parent plan's owner (defaults to it)
		"""
		store = await get_plan_store()
		try:
			parent = await store.get(plan_id)
			plan = await store.create_continuation(owner_id or parent.owner_id, parent.id, title)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"plan_id": plan.id,
			"parent_plan_id": parent.id,
			"sequence_number": plan.sequence_number,
			"start_date": plan.start_date.isoformat(),
			"end_date": plan.end_date.isoformat(),
		}, indent=2)
