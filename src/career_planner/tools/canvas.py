"""Canvas tools, including canvas-plan linking and milestone generation results."""

import json

from mcp.server.fastmcp import FastMCP
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from ..canvas.linker import CanvasPlanLinker
from ..canvas.store import get_canvas_store
from ..config import Config
from ..errors import PlannerError
from ..generation import GeneratedMilestone, PlanFromCanvas, apply_generated_milestones
from ..plans.store import get_plan_store

_generated_list = TypeAdapter(list[GeneratedMilestone])


def _parse_json_object(value: str, name: str) -> dict:
	try:
		data = json.loads(value) if value else {}
	except json.JSONDecodeError as e:
		raise ValueError(f"{name} is not valid JSON: {e}")
	if not isinstance(data, dict):
		raise ValueError(f"{name} must be a JSON object")
	return data


def register_canvas_tools(mcp: FastMCP, config: Config) -> None:
	"""Register canvas tools."""

	async def _linker() -> CanvasPlanLinker:
		return CanvasPlanLinker(await get_canvas_store(), await get_plan_store())

	@mcp.tool()
	async def create_canvas(
		owner_id: str,
		name: str,
		target_role: str = "",
		current_role: str = "",
		sections: str = "",
	) -> str:
		"""
		Create a career canvas.

		Args:
			owner_id: Owner of the canvas
			name: Canvas name
			target_role: Role the owner is aiming for
			current_role: Owner's current role
			sections: Optional JSON object of section_1_helpers..section_9_outcomes
		"""
		store = await get_canvas_store()
		try:
			section_values = _parse_json_object(sections, "sections")
			canvas = await store.create(
				owner_id,
				name,
				target_role=target_role or None,
				current_role=current_role or None,
				sections=section_values,
			)
		except (PlannerError, ValueError) as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"canvas_id": canvas.id,
			"completion_percentage": canvas.completion_percentage,
			"display_order": canvas.display_order,
		}, indent=2)

	@mcp.tool()
	async def get_canvas(canvas_id: str) -> str:
		"""
		Get a canvas.

		Args:
			canvas_id: Canvas ID
		"""
		store = await get_canvas_store()
		try:
			canvas = await store.get(canvas_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"canvas": canvas.model_dump(mode="json")}, indent=2)

	@mcp.tool()
	async def list_canvases(owner_id: str) -> str:
		"""
		List an owner's canvases in display order.

		Args:
			owner_id: Owner ID
		"""
		store = await get_canvas_store()
		canvases = await store.list_canvases(owner_id)
		return json.dumps({
			"canvases": [
				{
					"id": c.id,
					"name": c.name,
					"target_role": c.target_role,
					"completion_percentage": c.completion_percentage,
					"plan_id": c.plan_id,
					"display_order": c.display_order,
				}
				for c in canvases
			],
			"can_create_more": len(canvases) < store.max_canvases,
		}, indent=2)

	@mcp.tool()
	async def update_canvas(canvas_id: str, fields: str) -> str:
		"""
		Update canvas profile fields and/or sections.

		Args:
			canvas_id: Canvas ID
			fields: JSON object, e.g. {"section_6_skills": "SQL, roadmapping"}
		"""
		store = await get_canvas_store()
		try:
			canvas = await store.update(canvas_id, _parse_json_object(fields, "fields"))
		except (PlannerError, ValueError) as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"canvas_id": canvas.id,
			"completion_percentage": canvas.completion_percentage,
		}, indent=2)

	@mcp.tool()
	async def delete_canvas(canvas_id: str) -> str:
		"""
		Delete a canvas. A linked plan is kept.

		Args:
			canvas_id: Canvas ID
		"""
		store = await get_canvas_store()
		try:
			await store.delete(canvas_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"success": True, "canvas_id": canvas_id}, indent=2)

	@mcp.tool()
	async def reorder_canvases(owner_id: str, canvas_ids: str) -> str:
		"""
		Set the display order of an owner's canvases.

		Args:
			owner_id: Owner ID
			canvas_ids: Comma-separated canvas IDs in the new order
		"""
		store = await get_canvas_store()
		ids = [part.strip() for part in canvas_ids.split(",") if part.strip()]
		try:
			canvases = await store.reorder(owner_id, ids)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"success": True, "order": [c.id for c in canvases]}, indent=2)

	@mcp.tool()
	async def link_canvas_to_plan(canvas_id: str, plan_id: str, require_unlinked: bool = False) -> str:
		"""
		Point a canvas at a plan.

		Args:
			canvas_id: Canvas ID
			plan_id: Plan ID
			require_unlinked: Fail instead of overwriting an existing link
		"""
		linker = await _linker()
		try:
			canvas = await linker.link_canvas_to_plan(canvas_id, plan_id, require_unlinked=require_unlinked)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"success": True, "canvas_id": canvas.id, "plan_id": canvas.plan_id}, indent=2)

	@mcp.tool()
	async def unlink_canvas(canvas_id: str) -> str:
		"""
		Clear a canvas's plan link. The plan is kept.

		Args:
			canvas_id: Canvas ID
		"""
		linker = await _linker()
		try:
			canvas = await linker.unlink_canvas_from_plan(canvas_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({"success": True, "canvas_id": canvas.id}, indent=2)

	@mcp.tool()
	async def get_canvas_plan(canvas_id: str) -> str:
		"""
		Get the plan a canvas is linked to, if it still exists.

		Args:
			canvas_id: Canvas ID
		"""
		linker = await _linker()
		try:
			plan = await linker.resolve_linked_plan(canvas_id)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		if plan is None:
			return json.dumps({"plan": None, "can_create_plan": await linker.can_create_plan_for_canvas(canvas_id)})
		return json.dumps({"plan": plan.model_dump(mode="json"), "progress": plan.get_progress()}, indent=2)

	@mcp.tool()
	async def create_plan_from_canvas(canvas_id: str, title: str, start_date: str) -> str:
		"""
		Create a plan for a canvas and link them. Fails if the canvas already has a plan.

		Args:
			canvas_id: Canvas ID
			title: Plan title
			start_date: First day of week 1 (YYYY-MM-DD)
		"""
		linker = await _linker()
		builder = PlanFromCanvas(linker.plans, linker)
		try:
			plan = await builder.create(canvas_id, title, start_date, generate=False)
		except PlannerError as e:
			return json.dumps({"error": str(e)})
		return json.dumps({
			"success": True,
			"plan_id": plan.id,
			"canvas_id": canvas_id,
			"start_date": plan.start_date.isoformat(),
			"end_date": plan.end_date.isoformat(),
		}, indent=2)

	@mcp.tool()
	async def apply_generated_plan(plan_id: str, milestones: str) -> str:
		"""
		Write generated weekly titles into a plan's milestone goals.

		Args:
			plan_id: Plan ID
			milestones: JSON list of {"week": 1-12, "title": "...", "subtasks": [...], "category": "..."}
		"""
		try:
			generated = _generated_list.validate_json(milestones)
		except SchemaError as e:
			return json.dumps({
				"error": f"Invalid milestones: {e.error_count()} problem(s)",
				"details": e.errors(include_url=False, include_context=False),
			})

		store = await get_plan_store()
		try:
			await store.get(plan_id)
			updated = await apply_generated_milestones(store.milestones, plan_id, generated)
		except PlannerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"plan_id": plan_id,
			"updated_weeks": sorted(m.week_number for m in updated),
		}, indent=2)
