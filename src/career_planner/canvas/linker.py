"""
Canvas-Plan Linker - maintains the canvas -> plan reference.

Per canvas the link is a two-state machine:

	Unlinked --link_canvas_to_plan--> Linked --unlink_canvas_from_plan--> Unlinked

Callers are expected to check can_create_plan_for_canvas() before creating a
plan from a canvas. link_canvas_to_plan() itself overwrites an existing link
silently unless require_unlinked=True is passed, which turns the write into a
conditional "link only if currently null".

Deleting a plan does not touch canvases: the reference dangles until
unlink_canvas_from_plan() or clear_links_to_plan() clears it.
"""

import logging
from typing import Optional

from ..errors import LinkConflictError, NotFoundError
from ..plans.models import Plan
from ..plans.store import PlanStore
from .models import Canvas
from .store import CanvasStore

logger = logging.getLogger(__name__)


class CanvasPlanLinker:
	"""Guards and writes canvas -> plan links."""

	def __init__(self, canvases: CanvasStore, plans: PlanStore):
		self.canvases = canvases
		self.plans = plans

	async def can_create_plan_for_canvas(self, canvas_id: str) -> bool:
		"""False if the canvas already holds a plan reference (dangling or not)."""
		canvas = await self.canvases.get(canvas_id)
		return canvas.plan_id is None

	async def link_canvas_to_plan(
		self,
		canvas_id: str,
		plan_id: str,
		require_unlinked: bool = False,
	) -> Canvas:
		"""
		Point a canvas at a plan.

		Raises:
			NotFoundError: canvas or plan does not exist
			LinkConflictError: another canvas already links this plan, or
				require_unlinked=True and the canvas was linked at write time
		"""
		canvas = await self.canvases.get(canvas_id)
		plan = await self.plans.get(plan_id)

		others = [c for c in await self.canvases.find_by_plan(plan.id) if c.id != canvas.id]
		if others:
			raise LinkConflictError(
				f"Plan {plan.id} is already linked to canvas {others[0].id}"
			)

		if canvas.plan_id is not None and canvas.plan_id != plan.id and not require_unlinked:
			logger.warning(
				f"Canvas {canvas.id} was linked to plan {canvas.plan_id}; overwriting with {plan.id}"
			)

		written = await self.canvases.set_plan_reference(
			canvas.id, plan.id, only_if_unlinked=require_unlinked,
		)
		if not written:
			raise LinkConflictError(f"Canvas {canvas.id} is already linked to a plan")

		logger.info(f"Linked canvas {canvas.id} to plan {plan.id}")
		return await self.canvases.get(canvas.id)

	async def unlink_canvas_from_plan(self, canvas_id: str) -> Canvas:
		"""Clear the canvas's reference. The plan itself is not modified."""
		await self.canvases.set_plan_reference(canvas_id, None)
		logger.info(f"Unlinked canvas {canvas_id}")
		return await self.canvases.get(canvas_id)

	async def resolve_linked_plan(self, canvas_id: str) -> Optional[Plan]:
		"""The linked plan, or None when unlinked or the reference dangles."""
		canvas = await self.canvases.get(canvas_id)
		if canvas.plan_id is None:
			return None
		try:
			return await self.plans.get(canvas.plan_id)
		except NotFoundError:
			logger.debug(f"Canvas {canvas_id} references deleted plan {canvas.plan_id}")
			return None

	async def clear_links_to_plan(self, plan_id: str) -> int:
		"""Clear every reference to a plan (e.g. after deleting it). Returns the count cleared."""
		cleared = await self.canvases.clear_plan_references(plan_id)
		if cleared:
			logger.info(f"Cleared {cleared} canvas link(s) to plan {plan_id}")
		return cleared
