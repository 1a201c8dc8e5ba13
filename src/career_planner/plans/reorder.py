"""
Reorder Coordinator - applies a full new ordering of a plan's milestones.

Primary path: one transaction writes every order_index, so no reader sees a
half-applied order. Fallback path (atomic primitive unavailable): one write per
milestone, fanned out concurrently; failures are reported but the writes that
succeeded stay in place. Callers re-fetch after either path.
"""

import asyncio
import logging
from enum import Enum

from ..errors import (
	AtomicReorderUnavailable,
	NotFoundError,
	PartialReorderFailure,
	ValidationError,
)
from .milestone_store import MilestoneStore

logger = logging.getLogger(__name__)


class ReorderPath(str, Enum):
	"""Which path applied a reorder."""
	ATOMIC = "atomic"
	FALLBACK = "fallback"


class ReorderCoordinator:
	"""
	Persist order_index = position for every milestone of a plan.

	Only order_index is written; week_number, goal and status are untouched.
	"""

	def __init__(self, milestones: MilestoneStore):
		self.milestones = milestones

	async def reorder(self, plan_id: str, ordered_ids: list[str]) -> ReorderPath:
		"""
		Apply a new top-to-bottom order.

		Args:
			plan_id: Plan whose milestones are reordered
			ordered_ids: Every milestone id of the plan, exactly once, in the new order

		Returns:
			The path that applied the order

		Raises:
			ValidationError: ids are not exactly the plan's milestones
			NotFoundError: plan has no milestones (deleted or unknown)
			PartialReorderFailure: fallback path, some writes failed
			TransportError: atomic path failed (nothing written)
		"""
		ordered_ids = list(ordered_ids)
		await self._check_complete(plan_id, ordered_ids)

		try:
			await self.milestones.reorder_atomic(plan_id, ordered_ids)
			logger.info(f"Reordered {len(ordered_ids)} milestones of plan {plan_id} atomically")
			return ReorderPath.ATOMIC
		except AtomicReorderUnavailable:
			logger.warning(f"Atomic reorder unavailable for plan {plan_id}, using per-milestone fallback")

		await self._reorder_fallback(plan_id, ordered_ids)
		logger.info(f"Reordered {len(ordered_ids)} milestones of plan {plan_id} via fallback")
		return ReorderPath.FALLBACK

	async def _check_complete(self, plan_id: str, ordered_ids: list[str]) -> None:
		current = await self.milestones.list_for_plan(plan_id)
		if not current:
			raise NotFoundError("plan", plan_id)

		expected = {m.id for m in current}
		if len(ordered_ids) != len(set(ordered_ids)):
			raise ValidationError("Reorder list contains duplicate milestone ids")
		given = set(ordered_ids)
		if given != expected:
			missing = expected - given
			extra = given - expected
			raise ValidationError(
				f"Reorder list must contain every milestone of plan {plan_id} exactly once "
				f"(missing {len(missing)}, unknown {len(extra)})"
			)

	async def _reorder_fallback(self, plan_id: str, ordered_ids: list[str]) -> None:
		# Fan out
		results = await asyncio.gather(
			*(
				self.milestones.set_order_index(milestone_id, position)
				for position, milestone_id in enumerate(ordered_ids)
			),
			return_exceptions=True,
		)

		# Fan in
		failed = [
			(milestone_id, result)
			for milestone_id, result in zip(ordered_ids, results)
			if isinstance(result, BaseException)
		]
		if not failed:
			return

		for milestone_id, error in failed:
			logger.warning(f"Order update for milestone {milestone_id} failed: {error}")
		raise PartialReorderFailure(
			plan_id,
			failed_ids=[milestone_id for milestone_id, _ in failed],
			first_error=failed[0][1],
			succeeded=len(ordered_ids) - len(failed),
		)
