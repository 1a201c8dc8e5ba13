"""
Plan synchronization - the single read/write entry point for a plan's milestones.

Two pieces of state are kept apart:

- the last confirmed read, held in the QueryCache under ("plan", plan_id)
- a local working copy of the milestone order, set optimistically by reorder()

They are reconciled only by invalidate-and-refetch, never by merging. Every
mutation ends with a refetch, successful or not, so the working copy cannot
stay diverged from what the store holds.
"""

import logging
from datetime import date
from typing import Optional, Sequence, Union

from ..errors import NotFoundError, PartialReorderFailure, ValidationError
from ..plans.models import Milestone, Plan, next_status, validate_milestone_update
from ..plans.reorder import ReorderCoordinator, ReorderPath
from ..plans.store import PlanStore
from .cache import QueryCache, QueryState

logger = logging.getLogger(__name__)


def plan_key(plan_id: str) -> tuple:
	return ("plan", plan_id)


def plans_key(owner_id: Optional[str] = None) -> tuple:
	return ("plans",) if owner_id is None else ("plans", owner_id)


class PlanSync:
	"""
	Read and mutate one plan with optimistic reorders.

	Usage:
		sync = PlanSync(plan_id, plans, ReorderCoordinator(plans.milestones), cache)
		await sync.load()
		await sync.update_field(milestone_id, {"goal": "Finish portfolio"})
		await sync.reorder([m3, m1, m2, ...])
	"""

	def __init__(
		self,
		plan_id: str,
		plans: PlanStore,
		reorderer: Optional[ReorderCoordinator] = None,
		cache: Optional[QueryCache] = None,
	):
		self.plan_id = plan_id
		self.plans = plans
		self.reorderer = reorderer or ReorderCoordinator(plans.milestones)
		self.cache = cache or QueryCache()
		self.key = plan_key(plan_id)

		self.error: Optional[BaseException] = None
		self.warning: Optional[str] = None
		self.not_found = False
		self.is_creating_continuation = False

		self._local: Optional[list[Milestone]] = None
		self._pending_updates = 0
		self._reorders_in_flight = 0

		self.cache.register(self.key, self._fetch)
		self._unsubscribe = self.cache.subscribe(self.key, self._on_fetched)

	# -- exposed state ---------------------------------------------------

	@property
	def plan(self) -> Optional[Plan]:
		"""Last confirmed read."""
		return self.cache.get(self.key)

	@property
	def milestones(self) -> list[Milestone]:
		"""Working copy if one exists, otherwise the confirmed milestones."""
		if self._local is not None:
			return list(self._local)
		plan = self.plan
		return list(plan.milestones) if plan else []

	@property
	def is_loading(self) -> bool:
		state = self.cache.state(self.key)
		return not state.has_data and state.error is None

	@property
	def is_updating(self) -> bool:
		return self._pending_updates > 0

	@property
	def is_reordering(self) -> bool:
		return self._reorders_in_flight > 0

	# -- reads -----------------------------------------------------------

	async def _fetch(self) -> Plan:
		return await self.plans.get(self.plan_id)

	def _on_fetched(self, state: QueryState) -> None:
		if isinstance(state.error, NotFoundError):
			self.not_found = True
		if self._reorders_in_flight:
			# A newer reorder owns the display until it settles
			return
		# No pending reorder: show exactly the confirmed read. After a failed
		# refetch this drops the working copy back to the last confirmed data.
		self._local = None

	async def load(self) -> Plan:
		"""
		Fetch the plan and seed local state.

		Raises:
			NotFoundError: plan does not exist (also sets not_found)
		"""
		try:
			plan = await self.cache.fetch(self.key)
		except Exception as e:
			self.error = e
			raise
		self.not_found = False
		return plan

	async def invalidate(self) -> None:
		await self.cache.invalidate(self.key)

	# -- mutations -------------------------------------------------------

	async def update_field(self, milestone_id: str, fields: dict) -> Milestone:
		"""
		Persist a partial field edit, then refetch.

		Field edits do not touch the working copy; the editing widget shows
		its own text until the refetch confirms it.

		Raises:
			ValidationError: rejected locally, no store call is made
			NotFoundError, TransportError: store failure (after a refetch)
		"""
		try:
			values = validate_milestone_update(fields)
		except ValidationError as e:
			self.error = e
			raise

		self._pending_updates += 1
		try:
			milestone = await self.plans.milestones.update(milestone_id, values)
		except Exception as e:
			self.error = e
			logger.warning(f"Update of milestone {milestone_id} failed: {e}")
			await self.invalidate()
			raise
		finally:
			self._pending_updates -= 1

		self.error = None
		await self.invalidate()
		return milestone

	async def cycle_status(self, milestone_id: str) -> Milestone:
		"""Advance a milestone to its next status (not_started -> in_progress -> completed -> not_started)."""
		current = next((m for m in self.milestones if m.id == milestone_id), None)
		if current is None:
			raise NotFoundError("milestone", milestone_id)
		return await self.update_field(milestone_id, {"status": next_status(current.status)})

	async def reorder(self, new_order: Sequence[Union[Milestone, str]]) -> ReorderPath:
		"""
		Show the new order immediately, persist it, then refetch.

		While several reorders are in flight the newest one owns the display;
		once the last one settles the display follows the confirmed read.
		On failure the canonical order is refetched rather than guessed.

		Raises:
			ValidationError: list is not a permutation of the current milestones
			PartialReorderFailure: fallback path partly failed (warning is set)
			TransportError, NotFoundError: store failure
		"""
		ids = [m.id if isinstance(m, Milestone) else m for m in new_order]
		current = {m.id: m for m in self.milestones}
		if len(ids) != len(set(ids)) or set(ids) != set(current):
			error = ValidationError("Reorder list must contain every milestone exactly once")
			self.error = error
			raise error

		# Optimistic: instant drag feedback
		self._local = [
			current[milestone_id].model_copy(update={"order_index": position})
			for position, milestone_id in enumerate(ids)
		]
		self._reorders_in_flight += 1
		try:
			path = await self.reorderer.reorder(self.plan_id, ids)
		except PartialReorderFailure as e:
			self.error = e
			self.warning = "Some milestones could not be moved. Showing the saved order."
			logger.warning(f"Partial reorder of plan {self.plan_id}: {e}")
			await self._settle_reorder()
			raise
		except Exception as e:
			self.error = e
			logger.warning(f"Reorder of plan {self.plan_id} failed: {e}")
			await self._settle_reorder()
			raise

		self.error = None
		self.warning = None
		await self._settle_reorder()
		return path

	async def _settle_reorder(self) -> None:
		self._reorders_in_flight -= 1
		await self.invalidate()

	async def create_continuation(self, title: str, owner_id: Optional[str] = None) -> Plan:
		"""
		Create the plan that follows this one, then invalidate every plan list.

		The new plan is returned only after it is persisted.
		"""
		if owner_id is None:
			plan = self.plan or await self.load()
			owner_id = plan.owner_id

		self.is_creating_continuation = True
		try:
			new_plan = await self.plans.create_continuation(owner_id, self.plan_id, title)
		except Exception as e:
			self.error = e
			raise
		finally:
			self.is_creating_continuation = False

		await self.cache.invalidate(plans_key())
		return new_plan

	def close(self) -> None:
		"""Detach from the cache."""
		self._unsubscribe()
		self.cache.unregister(self.key)


class PlanListSync:
	"""An owner's plan list, refreshed after create/delete."""

	def __init__(self, owner_id: str, plans: PlanStore, cache: Optional[QueryCache] = None):
		self.owner_id = owner_id
		self.plans = plans
		self.cache = cache or QueryCache()
		self.key = plans_key(owner_id)
		self.error: Optional[BaseException] = None
		self.cache.register(self.key, lambda: self.plans.list_plans(self.owner_id))

	@property
	def items(self) -> list[Plan]:
		return self.cache.get(self.key) or []

	@property
	def is_loading(self) -> bool:
		state = self.cache.state(self.key)
		return not state.has_data and state.error is None

	async def load(self) -> list[Plan]:
		return await self.cache.fetch(self.key)

	async def create_plan(self, title: str, start_date: Union[date, str]) -> Plan:
		try:
			plan = await self.plans.create(self.owner_id, title, start_date)
		except Exception as e:
			self.error = e
			raise
		self.error = None
		await self.cache.invalidate(self.key)
		return plan

	async def delete_plan(self, plan_id: str) -> None:
		try:
			await self.plans.delete(plan_id)
		except Exception as e:
			self.error = e
			raise
		self.error = None
		await self.cache.invalidate(self.key)

	def close(self) -> None:
		self.cache.unregister(self.key)
