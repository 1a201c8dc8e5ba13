"""
Milestone Store - field-level persistence for individual milestone rows.

No workflow rules live here: any status may follow any other, and nothing is
recomputed on write. Progress is a read-time concern of the consumers.
"""

import logging
from datetime import datetime

from ..database import Database
from ..errors import AtomicReorderUnavailable, NotFoundError
from .models import Milestone, validate_milestone_update

logger = logging.getLogger(__name__)


class MilestoneStore:
	"""
	CRUD for milestone rows. Milestones are created and deleted only together
	with their plan (see PlanStore).

	Usage:
		store = MilestoneStore(db)
		milestone = await store.update(milestone_id, {"goal": "Ship the portfolio"})
	"""

	def __init__(self, db: Database, atomic_reorder: bool = True):
		self.db = db
		self.atomic_reorder = atomic_reorder

	async def get(self, milestone_id: str) -> Milestone:
		row = await self.db.fetchone("SELECT * FROM milestones WHERE id = ?", (milestone_id,))
		if not row:
			raise NotFoundError("milestone", milestone_id)
		return Milestone.from_row(row)

	async def list_for_plan(self, plan_id: str) -> list[Milestone]:
		"""All milestones of a plan, sorted by order_index (ties broken by week)."""
		rows = await self.db.fetchall(
			"SELECT * FROM milestones WHERE plan_id = ? ORDER BY order_index, week_number",
			(plan_id,),
		)
		return [Milestone.from_row(row) for row in rows]

	async def update(self, milestone_id: str, fields: dict) -> Milestone:
		"""
		Apply a partial update (goal, notes, status or order_index).

		Validation runs first; an invalid update never reaches the database.

		Raises:
			ValidationError: goal over 200 characters or another invalid field
			NotFoundError: milestone does not exist
			TransportError: backend failure
		"""
		values = validate_milestone_update(fields)
		if not values:
			return await self.get(milestone_id)

		values["updated_at"] = datetime.now().isoformat()
		set_clause = ", ".join(f"{k} = ?" for k in values.keys())
		rowcount = await self.db.execute(
			f"UPDATE milestones SET {set_clause} WHERE id = ?",
			[*values.values(), milestone_id],
		)
		if rowcount == 0:
			raise NotFoundError("milestone", milestone_id)

		logger.debug(f"Updated milestone {milestone_id}: {sorted(fields)}")
		return await self.get(milestone_id)

	async def set_order_index(self, milestone_id: str, order_index: int) -> None:
		"""Single order_index write, used by the non-atomic reorder path."""
		await self.update(milestone_id, {"order_index": order_index})

	async def reorder_atomic(self, plan_id: str, ordered_ids: list[str]) -> None:
		"""
		Write order_index = position for every id in one transaction.

		Raises:
			AtomicReorderUnavailable: atomic reorders are disabled for this store
			NotFoundError: an id does not belong to the plan (nothing is written)
		"""
		if not self.atomic_reorder:
			raise AtomicReorderUnavailable("Atomic reorder is disabled")

		now = datetime.now().isoformat()
		async with self.db.transaction() as conn:
			for position, milestone_id in enumerate(ordered_ids):
				cursor = await conn.execute(
					"UPDATE milestones SET order_index = ?, updated_at = ? WHERE id = ? AND plan_id = ?",
					(position, now, milestone_id, plan_id),
				)
				if cursor.rowcount != 1:
					raise NotFoundError("milestone", milestone_id)
