"""
Plan Store - SQLite-backed plan storage.

Features:
- Plan creation together with its twelve milestones in one transaction
- Continuation plans that start the week after their parent ends
- Listing per owner, metadata edits, submission status
- Idempotent deletion (milestones first, then the plan row)
"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional, Union

from ..database import Database
from ..errors import NotFoundError, ValidationError
from .milestone_store import MilestoneStore
from .models import (
	WEEKS_PER_PLAN,
	MilestoneStatus,
	Plan,
	SubmissionStatus,
	compute_end_date,
)

logger = logging.getLogger(__name__)

DateLike = Union[date, str]


def _coerce_date(value: DateLike) -> date:
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	try:
		return date.fromisoformat(value)
	except (TypeError, ValueError):
		raise ValidationError(f"Invalid date: {value!r}", field="start_date")


def _milestone_rows(plan_id: str, now: str) -> list[tuple]:
	"""The twelve blank milestones of a new plan: week k sits at position k-1."""
	return [
		(str(uuid.uuid4()), plan_id, week, week - 1, "", "", MilestoneStatus.NOT_STARTED.value, now)
		for week in range(1, WEEKS_PER_PLAN + 1)
	]


class PlanStore:
	"""
	Plan metadata plus bulk creation of milestones.

	Usage:
		store = PlanStore(db)
		plan = await store.create("user-1", "Become a PM", date(2025, 1, 6))
		plan = await store.get(plan.id)
	"""

	def __init__(self, db: Database, milestones: Optional[MilestoneStore] = None):
		self.db = db
		self.milestones = milestones or MilestoneStore(db)

	async def create(
		self,
		owner_id: str,
		title: str,
		start_date: DateLike,
		parent_plan_id: Optional[str] = None,
		sequence_number: int = 1,
	) -> Plan:
		"""
		Create a plan and its twelve milestones.

		end_date is start_date + 84 days. The plan row and the milestone rows
		are one transaction: if the milestone insert fails no plan is left
		behind.

		Raises:
			ValidationError: empty title or unparseable start date
			TransportError: backend failure (nothing persisted)
		"""
		title = (title or "").strip()
		if not title:
			raise ValidationError("Plan title is required", field="title")
		start = _coerce_date(start_date)

		plan_id = str(uuid.uuid4())
		now = datetime.now().isoformat()

		async with self.db.transaction() as conn:
			await conn.execute(
				"""
				INSERT INTO plans (id, owner_id, title, start_date, end_date, submission_status,
					parent_plan_id, sequence_number, created_at, updated_at)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
				""",
				(
					plan_id,
					owner_id,
					title,
					start.isoformat(),
					compute_end_date(start).isoformat(),
					SubmissionStatus.DRAFT.value,
					parent_plan_id,
					sequence_number,
					now,
					now,
				),
			)
			await conn.executemany(
				"""
				INSERT INTO milestones (id, plan_id, week_number, order_index, goal, notes, status, updated_at)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?)
				""",
				_milestone_rows(plan_id, now),
			)

		logger.info(f"Created plan {plan_id} for owner {owner_id} starting {start.isoformat()}")
		return await self.get(plan_id)

	async def get(self, plan_id: str) -> Plan:
		"""
		Get a plan with its milestones sorted by order_index.

		Raises:
			NotFoundError: plan does not exist
		"""
		row = await self.db.fetchone("SELECT * FROM plans WHERE id = ?", (plan_id,))
		if not row:
			raise NotFoundError("plan", plan_id)
		milestones = await self.milestones.list_for_plan(plan_id)
		return Plan.from_row(row, milestones)

	async def list_plans(self, owner_id: str) -> list[Plan]:
		"""All plans of an owner, newest first."""
		rows = await self.db.fetchall(
			"SELECT * FROM plans WHERE owner_id = ? ORDER BY created_at DESC",
			(owner_id,),
		)
		plans = []
		for row in rows:
			milestones = await self.milestones.list_for_plan(row["id"])
			plans.append(Plan.from_row(row, milestones))
		return plans

	async def update_plan(
		self,
		plan_id: str,
		title: Optional[str] = None,
		start_date: Optional[DateLike] = None,
	) -> Plan:
		"""Edit title and/or start date. A new start date moves end_date with it."""
		values: dict = {}
		if title is not None:
			title = title.strip()
			if not title:
				raise ValidationError("Plan title is required", field="title")
			values["title"] = title
		if start_date is not None:
			start = _coerce_date(start_date)
			values["start_date"] = start.isoformat()
			values["end_date"] = compute_end_date(start).isoformat()

		if not values:
			return await self.get(plan_id)

		values["updated_at"] = datetime.now().isoformat()
		set_clause = ", ".join(f"{k} = ?" for k in values.keys())
		rowcount = await self.db.execute(
			f"UPDATE plans SET {set_clause} WHERE id = ?",
			[*values.values(), plan_id],
		)
		if rowcount == 0:
			raise NotFoundError("plan", plan_id)
		return await self.get(plan_id)

	async def update_submission_status(
		self,
		plan_id: str,
		status: Union[SubmissionStatus, str],
	) -> Plan:
		try:
			status = SubmissionStatus(status)
		except ValueError:
			raise ValidationError(f"Invalid submission status: {status}", field="submission_status")

		rowcount = await self.db.execute(
			"UPDATE plans SET submission_status = ?, updated_at = ? WHERE id = ?",
			(status.value, datetime.now().isoformat(), plan_id),
		)
		if rowcount == 0:
			raise NotFoundError("plan", plan_id)
		logger.info(f"Plan {plan_id} submission status -> {status.value}")
		return await self.get(plan_id)

	async def delete(self, plan_id: str) -> None:
		"""
		Delete a plan's milestones, then the plan row.

		Safe to call again: deleting what is already gone is a no-op.
		Canvases that reference the plan keep their (now dangling) reference.
		"""
		async with self.db.transaction() as conn:
			cursor = await conn.execute("DELETE FROM milestones WHERE plan_id = ?", (plan_id,))
			deleted_milestones = cursor.rowcount
			cursor = await conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
			deleted_plans = cursor.rowcount

		if deleted_plans:
			logger.info(f"Deleted plan {plan_id} ({deleted_milestones} milestones)")
		else:
			logger.debug(f"Delete of plan {plan_id}: nothing to delete")

	async def create_continuation(self, owner_id: str, parent_plan_id: str, title: str) -> Plan:
		"""
		Create the next plan in a sequence.

		Its week 1 starts the day after the parent's week 12 ends, which is the
		parent's end_date. Milestones follow the same contract as create().

		Raises:
			NotFoundError: parent plan does not exist
			ValidationError: owner_id is not the parent plan's owner
		"""
		parent = await self.get(parent_plan_id)
		if parent.owner_id != owner_id:
			raise ValidationError(f"Plan {parent.id} belongs to another owner", field="owner_id")
		plan = await self.create(
			owner_id,
			title,
			parent.end_date,
			parent_plan_id=parent.id,
			sequence_number=parent.sequence_number + 1,
		)
		logger.info(f"Plan {plan.id} continues {parent.id} (part {plan.sequence_number})")
		return plan


# Global store instance
_store: Optional[PlanStore] = None


async def get_plan_store(db_path: str = "") -> PlanStore:
	"""Get or create the global plan store."""
	global _store
	if _store is None:
		from ..config import get_config
		from ..database import get_database
		config = get_config()
		db = await get_database(db_path)
		_store = PlanStore(db, MilestoneStore(db, atomic_reorder=config.atomic_reorder))
	return _store
