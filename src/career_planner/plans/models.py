"""
Plan Models - Pydantic schemas for 12-week plans and their milestones.

A plan owns exactly twelve milestones. Each milestone has two independent
positions: its week_number (1-12, fixed at creation, the calendar week it
stands for) and its order_index (0-11, the current display/drag position).
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..errors import ValidationError

WEEKS_PER_PLAN = 12
PLAN_LENGTH_DAYS = WEEKS_PER_PLAN * 7
MAX_GOAL_LENGTH = 200


class MilestoneStatus(str, Enum):
	"""Status of a weekly milestone."""
	NOT_STARTED = "not_started"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"


class SubmissionStatus(str, Enum):
	"""Mentor review status of a plan."""
	DRAFT = "draft"
	SUBMITTED = "submitted"
	UNDER_REVIEW = "under_review"
	APPROVED = "approved"


_STATUS_CYCLE = {
	MilestoneStatus.NOT_STARTED: MilestoneStatus.IN_PROGRESS,
	MilestoneStatus.IN_PROGRESS: MilestoneStatus.COMPLETED,
	MilestoneStatus.COMPLETED: MilestoneStatus.NOT_STARTED,
}


def next_status(status: MilestoneStatus) -> MilestoneStatus:
	"""Status a click on the status badge moves to: not_started -> in_progress -> completed -> not_started."""
	return _STATUS_CYCLE[MilestoneStatus(status)]


def compute_end_date(start_date: date) -> date:
	return start_date + timedelta(days=PLAN_LENGTH_DAYS)


class Milestone(BaseModel):
	"""One of the twelve weekly goal records of a plan."""
	id: str
	plan_id: str
	week_number: int = Field(ge=1, le=WEEKS_PER_PLAN)
	order_index: int = Field(ge=0, le=WEEKS_PER_PLAN - 1)
	goal: str = Field(default="", description="Week goal, at most 200 characters")
	notes: str = Field(default="")
	status: MilestoneStatus = Field(default=MilestoneStatus.NOT_STARTED)
	updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())

	@classmethod
	def from_row(cls, row: Any) -> "Milestone":
		return cls(
			id=row["id"],
			plan_id=row["plan_id"],
			week_number=row["week_number"],
			order_index=row["order_index"],
			goal=row["goal"],
			notes=row["notes"],
			status=row["status"],
			updated_at=row["updated_at"],
		)


class Plan(BaseModel):
	"""
	A 12-week career plan with its milestones.

	Milestones are always kept sorted by order_index, never by week_number;
	the two orderings diverge after a reorder.
	"""
	id: str
	owner_id: str
	title: str
	start_date: date
	end_date: date
	submission_status: SubmissionStatus = Field(default=SubmissionStatus.DRAFT)
	parent_plan_id: Optional[str] = Field(default=None, description="Plan this one continues")
	sequence_number: int = Field(default=1, ge=1)
	created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
	updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())
	milestones: list[Milestone] = Field(default_factory=list)

	@classmethod
	def from_row(cls, row: Any, milestones: Optional[list[Milestone]] = None) -> "Plan":
		return cls(
			id=row["id"],
			owner_id=row["owner_id"],
			title=row["title"],
			start_date=date.fromisoformat(row["start_date"]),
			end_date=date.fromisoformat(row["end_date"]),
			submission_status=row["submission_status"],
			parent_plan_id=row["parent_plan_id"],
			sequence_number=row["sequence_number"],
			created_at=row["created_at"],
			updated_at=row["updated_at"],
			milestones=sorted(milestones or [], key=lambda m: m.order_index),
		)

	def week_start(self, week_number: int) -> date:
		"""First calendar day of a given week."""
		return self.start_date + timedelta(days=7 * (week_number - 1))

	def get_progress(self) -> dict:
		"""Read-time aggregation of milestone statuses."""
		return plan_progress(self.milestones)

	def to_markdown(self) -> str:
		"""Convert plan to markdown format."""
		progress = self.get_progress()
		lines = [
			f"# {self.title}",
			"",
			f"**Dates:** {self.start_date.isoformat()} to {self.end_date.isoformat()}",
			f"**Status:** {self.submission_status.value}",
			f"**Progress:** {progress['completed']}/{progress['total']} weeks ({progress['percent_complete']:.0f}%)",
			"",
		]
		if self.parent_plan_id:
			lines.insert(3, f"**Continues:** {self.parent_plan_id} (part {self.sequence_number})")

		for milestone in self.milestones:
			check = "x" if milestone.status == MilestoneStatus.COMPLETED else " "
			goal = milestone.goal or "_(no goal yet)_"
			lines.append(f"- [{check}] Week {milestone.week_number}: {goal}")

		return "\n".join(lines)


def plan_progress(milestones: list[Milestone]) -> dict:
	total = len(milestones)
	completed = sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED)
	in_progress = sum(1 for m in milestones if m.status == MilestoneStatus.IN_PROGRESS)
	return {
		"total": total,
		"completed": completed,
		"in_progress": in_progress,
		"percent_complete": round(completed / total * 100, 1) if total > 0 else 0,
	}


MILESTONE_UPDATE_FIELDS = frozenset({"goal", "notes", "status", "order_index"})


def validate_milestone_update(fields: dict) -> dict:
	"""
	Check a partial milestone update before it is sent anywhere.

	Returns a normalized copy (status as its string value).

	Raises:
		ValidationError: unknown field, non-text goal or notes, goal over 200
			characters, bad status or out-of-range order_index
	"""
	unknown = set(fields) - MILESTONE_UPDATE_FIELDS
	if unknown:
		raise ValidationError(f"Invalid milestone fields: {sorted(unknown)}")

	values = dict(fields)
	for key in ("goal", "notes"):
		if values.get(key) is not None and not isinstance(values[key], str):
			raise ValidationError(f"{key} must be text, got {type(values[key]).__name__}", field=key)
	if "goal" in values:
		goal = values["goal"] or ""
		if len(goal) > MAX_GOAL_LENGTH:
			raise ValidationError(
				f"Goal must be {MAX_GOAL_LENGTH} characters or less (got {len(goal)})",
				field="goal",
			)
		values["goal"] = goal
	if "notes" in values:
		values["notes"] = values["notes"] or ""
	if "status" in values:
		try:
			values["status"] = MilestoneStatus(values["status"]).value
		except ValueError:
			raise ValidationError(f"Invalid milestone status: {values['status']}", field="status")
	if "order_index" in values:
		idx = values["order_index"]
		if not isinstance(idx, int) or isinstance(idx, bool) or not 0 <= idx < WEEKS_PER_PLAN:
			raise ValidationError(f"order_index must be 0-{WEEKS_PER_PLAN - 1}", field="order_index")
	return values
