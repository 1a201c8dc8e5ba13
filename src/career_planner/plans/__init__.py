"""Plans module - 12-week plans, their milestones and milestone reordering."""

from .milestone_store import MilestoneStore
from .models import Milestone, MilestoneStatus, Plan, SubmissionStatus
from .reorder import ReorderCoordinator, ReorderPath
from .store import PlanStore

__all__ = [
	"Plan",
	"Milestone",
	"MilestoneStatus",
	"SubmissionStatus",
	"PlanStore",
	"MilestoneStore",
	"ReorderCoordinator",
	"ReorderPath",
]
