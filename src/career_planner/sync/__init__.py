"""Sync module - cached reads, optimistic reorders and debounced saves."""

from .cache import QueryCache, QueryState
from .canvas_sync import CanvasAutosave
from .debounce import Debouncer
from .plan_sync import PlanListSync, PlanSync

__all__ = [
	"QueryCache",
	"QueryState",
	"PlanSync",
	"PlanListSync",
	"Debouncer",
	"CanvasAutosave",
]
