"""Error taxonomy shared by the stores, the reorder coordinator and the sync layer."""

from typing import Optional


class PlannerError(Exception):
	"""Base class for all career-planner errors."""
	pass


class ValidationError(PlannerError):
	"""Raised before persistence when input breaks a field rule (e.g. goal too long)."""

	def __init__(self, message: str, field: Optional[str] = None):
		super().__init__(message)
		self.field = field


class NotFoundError(PlannerError):
	"""Raised when a plan, milestone or canvas id no longer exists."""

	def __init__(self, kind: str, entity_id: str):
		super().__init__(f"{kind.capitalize()} not found: {entity_id}")
		self.kind = kind
		self.entity_id = entity_id


class TransportError(PlannerError):
	"""Generic backend failure. Never retried automatically."""
	pass


class AtomicReorderUnavailable(PlannerError):
	"""The backend cannot apply a reorder in a single atomic step."""
	pass


class PartialReorderFailure(PlannerError):
	"""
	Some order-index writes failed on the non-atomic reorder path.

	Writes that already succeeded are not rolled back; the stored order may be
	inconsistent until the caller re-fetches and reorders again.
	"""

	def __init__(
		self,
		plan_id: str,
		failed_ids: list[str],
		first_error: BaseException,
		succeeded: int = 0,
	):
		super().__init__(
			f"Failed to reorder milestones for plan {plan_id}: "
			f"{len(failed_ids)} of {len(failed_ids) + succeeded} updates failed ({first_error})"
		)
		self.plan_id = plan_id
		self.failed_ids = failed_ids
		self.first_error = first_error
		self.succeeded = succeeded


class LinkConflictError(PlannerError):
	"""A canvas-plan link would break the one-canvas-per-plan rule."""
	pass
