"""
Milestone generation from a canvas.

The generator itself is an opaque collaborator: it receives the nine canvas
sections and the target plan id and returns structured weekly content. This
module validates the input, writes the returned goals into the plan's
existing milestones (matched by week_number) and wires plan creation to the
canvas link. Generator failures are propagated unchanged and never retried.
"""

import logging
from datetime import date
from typing import Optional, Protocol, Union

from pydantic import BaseModel, Field

from .canvas.linker import CanvasPlanLinker
from .canvas.models import SECTION_FIELDS, SECTION_LABELS, Canvas
from .errors import LinkConflictError, ValidationError
from .plans.milestone_store import MilestoneStore
from .plans.models import MAX_GOAL_LENGTH, WEEKS_PER_PLAN, Milestone, Plan
from .plans.store import PlanStore

logger = logging.getLogger(__name__)

MIN_CONTEXT_LENGTH = 50


class GeneratedMilestone(BaseModel):
	"""One week of generated content."""
	week: int = Field(ge=1, le=WEEKS_PER_PLAN)
	title: str
	subtasks: list[str] = Field(default_factory=list)
	category: Optional[str] = None


class MilestoneGenerator(Protocol):
	async def __call__(self, sections: dict[str, str], plan_id: str) -> list[GeneratedMilestone]:
		...


def build_canvas_context(sections: dict) -> str:
	"""Labelled, non-blank sections separated by blank lines."""
	parts = []
	for key in SECTION_FIELDS:
		value = (sections.get(key) or "").strip()
		if value:
			parts.append(f"{SECTION_LABELS[key]}: {value}")
	return "\n\n".join(parts)


def check_canvas_ready(canvas: Canvas) -> str:
	"""
	Return the generation context for a canvas.

	Raises:
		ValidationError: too little canvas content to generate from
	"""
	context = build_canvas_context(canvas.sections())
	if len(context) < MIN_CONTEXT_LENGTH:
		raise ValidationError(
			"Please complete more sections of your canvas before generating milestones."
		)
	return context


async def apply_generated_milestones(
	milestones: MilestoneStore,
	plan_id: str,
	generated: list[GeneratedMilestone],
) -> list[Milestone]:
	"""
	Write generated titles into the goals of the plan's existing milestones.

	Matching is by week_number; order_index is left alone. Titles are cut to
	the 200-character goal limit. Weeks the generator did not return keep
	their current goal.
	"""
	by_week = {m.week_number: m for m in await milestones.list_for_plan(plan_id)}
	updated = []
	for item in generated:
		existing = by_week.get(item.week)
		if existing is None:
			logger.warning(f"Generated week {item.week} has no milestone in plan {plan_id}")
			continue
		updated.append(
			await milestones.update(existing.id, {"goal": item.title.strip()[:MAX_GOAL_LENGTH]})
		)
	logger.info(f"Applied {len(updated)} generated milestones to plan {plan_id}")
	return updated


class PlanFromCanvas:
	"""
	Create a plan for a canvas, link it and optionally fill it with generated goals.

	Usage:
		builder = PlanFromCanvas(plans, linker, generator)
		plan = await builder.create(canvas_id, "Path to PM", date(2025, 1, 6))
	"""

	def __init__(
		self,
		plans: PlanStore,
		linker: CanvasPlanLinker,
		generator: Optional[MilestoneGenerator] = None,
	):
		self.plans = plans
		self.linker = linker
		self.generator = generator

	async def create(
		self,
		canvas_id: str,
		title: str,
		start_date: Union[date, str],
		generate: bool = True,
	) -> Plan:
		"""
		Raises:
			LinkConflictError: the canvas already has a plan
			ValidationError: generate=True and the canvas is too sparse or no
				generator is configured
		"""
		if not await self.linker.can_create_plan_for_canvas(canvas_id):
			raise LinkConflictError(f"Canvas {canvas_id} already has a plan")

		canvas = await self.linker.canvases.get(canvas_id)
		if generate:
			if self.generator is None:
				raise ValidationError("No milestone generator configured")
			check_canvas_ready(canvas)

		plan = await self.plans.create(canvas.owner_id, title, start_date)
		try:
			await self.linker.link_canvas_to_plan(canvas.id, plan.id, require_unlinked=True)
		except LinkConflictError:
			# Lost a race with another plan creation for this canvas
			await self.plans.delete(plan.id)
			raise

		if generate:
			return await self.generate_milestones(plan.id, canvas)
		return plan

	async def generate_milestones(self, plan_id: str, canvas: Canvas) -> Plan:
		"""Run the generator for an existing plan and return the re-fetched plan."""
		if self.generator is None:
			raise ValidationError("No milestone generator configured")
		check_canvas_ready(canvas)

		generated = await self.generator(canvas.sections(), plan_id)
		await apply_generated_milestones(self.plans.milestones, plan_id, generated)
		return await self.plans.get(plan_id)
