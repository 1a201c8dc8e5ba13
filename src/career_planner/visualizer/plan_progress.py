"""Rich views for plan progress visualization."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..plans.models import MilestoneStatus, Plan

STATUS_ICONS = {
	MilestoneStatus.NOT_STARTED: "[dim][ ][/dim]",
	MilestoneStatus.IN_PROGRESS: "[yellow][~][/yellow]",
	MilestoneStatus.COMPLETED: "[green][x][/green]",
}


def render_plan_progress(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a plan's milestones as a Rich table in display order."""
	console = console or Console()

	progress = plan.get_progress()
	pct = progress["percent_complete"]

	table = Table(
		title=f"[bold]{plan.title}[/bold]  [dim]({progress['completed']}/{progress['total']} weeks, {pct:.0f}%)[/dim]",
	)
	table.add_column("", width=3)
	table.add_column("Week", justify="right")
	table.add_column("Starts")
	table.add_column("Goal")

	for milestone in plan.milestones:
		table.add_row(
			STATUS_ICONS.get(milestone.status, "[ ]"),
			str(milestone.week_number),
			plan.week_start(milestone.week_number).isoformat(),
			milestone.goal or "[dim]-[/dim]",
		)

	console.print(table)


def render_plan_summary(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a summary panel for a plan."""
	console = console or Console()

	progress = plan.get_progress()
	pct = progress["percent_complete"]

	lines = []
	lines.append(f"[bold]Title:[/bold] {plan.title}")
	lines.append(f"[bold]Owner:[/bold] {plan.owner_id}")
	lines.append(f"[bold]Dates:[/bold] {plan.start_date.isoformat()} to {plan.end_date.isoformat()}")
	lines.append(f"[bold]Review:[/bold] {plan.submission_status.value}")
	if plan.parent_plan_id:
		lines.append(f"[bold]Continues:[/bold] {plan.parent_plan_id} (part {plan.sequence_number})")
	lines.append("")
	lines.append(f"[bold]Progress:[/bold] {progress['completed']}/{progress['total']} weeks ({pct:.0f}%)")
	lines.append(f"[bold]In progress:[/bold] {progress['in_progress']}")

	console.print(Panel("\n".join(lines), title=f"Plan: {plan.id}", border_style="cyan"))
