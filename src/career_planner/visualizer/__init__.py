"""Visualizer package - Rich terminal views for plans."""

from .plan_progress import render_plan_progress, render_plan_summary

__all__ = [
	"render_plan_progress",
	"render_plan_summary",
]
