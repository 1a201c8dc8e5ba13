"""CLI for career-planner: serve, doctor and plan commands."""

import argparse
import asyncio
import platform
import sys
from pathlib import Path

from importlib.metadata import version as pkg_version

from .config import load_config
from .errors import PlannerError
from .logging_config import setup_logging

CORE_DEPS = ["mcp", "aiosqlite", "platformdirs", "pydantic", "rich"]


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import mcp
	mcp.run()


def _check_config_toml(config_dir: Path) -> tuple[str, str | None]:
	"""Validate config.toml. Returns (status, issue_or_none)."""
	import tomllib

	toml_path = config_dir / "config.toml"
	if not toml_path.exists():
		return "not found (optional)", None
	try:
		with open(toml_path, "rb") as f:
			tomllib.load(f)
		return "valid", None
	except tomllib.TOMLDecodeError as e:
		msg = f"config.toml parse error: {e}"
		return f"INVALID ({e})", msg


def _check_server_startup() -> tuple[str, str | None]:
	"""Try importing and counting registered tools. Returns (status, issue_or_none)."""
	try:
		from .server import mcp as server_instance
		# FastMCP stores tools internally - count them
		tools = server_instance._tool_manager._tools
		return f"OK ({len(tools)} tools registered)", None
	except Exception as e:
		return f"FAILED ({e})", f"Server startup failed: {e}"


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation and configuration."""
	print("career-planner doctor")
	print(f"{'=' * 40}")

	config = load_config()
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	for dep in CORE_DEPS:
		try:
			dep_ver = pkg_version(dep)
			print(f"    {dep:22s} {dep_ver}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Config:")
	toml_status, toml_issue = _check_config_toml(config.config_dir)
	print(f"    config.toml:         {toml_status}")
	if toml_issue:
		issues.append(toml_issue)
	print(f"    database:            {config.db_path}")
	print(f"    debounce_seconds:    {config.debounce_seconds}")
	print(f"    max_canvases:        {config.max_canvases}")
	print(f"    atomic_reorder:      {'on' if config.atomic_reorder else 'off'}")
	print()

	print("  Server:")
	server_status, server_issue = _check_server_startup()
	print(f"    {server_status}")
	if server_issue:
		issues.append(server_issue)
	print()

	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


async def _show_plan(plan_id: str, summary: bool) -> None:
	from .plans.store import get_plan_store
	from .visualizer.plan_progress import render_plan_progress, render_plan_summary

	store = await get_plan_store()
	plan = await store.get(plan_id)
	if summary:
		render_plan_summary(plan)
	else:
		render_plan_progress(plan)


async def _create_plan(owner_id: str, title: str, start_date: str) -> None:
	from .plans.store import get_plan_store

	store = await get_plan_store()
	plan = await store.create(owner_id, title, start_date)
	print(f"Created plan {plan.id}: {plan.start_date.isoformat()} to {plan.end_date.isoformat()}")


async def _list_plans(owner_id: str) -> None:
	from .plans.store import get_plan_store

	store = await get_plan_store()
	plans = await store.list_plans(owner_id)
	if not plans:
		print(f"No plans for {owner_id}.")
		return
	for plan in plans:
		progress = plan.get_progress()
		print(
			f"{plan.id}  {plan.start_date.isoformat()}  "
			f"{progress['completed']}/{progress['total']}  {plan.title}"
		)


def cmd_plan(args: argparse.Namespace) -> None:
	"""Plan subcommand - show, create and list plans."""
	plan_action = getattr(args, "plan_action", None)

	try:
		if plan_action == "show":
			asyncio.run(_show_plan(args.plan_id, getattr(args, "summary", False)))
		elif plan_action == "create":
			asyncio.run(_create_plan(args.owner_id, args.title, args.start_date))
		elif plan_action == "list":
			asyncio.run(_list_plans(args.owner_id))
		else:
			print("Usage: career-planner plan {show|create|list}")
			print("Run 'career-planner plan --help' for details.")
			sys.exit(1)
	except PlannerError as e:
		print(f"Error: {e}")
		sys.exit(1)


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="career-planner",
		description="12-week career plans with weekly milestones, served over MCP",
	)
	parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	# plan
	plan_parser = subparsers.add_parser("plan", help="Show, create and list plans")
	plan_subparsers = plan_parser.add_subparsers(dest="plan_action")

	plan_show = plan_subparsers.add_parser("show", help="Show a plan's milestones")
	plan_show.add_argument("plan_id", help="Plan ID")
	plan_show.add_argument("--summary", action="store_true", help="Show summary panel instead of table")
	plan_show.set_defaults(func=cmd_plan)

	plan_create = plan_subparsers.add_parser("create", help="Create a 12-week plan")
	plan_create.add_argument("owner_id", help="Owner ID")
	plan_create.add_argument("title", help="Plan title")
	plan_create.add_argument("start_date", help="Start date (YYYY-MM-DD)")
	plan_create.set_defaults(func=cmd_plan)

	plan_list = plan_subparsers.add_parser("list", help="List an owner's plans")
	plan_list.add_argument("owner_id", help="Owner ID")
	plan_list.set_defaults(func=cmd_plan)

	plan_parser.set_defaults(func=cmd_plan)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	if args.command != "serve":
		setup_logging(level=args.log_level)
	args.func(args)
