"""Core health check tool."""

import json

from mcp.server.fastmcp import FastMCP

from ..config import Config


def register_core_tools(mcp: FastMCP, config: Config) -> None:
	"""Register core tools."""

	@mcp.tool()
	async def health_check() -> str:
		"""
		Check the health of the career-planner server.
		Returns paths and settings in effect.
		"""
		status = {
			"server": "running",
			"config_dir": str(config.config_dir),
			"data_dir": str(config.data_dir),
			"db_exists": config.db_path.exists(),
			"debounce_seconds": config.debounce_seconds,
			"max_canvases": config.max_canvases,
			"atomic_reorder": config.atomic_reorder,
		}
		return json.dumps(status, indent=2)
