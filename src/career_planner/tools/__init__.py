"""MCP tool registration - modular tool definitions."""

import logging

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .canvas import register_canvas_tools
from .core import register_core_tools
from .plans import register_plans_tools

logger = logging.getLogger(__name__)


def register_all_tools(mcp: FastMCP, config: Config) -> None:
	"""Register all MCP tools."""
	register_core_tools(mcp, config)
	register_plans_tools(mcp, config)
	register_canvas_tools(mcp, config)
	logger.debug("Registered core, plan and canvas tools")
