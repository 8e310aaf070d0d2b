"""FastMCP server setup for DiffPilot MCP Server."""

from fastmcp import FastMCP

from .config import Settings
from .logging import get_logger
from .tools import branch, diff

logger = get_logger(__name__)


def create_server(settings: Settings | None = None) -> FastMCP:
    """
    Create and configure the MCP server.

    Args:
        settings: Optional settings to use. If not provided, settings are loaded from environment.

    Returns:
        Configured FastMCP server instance
    """
    if settings is None:
        settings = Settings()

    mcp = FastMCP(
        name="diffpilot",
        instructions="""
DiffPilot MCP Server - Branch diffs for code review, without guessing the base branch.

Workflow:
1. Use 'resolve_base_branch' to find the branch the current branch was created from
2. If it cannot be resolved, ask the user which branch to compare against
3. Use 'get_diff' (optionally with 'base_branch') to get the raw diff for review

The base branch is derived from commit history, the reflog, upstream tracking
configuration and well-known branch names, in that order. When the evidence is
ambiguous the server reports it instead of picking a branch.
"""
    )

    branch.register_tools(mcp, settings)
    diff.register_tools(mcp, settings)

    logger.debug("Registered tools", working_dir=str(settings.working_dir))
    return mcp
