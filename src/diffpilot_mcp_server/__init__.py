"""DiffPilot MCP Server - base branch detection and branch diffs for code review."""

__version__ = "0.1.0"
