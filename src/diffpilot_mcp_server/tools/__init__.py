"""MCP tools for DiffPilot MCP Server."""
