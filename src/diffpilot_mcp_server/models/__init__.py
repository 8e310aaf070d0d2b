"""Models and schemas for DiffPilot MCP Server."""

from .schemas import (
    BaseBranchResult,
    BranchInfo,
    CommandResult,
    Resolved,
    ResolutionStrategy,
    Unknown,
    UnknownReason,
)

__all__ = [
    "BaseBranchResult",
    "BranchInfo",
    "CommandResult",
    "Resolved",
    "ResolutionStrategy",
    "Unknown",
    "UnknownReason",
]
