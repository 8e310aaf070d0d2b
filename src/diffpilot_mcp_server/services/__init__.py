"""Services for DiffPilot MCP Server."""

from .git import (
    CommandFailure,
    CommandTimeout,
    DetachedHeadError,
    GitError,
    GitService,
    InvalidRefNameError,
    run_git_command,
)
from .branch_resolver import BranchResolver, resolve_base_branch

__all__ = [
    "BranchResolver",
    "CommandFailure",
    "CommandTimeout",
    "DetachedHeadError",
    "GitError",
    "GitService",
    "InvalidRefNameError",
    "resolve_base_branch",
    "run_git_command",
]
