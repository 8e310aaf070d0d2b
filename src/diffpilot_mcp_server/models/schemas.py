"""Pydantic models for the MCP server."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Result from a git command execution."""
    exit_code: int
    output: str
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.exit_code == -1


class BranchInfo(BaseModel):
    """Base branch of a working branch, and the remote it lives on."""
    remote: str
    base_branch: str


class ResolutionStrategy(str, Enum):
    HISTORY = "history"
    REFLOG = "reflog"
    TRACKING_CONFIG = "tracking_config"
    KEYWORD_FALLBACK = "keyword_fallback"


class UnknownReason(str, Enum):
    DETACHED_HEAD = "detached_head"
    AMBIGUOUS = "ambiguous"
    NO_EVIDENCE = "no_evidence"


class Resolved(BaseModel):
    """The base branch was determined with confidence."""
    kind: Literal["resolved"] = "resolved"
    branch: BranchInfo
    strategy: ResolutionStrategy


class Unknown(BaseModel):
    """The base branch could not be determined; the caller should ask the user."""
    kind: Literal["unknown"] = "unknown"
    reason: UnknownReason


BaseBranchResult = Resolved | Unknown
