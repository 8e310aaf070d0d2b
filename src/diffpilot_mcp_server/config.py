"""Configuration management for DiffPilot MCP Server."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from .services.git import DEFAULT_TIMEOUT, is_valid_branch_name

DEFAULT_MAX_DIFF_CHARS = 500_000


class Settings(BaseModel):
    """Server settings loaded from environment variables."""

    working_dir: Path = Field(default_factory=lambda: Path(os.environ.get("DIFFPILOT_WORKSPACE") or os.getcwd()))
    default_remote: str = Field(default_factory=lambda: os.environ.get("DIFFPILOT_REMOTE", "origin"))
    git_timeout: float = Field(default_factory=lambda: float(os.environ.get("DIFFPILOT_GIT_TIMEOUT", DEFAULT_TIMEOUT)))
    max_diff_chars: int = Field(default_factory=lambda: int(os.environ.get("DIFFPILOT_MAX_DIFF_CHARS", DEFAULT_MAX_DIFF_CHARS)))
    log_level: str = Field(default_factory=lambda: os.environ.get("DIFFPILOT_LOG_LEVEL", "INFO"))

    def validate_required(self) -> None:
        """Validate that settings are usable."""
        if not self.working_dir.is_dir():
            raise ValueError(f"Working directory does not exist: {self.working_dir}")
        if not is_valid_branch_name(self.default_remote):
            raise ValueError(f"DIFFPILOT_REMOTE is not a valid remote name: {self.default_remote!r}")
        if self.git_timeout <= 0:
            raise ValueError("DIFFPILOT_GIT_TIMEOUT must be a positive number of seconds")
        if self.max_diff_chars <= 0:
            raise ValueError("DIFFPILOT_MAX_DIFF_CHARS must be positive")
