"""Git operations service.

All git commands go through ``run_git_command``, which never raises for timeouts,
non-zero exits or spawn failures. ``GitService`` builds narrow, typed queries on
top of it; every query issues its subprocess calls one after another.
"""

import asyncio
import re
from pathlib import Path

from ..logging import get_logger
from ..models.schemas import CommandResult

logger = get_logger(__name__)

GIT_EXECUTABLE = "git"

DEFAULT_TIMEOUT = 60.0

# Literal printed by `rev-parse --abbrev-ref HEAD` when HEAD is detached
DETACHED_HEAD = "HEAD"

COMMON_DEFAULT_BRANCHES = ("main", "master", "develop")

_BRANCH_NAME_RE = re.compile(r"^[a-zA-Z0-9/_.-]+$")


class GitError(Exception):
    """Raised when a git operation fails."""
    pass


class CommandFailure(GitError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, command: str, result: CommandResult):
        self.command = command
        self.result = result
        super().__init__(
            f"git {command} failed with exit code {result.exit_code}: {result.output.strip()}"
        )


class CommandTimeout(CommandFailure):
    """Raised when a git command exceeded its deadline."""
    pass


class DetachedHeadError(GitError):
    """Raised when the current branch cannot be named."""
    pass


class InvalidRefNameError(ValueError):
    """Raised when a branch or remote name fails validation."""
    pass


def is_valid_branch_name(name: str | None) -> bool:
    """Check a branch or remote name before it is used in a git command."""
    if not name or not name.strip():
        return False
    if name.startswith("-") or ".." in name:
        return False
    return bool(_BRANCH_NAME_RE.match(name))


def validate_branch_name(name: str | None, param_name: str = "branch") -> str:
    """Return the name unchanged, or raise InvalidRefNameError."""
    if not is_valid_branch_name(name):
        raise InvalidRefNameError(f"{param_name} name contains invalid characters: {name!r}")
    return name


def raise_for_result(command: str, result: CommandResult) -> CommandResult:
    """Raise CommandTimeout or CommandFailure if the command did not succeed."""
    if result.timed_out:
        raise CommandTimeout(command, result)
    if not result.ok:
        raise CommandFailure(command, result)
    return result


async def run_git_command(
    args: list[str],
    working_dir: Path | str,
    timeout: float = DEFAULT_TIMEOUT,
) -> CommandResult:
    """
    Run ``git <args>`` in working_dir and return the exit code and combined output.

    Both stdout and stderr are captured, even on failure. A timed-out command is
    killed and reported with exit code -1.
    """
    command = " ".join(args)
    try:
        proc = await asyncio.create_subprocess_exec(
            GIT_EXECUTABLE, *args,
            cwd=str(working_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.debug("git spawn failed", command=command, error=str(e))
        return CommandResult(exit_code=1, output=str(e) or "Unknown error")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("git command timed out", command=command, timeout=timeout)
        return CommandResult(
            exit_code=-1,
            output=f"Git command timed out after {timeout}s: git {command}",
        )
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    out = stdout.decode(errors="replace")
    err = stderr.decode(errors="replace")
    exit_code = proc.returncode if proc.returncode is not None else 1

    if exit_code != 0:
        logger.debug("git command failed", command=command, exit_code=exit_code)
        return CommandResult(
            exit_code=exit_code,
            output=(out + err) or f"git {command} exited with code {exit_code}",
            stdout=out,
        )

    return CommandResult(exit_code=0, output=out + err, stdout=out)


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


class GitService:
    """Service for git operations."""

    def __init__(self, working_dir: Path, timeout: float = DEFAULT_TIMEOUT):
        self.working_dir = working_dir
        self.timeout = timeout

    async def run(self, *args: str) -> CommandResult:
        return await run_git_command(list(args), self.working_dir, self.timeout)

    async def _value(self, *args: str) -> str | None:
        """Trimmed stdout of a successful command, or None."""
        result = await self.run(*args)
        if not result.ok:
            return None
        value = result.stdout.strip()
        return value or None

    async def is_git_repository(self) -> bool:
        """Check if the working directory is a git repository."""
        result = await self.run("rev-parse", "--git-dir")
        return result.ok

    async def current_branch(self) -> str | None:
        """Get the current branch name. None in detached HEAD state or on error."""
        branch = await self._value("rev-parse", "--abbrev-ref", "HEAD")
        if branch is None or branch == DETACHED_HEAD:
            return None
        return branch

    async def require_current_branch(self) -> str:
        """Get the current branch name, raising DetachedHeadError if there is none."""
        branch = await self.current_branch()
        if branch is None:
            raise DetachedHeadError(
                "Could not determine current branch. You may be in a detached HEAD state."
            )
        return branch

    async def rev_parse(self, ref: str) -> str | None:
        return await self._value("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    async def merge_base(self, ref_a: str, ref_b: str) -> str | None:
        """Get the merge-base (common ancestor) of two refs."""
        return await self._value("merge-base", ref_a, ref_b)

    async def commit_count(self, base: str, branch: str) -> int | None:
        """Number of commits reachable from branch but not from base."""
        count = await self._value("rev-list", "--count", f"{base}..{branch}", "--")
        if count is None:
            return None
        try:
            return int(count)
        except ValueError:
            return None

    async def is_ahead(self, branch: str, base: str) -> bool:
        """Check if branch has commits that base doesn't have."""
        count = await self.commit_count(base, branch)
        return count is not None and count > 0

    async def local_branches(self, exclude: str | None = None) -> list[str]:
        """Get all local branches except the specified one."""
        result = await self.run("for-each-ref", "--format=%(refname)", "refs/heads/")
        if not result.ok:
            return []
        prefix = "refs/heads/"
        branches = [
            line[len(prefix):] for line in _lines(result.stdout) if line.startswith(prefix)
        ]
        return [b for b in branches if b and b != exclude]

    async def remote_branches(self, remote: str) -> list[str]:
        """Get all branches of a remote, without the remote prefix and its HEAD pointer."""
        prefix = f"refs/remotes/{remote}/"
        result = await self.run("for-each-ref", "--format=%(refname)", prefix)
        if not result.ok:
            return []
        branches = [
            line[len(prefix):] for line in _lines(result.stdout) if line.startswith(prefix)
        ]
        return [b for b in branches if b and b != DETACHED_HEAD]

    async def remotes(self) -> list[str]:
        result = await self.run("remote")
        if not result.ok:
            return []
        return _lines(result.stdout)

    async def ref_exists(self, ref: str) -> bool:
        result = await self.run("show-ref", "--verify", "--quiet", ref)
        return result.ok

    async def branch_exists(self, branch: str, remote: str) -> bool:
        """Check for a local branch, then for the branch on the given remote."""
        if await self.ref_exists(f"refs/heads/{branch}"):
            return True
        return await self.ref_exists(f"refs/remotes/{remote}/{branch}")

    async def default_branch_of(self, remote: str) -> str | None:
        """
        Get the default branch of a remote.

        Uses the remote's symbolic HEAD when set, otherwise the first of
        main/master/develop that exists on the remote.
        """
        ref = await self._value("symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD")
        prefix = f"refs/remotes/{remote}/"
        if ref and ref.startswith(prefix):
            return ref[len(prefix):]

        for branch in COMMON_DEFAULT_BRANCHES:
            if await self.ref_exists(f"refs/remotes/{remote}/{branch}"):
                return branch
        return None

    async def reflog_text(self, branch: str) -> str | None:
        """Reflog subjects of a branch, newest first."""
        return await self._value("reflog", "show", "--format=%gs", branch, "--")

    async def tracking_merge_ref(self, branch: str) -> str | None:
        return await self._value("config", "--get", f"branch.{branch}.merge")

    async def configured_remote(self, branch: str) -> str | None:
        return await self._value("config", "--get", f"branch.{branch}.remote")

    async def remote_of(self, branch: str) -> str | None:
        """Find which remote a branch belongs to: its configured remote, else the first remote holding it."""
        configured = await self.configured_remote(branch)
        if configured:
            return configured

        for remote in await self.remotes():
            if await self.ref_exists(f"refs/remotes/{remote}/{branch}"):
                return remote
        return None

    async def unpushed_commit_count(self, branch: str, remote: str) -> int:
        """Count of commits on branch not yet on remote/branch, 0 if none or on error."""
        count = await self.commit_count(f"{remote}/{branch}", branch)
        return count or 0

    async def diff(self, base_ref: str, feature_ref: str, three_dot: bool = True) -> str:
        """Raw diff between two refs. Raises CommandFailure / CommandTimeout."""
        separator = "..." if three_dot else ".."
        revision_range = f"{base_ref}{separator}{feature_ref}"
        result = await self.run("diff", revision_range, "--")
        raise_for_result(f"diff {revision_range}", result)
        return result.stdout
