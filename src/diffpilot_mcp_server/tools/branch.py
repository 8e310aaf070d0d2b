"""Branch detection tools for DiffPilot MCP Server."""

from fastmcp import FastMCP

from ..config import Settings
from ..models.schemas import Resolved, UnknownReason
from ..services.branch_resolver import BranchResolver
from ..services.git import DetachedHeadError, is_valid_branch_name

UNKNOWN_MESSAGES = {
    UnknownReason.DETACHED_HEAD: (
        "Could not determine the current branch. You may be in a detached HEAD state."
    ),
    UnknownReason.AMBIGUOUS: (
        "Several unrelated branches could be the base branch of '{branch}'. "
        "Please specify the base branch explicitly (e.g., 'main' or 'develop')."
    ),
    UnknownReason.NO_EVIDENCE: (
        "Could not automatically determine the base branch for '{branch}'. "
        "Please specify the base branch explicitly (e.g., 'main' or 'develop')."
    ),
}


async def describe_resolution(
    resolver: BranchResolver,
    branch: str | None = None,
    remote: str | None = None,
) -> dict:
    """Resolve a base branch and describe the outcome as a tool response."""
    if branch and not is_valid_branch_name(branch):
        return {"error": "INVALID_BRANCH", "message": "Branch name contains invalid characters."}
    if remote and not is_valid_branch_name(remote):
        return {"error": "INVALID_REMOTE", "message": "Remote name contains invalid characters."}

    git = resolver.git_service
    if not await git.is_git_repository():
        return {"error": "GIT_ERROR", "message": f"Not a git repository: {resolver.working_dir}"}

    if not branch:
        branch = await git.current_branch()
        if branch is None:
            return {
                "git_branch": None,
                "resolved": False,
                "reason": UnknownReason.DETACHED_HEAD.value,
                "message": UNKNOWN_MESSAGES[UnknownReason.DETACHED_HEAD],
            }

    result = await resolver.resolve(branch, remote)

    if isinstance(result, Resolved):
        return {
            "git_branch": branch,
            "resolved": True,
            "remote": result.branch.remote,
            "base_branch": result.branch.base_branch,
            "strategy": result.strategy.value,
        }

    return {
        "git_branch": branch,
        "resolved": False,
        "reason": result.reason.value,
        "message": UNKNOWN_MESSAGES[result.reason].format(branch=branch),
    }


def register_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register branch detection tools with the MCP server."""

    resolver = BranchResolver(
        working_dir=settings.working_dir,
        default_remote=settings.default_remote,
        timeout=settings.git_timeout,
    )

    @mcp.tool()
    async def get_current_branch() -> dict:
        """
        Gets the name of the currently checked out git branch.

        Returns:
            Dictionary with git_branch, or an error if HEAD is detached
        """
        if not await resolver.git_service.is_git_repository():
            return {"error": "GIT_ERROR", "message": f"Not a git repository: {resolver.working_dir}"}
        try:
            git_branch = await resolver.git_service.require_current_branch()
        except DetachedHeadError as e:
            return {"error": "GIT_ERROR", "message": str(e)}
        return {"git_branch": git_branch}

    @mcp.tool()
    async def resolve_base_branch(
        branch: str | None = None,
        remote: str | None = None
    ) -> dict:
        """
        Finds the branch that a working branch was created from.

        Uses commit history, the reflog, upstream tracking configuration and, as a last
        resort, well-known branch names. Never guesses: if the evidence is ambiguous the
        result is unresolved and the user should be asked for the base branch.

        Args:
            branch: Working branch (defaults to the current branch)
            remote: Git remote (defaults to 'origin')

        Returns:
            Dictionary with git_branch, resolved, and either remote/base_branch/strategy
            or reason/message
        """
        return await describe_resolution(resolver, branch, remote)
