"""Raw branch diff tool for DiffPilot MCP Server."""

from fastmcp import FastMCP

from ..config import Settings
from ..models.schemas import Resolved, UnknownReason
from ..services.branch_resolver import BranchResolver
from ..services.git import GitError, is_valid_branch_name
from .branch import UNKNOWN_MESSAGES


def truncate_content(content: str, max_length: int) -> str:
    """Truncate content that exceeds max_length, noting the total size."""
    if len(content) <= max_length:
        return content
    return (
        content[:max_length]
        + f"\n\n[... Truncated at {max_length:,} characters. Total size: {len(content):,} characters]"
    )


async def extract_branch_parameters(
    resolver: BranchResolver,
    base_branch: str | None = None,
    feature_branch: str | None = None,
    remote: str | None = None,
) -> dict:
    """
    Work out which refs to diff, auto-detecting what was not given.

    Returns:
        {"base_branch", "feature_branch", "remote", "on_default_branch"} or {"error", "message"}
    """
    git = resolver.git_service
    remote = remote or resolver.default_remote

    if not is_valid_branch_name(remote):
        return {"error": "INVALID_REMOTE", "message": "Remote name contains invalid characters."}
    for name, value in (("Base branch", base_branch), ("Feature branch", feature_branch)):
        if value and not is_valid_branch_name(value):
            return {"error": "INVALID_BRANCH", "message": f"{name} name contains invalid characters."}

    if not await git.is_git_repository():
        return {"error": "GIT_ERROR", "message": f"Not a git repository: {resolver.working_dir}"}

    if not feature_branch:
        feature_branch = await git.current_branch()
        if feature_branch is None:
            return {"error": "GIT_ERROR", "message": UNKNOWN_MESSAGES[UnknownReason.DETACHED_HEAD]}
        if not is_valid_branch_name(feature_branch):
            return {"error": "INVALID_BRANCH", "message": "Feature branch name contains invalid characters."}

    if base_branch:
        return {
            "base_branch": base_branch,
            "feature_branch": feature_branch,
            "remote": remote,
            "on_default_branch": False,
        }

    # On the remote's default branch, review what has not been pushed yet
    if feature_branch == await git.default_branch_of(remote):
        if await git.unpushed_commit_count(feature_branch, remote) > 0:
            return {
                "base_branch": feature_branch,
                "feature_branch": feature_branch,
                "remote": remote,
                "on_default_branch": True,
            }
        return {
            "error": "ON_DEFAULT_BRANCH",
            "message": (
                f"You are on the '{feature_branch}' branch with no unpushed commits. Either:\n"
                "  1. Create a feature branch: `git checkout -b feature/my-feature`\n"
                "  2. Specify a 'base_branch' to compare against a different branch"
            ),
        }

    result = await resolver.resolve(feature_branch, remote)
    if not isinstance(result, Resolved):
        return {
            "error": "BASE_BRANCH_UNKNOWN",
            "reason": result.reason.value,
            "message": UNKNOWN_MESSAGES[result.reason].format(branch=feature_branch),
        }

    return {
        "base_branch": result.branch.base_branch,
        "feature_branch": feature_branch,
        "remote": result.branch.remote,
        "on_default_branch": False,
    }


async def build_diff(
    resolver: BranchResolver,
    max_chars: int,
    base_branch: str | None = None,
    feature_branch: str | None = None,
    remote: str | None = None,
) -> dict:
    """Diff the feature branch against its base branch on the remote."""
    params = await extract_branch_parameters(resolver, base_branch, feature_branch, remote)
    if "error" in params:
        return params

    base = params["base_branch"]
    feature = params["feature_branch"]
    remote = params["remote"]

    try:
        if params["on_default_branch"]:
            # Linear comparison: only the unpushed commits
            diff = await resolver.git_service.diff(f"{remote}/{feature}", feature, three_dot=False)
        else:
            diff = await resolver.git_service.diff(f"{remote}/{base}", feature)
    except GitError as e:
        return {"error": "GIT_ERROR", "message": str(e)}

    return {
        "base_branch": base,
        "feature_branch": feature,
        "remote": remote,
        "diff": truncate_content(diff, max_chars) if diff.strip() else "No changes found between branches.",
    }


def register_tools(mcp: FastMCP, settings: Settings) -> None:
    """Register diff tools with the MCP server."""

    resolver = BranchResolver(
        working_dir=settings.working_dir,
        default_remote=settings.default_remote,
        timeout=settings.git_timeout,
    )

    @mcp.tool()
    async def get_diff(
        base_branch: str | None = None,
        feature_branch: str | None = None,
        remote: str | None = None
    ) -> dict:
        """
        Gets the raw diff between a feature branch and its base branch.

        The base branch is detected automatically when not given. If it cannot be
        determined with confidence, an error asks for it instead of guessing.

        Args:
            base_branch: Base branch (e.g., 'main'). Auto-detected if omitted.
            feature_branch: Feature branch. Defaults to the current branch.
            remote: Git remote (defaults to 'origin')

        Returns:
            Dictionary with base_branch, feature_branch, remote and diff, or an error
        """
        return await build_diff(resolver, settings.max_diff_chars, base_branch, feature_branch, remote)
