"""Core base branch resolution logic."""

from pathlib import Path
from typing import Awaitable, Callable

from ..logging import get_logger
from ..models.schemas import (
    BaseBranchResult,
    BranchInfo,
    Resolved,
    ResolutionStrategy,
    Unknown,
    UnknownReason,
)
from .git import DEFAULT_TIMEOUT, GitService, is_valid_branch_name
from .signals import (
    AmbiguousEvidence,
    ResolutionCandidate,
    find_from_history,
    find_from_keyword_fallback,
    find_from_reflog,
    find_from_tracking_config,
)

logger = get_logger(__name__)

Extractor = Callable[
    [GitService, str, str],
    Awaitable[ResolutionCandidate | AmbiguousEvidence | None],
]

# Tried in this order; the first verified candidate wins.
STRATEGIES: tuple[tuple[ResolutionStrategy, Extractor], ...] = (
    (ResolutionStrategy.HISTORY, find_from_history),
    (ResolutionStrategy.REFLOG, find_from_reflog),
    (ResolutionStrategy.TRACKING_CONFIG, find_from_tracking_config),
    (ResolutionStrategy.KEYWORD_FALLBACK, find_from_keyword_fallback),
)


class BranchResolver:
    """
    Core base branch resolution service.

    Determines which branch the working branch was created from, or reports that
    it cannot tell. Nothing is cached: every call re-reads the repository, since
    the branch graph and reflog change between calls.
    """

    def __init__(
        self,
        working_dir: Path,
        default_remote: str = "origin",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.working_dir = working_dir
        self.default_remote = default_remote
        self._git_service = GitService(working_dir, timeout=timeout)

    @property
    def git_service(self) -> GitService:
        return self._git_service

    async def resolve(
        self,
        current_branch: str | None = None,
        remote: str | None = None,
    ) -> BaseBranchResult:
        """
        Resolve the base branch of current_branch (the checked out branch by default).

        Returns:
            Resolved with the branch info and the strategy that found it, or Unknown
        """
        remote = remote or self.default_remote
        if not current_branch:
            current_branch = await self._git_service.current_branch()
            if current_branch is None:
                logger.info("Cannot resolve base branch in detached HEAD state")
                return Unknown(reason=UnknownReason.DETACHED_HEAD)

        log = logger.bind(branch=current_branch, remote=remote)
        reason = UnknownReason.NO_EVIDENCE

        if not (is_valid_branch_name(current_branch) and is_valid_branch_name(remote)):
            log.warning("Refusing to query git with an unsafe branch or remote name")
            return Unknown(reason=reason)

        for strategy, extractor in STRATEGIES:
            outcome = await extractor(self._git_service, current_branch, remote)

            if isinstance(outcome, AmbiguousEvidence):
                log.debug("Strategy found conflicting candidates",
                          strategy=strategy.value, candidates=list(outcome.candidates))
                reason = UnknownReason.AMBIGUOUS
                continue
            if outcome is None:
                log.debug("Strategy found no evidence", strategy=strategy.value)
                continue
            if not await self._is_predecessor(current_branch, outcome):
                log.debug("Strategy candidate rejected", strategy=strategy.value,
                          candidate=outcome.branch_name)
                continue

            branch_info = BranchInfo(
                remote=outcome.remote_name or remote,
                base_branch=outcome.branch_name,
            )
            log.info("Resolved base branch", strategy=strategy.value,
                     base_branch=branch_info.base_branch, base_remote=branch_info.remote)
            return Resolved(branch=branch_info, strategy=strategy)

        log.info("Could not determine base branch", reason=reason.value)
        return Unknown(reason=reason)

    async def _is_predecessor(self, current_branch: str, candidate: ResolutionCandidate) -> bool:
        """The candidate exists and the current branch has commits it lacks."""
        git = self._git_service
        local_ref = f"refs/heads/{candidate.branch_name}"
        remote_ref = f"refs/remotes/{candidate.remote_name}/{candidate.branch_name}"
        if await git.ref_exists(local_ref):
            ref = local_ref
        elif candidate.remote_name and await git.ref_exists(remote_ref):
            ref = remote_ref
        else:
            return False
        return await git.is_ahead(current_branch, ref)


async def resolve_base_branch(
    working_dir: Path,
    current_branch: str,
    remote: str = "origin",
    timeout: float = DEFAULT_TIMEOUT,
) -> BaseBranchResult:
    """Resolve the base branch of current_branch in the repository at working_dir."""
    resolver = BranchResolver(working_dir, default_remote=remote, timeout=timeout)
    return await resolver.resolve(current_branch, remote)
