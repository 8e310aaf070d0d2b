"""Evidence sources for base branch detection.

Each extractor looks at one kind of evidence (commit graph, reflog, tracking
configuration, branch names) and either names a single base branch or reports
nothing. None of them guesses.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from ..logging import get_logger
from .git import DETACHED_HEAD, GitService, is_valid_branch_name
from .keywords import is_conventional_base_branch, match_keyword_fallback

logger = get_logger(__name__)

_CREATED_FROM_RE = re.compile(r"branch:\s*Created from\s+(\S+)", re.IGNORECASE)
_CHECKOUT_RE = re.compile(r"checkout:\s*moving from\s+(\S+)\s+to\s+(\S+)", re.IGNORECASE)
_COMMIT_HASH_RE = re.compile(r"^[0-9a-fA-F]{7,40}$")

HEADS_PREFIX = "refs/heads/"


@dataclass(frozen=True)
class ResolutionCandidate:
    branch_name: str
    remote_name: str | None
    source_ref: str


@dataclass(frozen=True)
class AmbiguousEvidence:
    """More than one unrelated branch qualifies as the base branch."""
    candidates: tuple[str, ...]


def is_commit_hash(value: str) -> bool:
    """Check if a string looks like an abbreviated or full commit hash."""
    return bool(value and _COMMIT_HASH_RE.match(value))


def strip_remote_prefix(ref: str, remotes: Iterable[str]) -> str:
    """'origin/develop' -> 'develop' when 'origin' is a known remote; anything else unchanged."""
    head, sep, rest = ref.partition("/")
    if sep and rest and head in set(remotes):
        return rest
    return ref


def strip_heads_prefix(ref: str) -> str:
    """'refs/heads/main' -> 'main'; plain names are returned unchanged."""
    if ref.startswith(HEADS_PREFIX):
        return ref[len(HEADS_PREFIX):]
    return ref


def _usable_source(source: str) -> bool:
    return source.upper() != DETACHED_HEAD and not is_commit_hash(source)


def parse_reflog_base(
    reflog: str,
    current_branch: str,
    remotes: Iterable[str] = (),
) -> str | None:
    """
    Find the branch a branch was created from in its reflog (newest entry first).

    Entries are scanned from the oldest one, the branch creation moment, forward.
    Recognizes "branch: Created from X" and "checkout: moving from X to <current>".
    """
    remotes = tuple(remotes)
    for line in reversed(reflog.splitlines()):
        created = _CREATED_FROM_RE.search(line)
        if created:
            source = created.group(1)
            if _usable_source(source):
                return strip_remote_prefix(source, remotes)
            continue

        checkout = _CHECKOUT_RE.search(line)
        if checkout:
            source, target = checkout.groups()
            if target == current_branch and _usable_source(source):
                return strip_remote_prefix(source, remotes)
    return None


async def find_from_history(
    git: GitService,
    current_branch: str,
    remote: str,
) -> ResolutionCandidate | AmbiguousEvidence | None:
    """
    Merge-base analysis over every other local and remote branch.

    Returns a candidate only if exactly one branch survives. Two qualifying branches
    are reconciled only when one descends from the other; unrelated candidates make
    the whole scan ambiguous. So does a branch whose name is unsafe to pass to git,
    once some other candidate was accepted.
    """
    current_head = await git.rev_parse(current_branch)
    if current_head is None:
        return None

    local = await git.local_branches(exclude=current_branch)
    scan = [ResolutionCandidate(b, None, b) for b in local]
    local_names = set(local)
    for branch in await git.remote_branches(remote):
        if branch in local_names or branch == current_branch:
            continue
        scan.append(ResolutionCandidate(branch, remote, f"{remote}/{branch}"))

    chosen: ResolutionCandidate | None = None
    accepted: list[str] = []
    unchecked: list[str] = []
    ambiguous = False

    for candidate in scan:
        if not is_valid_branch_name(candidate.source_ref):
            # Never passed to git, so it cannot be ruled out either
            logger.debug("Branch with unsafe name left unchecked", branch=candidate.source_ref)
            unchecked.append(candidate.source_ref)
            continue

        merge_base = await git.merge_base(current_branch, candidate.source_ref)
        if merge_base is None or merge_base == current_head:
            continue
        if not await git.is_ahead(current_branch, candidate.source_ref):
            continue

        accepted.append(candidate.source_ref)
        if chosen is None:
            chosen = candidate
            continue

        incoming_is_child = await git.is_ahead(candidate.source_ref, chosen.source_ref)
        chosen_is_child = await git.is_ahead(chosen.source_ref, candidate.source_ref)
        if incoming_is_child == chosen_is_child:
            # Same tip, or diverged: neither descends from the other
            ambiguous = True
            continue

        if incoming_is_child:
            child, parent = candidate, chosen
        else:
            child, parent = chosen, candidate
        chosen = _prefer(child, parent)

    if chosen is None:
        return None
    if ambiguous or unchecked:
        logger.debug("History analysis is ambiguous", candidates=accepted, unchecked=unchecked)
        return AmbiguousEvidence(tuple(accepted + unchecked))

    if chosen.remote_name is None:
        found = await git.remote_of(chosen.branch_name)
        chosen = ResolutionCandidate(chosen.branch_name, found or remote, chosen.source_ref)
    return chosen


def _prefer(child: ResolutionCandidate, parent: ResolutionCandidate) -> ResolutionCandidate:
    """Conventional long-lived names win; otherwise the more specific child wins."""
    child_conventional = is_conventional_base_branch(child.branch_name)
    parent_conventional = is_conventional_base_branch(parent.branch_name)
    if parent_conventional and not child_conventional:
        return parent
    return child


async def find_from_reflog(
    git: GitService,
    current_branch: str,
    remote: str,
) -> ResolutionCandidate | None:
    """Look for the branch creation record in the current branch's reflog."""
    reflog = await git.reflog_text(current_branch)
    if not reflog:
        return None

    base = parse_reflog_base(reflog, current_branch, await git.remotes())
    if base is None or base == current_branch or not is_valid_branch_name(base):
        return None

    base_remote = await git.remote_of(base) or remote
    return ResolutionCandidate(base, base_remote, base)


async def find_from_tracking_config(
    git: GitService,
    current_branch: str,
    remote: str,
) -> ResolutionCandidate | None:
    """Use the branch's configured upstream merge ref, unless it points at itself."""
    merge_ref = await git.tracking_merge_ref(current_branch)
    if not merge_ref:
        return None

    base = strip_heads_prefix(merge_ref)
    if base == current_branch or not is_valid_branch_name(base):
        return None

    base_remote = await git.configured_remote(current_branch) or remote
    return ResolutionCandidate(base, base_remote, base)


async def find_from_keyword_fallback(
    git: GitService,
    current_branch: str,
    remote: str,
) -> ResolutionCandidate | None:
    """Last resort: a branch following a well-known base branch naming convention."""
    local = await git.local_branches(exclude=current_branch)
    remote_only = [b for b in await git.remote_branches(remote) if b != current_branch]

    base = match_keyword_fallback(b for b in [*local, *remote_only] if is_valid_branch_name(b))
    if base is None:
        return None

    if base in local:
        base_remote = await git.remote_of(base) or remote
        return ResolutionCandidate(base, base_remote, base)
    return ResolutionCandidate(base, remote, f"{remote}/{base}")
