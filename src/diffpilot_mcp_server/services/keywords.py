"""Branch naming conventions used to rank and, as a last resort, pick base branches."""

import re
from typing import Iterable, NamedTuple


class KeywordPattern(NamedTuple):
    keyword: str
    allow_scoped: bool  # also match "<keyword>/..." and "<keyword>-..."

    def matches(self, branch: str) -> bool:
        if branch == self.keyword:
            return True
        if not self.allow_scoped:
            return False
        return branch.startswith(f"{self.keyword}/") or branch.startswith(f"{self.keyword}-")


# Order matters: the first pattern yielding an unambiguous match wins.
FALLBACK_PATTERNS: tuple[KeywordPattern, ...] = (
    KeywordPattern("release", allow_scoped=True),
    KeywordPattern("main", allow_scoped=False),
    KeywordPattern("master", allow_scoped=False),
    KeywordPattern("develop", allow_scoped=False),
    KeywordPattern("dev", allow_scoped=False),
)

# Long-lived branches preferred by the history tie-break.
CONVENTIONAL_BASE_RE = re.compile(
    r"^(?:main|master|develop|dev|trunk)$|^(?:release|hotfix)(?:[/-].*)?$"
)


def is_conventional_base_branch(branch: str) -> bool:
    """Check if a branch name looks like a long-lived base branch."""
    return bool(CONVENTIONAL_BASE_RE.match(branch))


def match_keyword(pattern: KeywordPattern, branches: Iterable[str]) -> str | None:
    """
    Match one keyword pattern against a set of branch names.

    A single match is accepted. Several matches are accepted only if exactly one of
    them is the bare keyword; otherwise the pattern is ambiguous and yields None.
    """
    matches = sorted({b for b in branches if pattern.matches(b)})
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]

    exact = [b for b in matches if b == pattern.keyword]
    if len(exact) == 1:
        return exact[0]
    return None


def match_keyword_fallback(branches: Iterable[str]) -> str | None:
    """Try each fallback pattern in order and return the first unambiguous match."""
    candidates = set(branches)
    for pattern in FALLBACK_PATTERNS:
        match = match_keyword(pattern, candidates)
        if match is not None:
            return match
    return None
