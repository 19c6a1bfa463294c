"""
Candidate ordering for pod resolution.
"""

from typing import Iterable, List, Optional

# Tried in this order when no explicit pod hint is given.
DEFAULT_CANDIDATES = ("utility", "sidekiq")


def build_candidates(hint: Optional[str] = None, defaults: Iterable[str] = DEFAULT_CANDIDATES) -> List[str]:
    """
    Build the ordered list of name patterns to try.

    The hint, when given, goes first, followed by the defaults. Empty entries
    are dropped; duplicates are kept since the first match wins anyway.

    Args:
        hint: Optional pod-name substring supplied by the operator
        defaults: Fallback patterns, in priority order

    Returns:
        List[str]: Patterns in match priority order
    """
    return [pattern for pattern in [hint, *defaults] if pattern]
