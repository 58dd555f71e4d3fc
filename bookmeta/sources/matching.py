# bookmeta/sources/matching.py
"""
Candidate selection shared by the provider adapters.
"""

from typing import Callable, List, Optional, TypeVar

T = TypeVar("T")

# Errors that mean a provider answered with an unexpected shape
MALFORMED_RESPONSE_ERRORS = (KeyError, TypeError, AttributeError, ValueError, IndexError)


def select_best_match(candidates: List[T], query_title: str, get_title: Callable[[T], Optional[str]]) -> Optional[T]:
    """
    Pick the candidate whose title contains, or is contained by, the query title.

    Falls back to the first candidate when none matches.
    """
    if not candidates:
        return None

    wanted = (query_title or "").lower().strip()
    if wanted:
        for candidate in candidates:
            title = (get_title(candidate) or "").lower().strip()
            if title and (wanted in title or title in wanted):
                return candidate

    return candidates[0]
