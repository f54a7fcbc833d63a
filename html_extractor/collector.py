"""
Collector: enforces a field's cardinality contract over its selector matches.

Runs before per-node extraction.  Match order is whatever the selector engine
produced (document order) and is never changed here.
"""

from typing import Sequence, TypeVar

from .schemas import CollectorPolicy
from .exceptions import NoMatchError, AmbiguousMatchError

N = TypeVar("N")


def collect(matches: Sequence[N], policy: CollectorPolicy) -> list[N]:
    """
    Apply `policy` to the matched nodes.

    single    exactly one match, else NoMatchError / AmbiguousMatchError
    optional  zero or one match; zero gives [] (absent), more is ambiguous
    collect   all matches, never fails

    Returns:
        The retained nodes, in document order
    """
    count = len(matches)

    if policy == CollectorPolicy.COLLECT:
        return list(matches)

    if count > 1:
        raise AmbiguousMatchError(
            f"selector matched {count} elements, expected at most one",
            details={"match_count": count, "collector": policy.value}
        )

    if count == 0 and policy == CollectorPolicy.SINGLE:
        raise NoMatchError(
            "no element matched the selector",
            details={"match_count": 0, "collector": policy.value}
        )

    return list(matches)
