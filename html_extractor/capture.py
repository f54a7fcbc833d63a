"""
Capture Stage: regex decomposition of one extracted string.

Operates on strings only; it never sees the document tree.
"""

import re
from typing import Optional, Sequence

from .exceptions import PatternNotMatchedError


def capture(
    raw: str,
    pattern: re.Pattern,
    names: Optional[Sequence[str]] = None
) -> list[str]:
    """
    Apply `pattern` once to `raw` and return its groups.

    The first match is used (search, not findall).  Groups are aligned by
    name when every entry of `names` is a named group of the pattern, and by
    position otherwise.

    Args:
        raw: Extracted string
        pattern: Compiled regex
        names: Sub-field names the groups feed

    Returns:
        One string per group, in sub-field order
    """
    match = pattern.search(raw)
    if match is None:
        raise PatternNotMatchedError(
            f"nothing is captured with regex `{pattern.pattern}`",
            raw=raw,
            details={"pattern": pattern.pattern}
        )

    if names and all(name in pattern.groupindex for name in names):
        groups = [match.group(name) for name in names]
    else:
        groups = list(match.groups())

    for position, group in enumerate(groups):
        if group is None:
            raise PatternNotMatchedError(
                f"group {position + 1} of regex `{pattern.pattern}` did not participate in the match",
                raw=raw,
                details={"pattern": pattern.pattern, "group": position + 1}
            )

    return groups
