"""
Value Parser: converts an extracted string into a typed value.

A custom parser, when given, is used exclusively.  Otherwise the built-in
parser for the declared scalar kind applies.  Failures always come back as
ParseError; nothing here is allowed to escape as a bare exception.
"""

from typing import Any, Callable, Optional

from .schemas import TypeDescriptor, ValueKind
from .exceptions import ParseError

TRUE_WORDS = {"true", "1", "yes"}
FALSE_WORDS = {"false", "0", "no"}


def _parse_bool(raw: str) -> bool:
    word = raw.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValueError(f"expected one of {sorted(TRUE_WORDS | FALSE_WORDS)}")


def _plain_number(raw: str) -> str:
    # int() and float() on their own also accept "1_000" and non-ASCII digits
    if "_" in raw or not raw.isascii():
        raise ValueError("expected a plain ASCII number")
    return raw


def _parse_int(raw: str) -> int:
    return int(_plain_number(raw))


def _parse_float(raw: str) -> float:
    return float(_plain_number(raw))


BUILTIN_PARSERS: dict[ValueKind, Callable[[str], Any]] = {
    ValueKind.INTEGER: _parse_int,
    ValueKind.FLOAT: _parse_float,
    ValueKind.STRING: str,
    ValueKind.BOOLEAN: _parse_bool,
}


def parse_value(
    raw: str,
    value_type: TypeDescriptor,
    parser: Optional[Callable[[str], Any]] = None
) -> Any:
    """
    Convert `raw` according to `value_type` or `parser`.

    Args:
        raw: Extracted (and possibly captured) string
        value_type: Declared type; only its scalar kind matters here
        parser: Custom conversion, overrides the built-in one

    Returns:
        The typed value
    """
    convert = parser or BUILTIN_PARSERS.get(value_type.kind)
    if convert is None:
        raise TypeError(f"no built-in parser for kind '{value_type.kind.value}'")

    try:
        return convert(raw)
    except Exception as e:
        # Custom parsers may raise anything; all of it is a recoverable field error
        kind = value_type.kind.value
        via = f" with {getattr(parser, '__name__', 'custom parser')}" if parser else ""
        raise ParseError(
            f"cannot parse `{raw}` as {kind}{via}: {e}",
            raw=raw,
            target_type=kind,
            details={"reason": str(e)}
        ) from e


class ParserRegistry:
    """
    Named custom parsers.

    Schemas loaded from JSON refer to custom parsers by name; the registry
    resolves those names at compile time.
    """

    def __init__(self, parsers: Optional[dict[str, Callable[[str], Any]]] = None):
        self._parsers: dict[str, Callable[[str], Any]] = dict(parsers or {})

    def register(self, name: str, func: Optional[Callable[[str], Any]] = None):
        """Register a parser; usable directly or as a decorator."""
        def decorator(f: Callable[[str], Any]) -> Callable[[str], Any]:
            self._parsers[name] = f
            return f

        if func is not None:
            return decorator(func)
        return decorator

    def get(self, name: str) -> Optional[Callable[[str], Any]]:
        return self._parsers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._parsers

    def names(self) -> list[str]:
        return sorted(self._parsers)
