"""
Custom exceptions for the HTML Extractor engine.

Error philosophy:
  - SchemaError           → FAIL HARD: compilation stops, no partial schema is built.
  - FieldExtractionError  → PER FIELD: raised by a stage, caught by the runner and
                            recorded as a FieldError; sibling fields keep going.
  - SchemaExtractionError → AGGREGATE: raised by the typed-model helpers when the
                            outcome has any error; carries every failure at once.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .schemas import ExtractionOutcome


class HTMLExtractorError(Exception):
    """Base exception for all HTML Extractor errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- FAIL HARD: compile time ---

class SchemaError(HTMLExtractorError):
    """
    Raised when a schema cannot be compiled.

    Names the offending field (dotted path for nested schemas) so the schema
    author can go straight to the defect.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict] = None
    ):
        if field:
            message = f"field `{field}`: {message}"
        super().__init__(message, details)
        self.field = field


# --- PER FIELD: stage failures, recorded by the runner ---

class FieldExtractionError(HTMLExtractorError):
    """
    Raised by an extraction stage for a single field.

    The runner catches these and turns them into FieldError records, adding
    the field path and selector the stage itself does not know about.
    """

    kind = "field_error"

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.raw = raw


class NoMatchError(FieldExtractionError):
    """Selector matched nothing under the `single` collector."""
    kind = "no_match"


class AmbiguousMatchError(FieldExtractionError):
    """Selector matched more than one node under `single` or `optional`."""
    kind = "ambiguous_match"


class MissingAttributeError(FieldExtractionError):
    """Requested attribute is absent on the matched node."""
    kind = "missing_attribute"


class MissingTextNodeError(FieldExtractionError):
    """Requested n-th text node does not exist inside the matched node."""
    kind = "missing_text_node"


class PatternNotMatchedError(FieldExtractionError):
    """Capture regex did not match the extracted text."""
    kind = "pattern_not_matched"


class ParseError(FieldExtractionError):
    """Extracted string could not be converted to the declared type."""
    kind = "parse_error"

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        target_type: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, raw=raw, details=details)
        self.target_type = target_type


# --- AGGREGATE: every field error of one extraction ---

class SchemaExtractionError(HTMLExtractorError):
    """
    Raised when a typed result was requested but extraction had errors.

    The full ExtractionOutcome is attached, so partial values and every
    FieldError remain available to the caller.
    """

    def __init__(self, outcome: "ExtractionOutcome"):
        errors = outcome.errors
        summary = "; ".join(f"{e.path}: {e.message}" for e in errors[:5])
        if len(errors) > 5:
            summary += f"; ... ({len(errors) - 5} more)"
        super().__init__(
            f"{len(errors)} field(s) failed to extract: {summary}",
            details={"error_count": len(errors)}
        )
        self.outcome = outcome

    @property
    def errors(self) -> list:
        return list(self.outcome.errors)

    def to_response(self) -> dict[str, Any]:
        """Convert to a JSON-serializable error response."""
        return {
            "error": "SchemaExtractionError",
            "message": self.message,
            "errors": [e.model_dump() for e in self.outcome.errors],
            "partial_values": self.outcome.model_dump(mode="json")["values"],
        }
