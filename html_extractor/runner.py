"""
Extraction Runner: executes a CompiledSchema against a document tree.

Pipeline position: after compilation, once per document.
Input:  document root (bs4 node) + CompiledSchema
Output: ExtractionOutcome with typed values for every field that succeeded
        and a FieldError for every field (or collected item) that did not

Per field:  select → collect → target → capture → parse
Fields are independent: one failing field never stops its siblings, so a
single call reports every problem in the document at once.
"""

from typing import Any, Optional

from bs4 import Tag
from pydantic import BaseModel

from .compiler import CompiledSchema, FieldPlan
from .schemas import (
    CollectorPolicy, ElementTarget, PresenceTarget, ExtractionOutcome, FieldError, FieldErrorKind,
)
from .document import parse, select
from .collector import collect
from .targets import extract_target
from .capture import capture
from .parsers import parse_value
from .exceptions import FieldExtractionError, ParseError, SchemaExtractionError
from .logger import get_module_logger

logger = get_module_logger("runner")


def extract(root: Tag, compiled: CompiledSchema) -> ExtractionOutcome:
    """
    Run every field plan of `compiled` against `root`.

    Args:
        root: Document root or any element to search under
        compiled: Result of compile_schema()

    Returns:
        ExtractionOutcome; `ok` is True only if every field at every
        nesting level succeeded
    """
    logger.debug(f"Extracting '{compiled.name}' ({len(compiled.roots)} fields)")
    values, errors = _run_level(root, compiled, compiled.top_level(), prefix="")

    if errors:
        logger.warning(f"Extraction of '{compiled.name}' finished with {len(errors)} error(s)")
    else:
        logger.info(f"Extracted '{compiled.name}': {len(values)} fields")
    return ExtractionOutcome(values=values, errors=errors)


def extract_html(html: str, compiled: CompiledSchema, parser: Optional[str] = None) -> ExtractionOutcome:
    """Parse markup and extract from its root."""
    return extract(parse(html, parser), compiled)


def extract_model(root: Tag, compiled: CompiledSchema) -> BaseModel:
    """
    Extract into the schema's typed model.

    Raises:
        SchemaExtractionError: if any field failed; the outcome is attached
    """
    outcome = extract(root, compiled)
    if not outcome.ok:
        raise SchemaExtractionError(outcome)
    return compiled.model.model_validate(outcome.values)


def extract_from_str(html: str, compiled: CompiledSchema, parser: Optional[str] = None) -> BaseModel:
    """Parse markup and extract into the schema's typed model."""
    return extract_model(parse(html, parser), compiled)


# --- internals ---

def _run_level(
    node: Tag,
    compiled: CompiledSchema,
    plans: list[FieldPlan],
    prefix: str
) -> tuple[dict[str, Any], list[FieldError]]:
    """Evaluate sibling plans under one search root and gather their results."""
    values: dict[str, Any] = {}
    errors: list[FieldError] = []

    for plan in plans:
        path = f"{prefix}.{plan.name}" if prefix else plan.name
        value, field_errors = _run_field(node, compiled, plan, path)
        if field_errors:
            errors.extend(field_errors)
        elif plan.spreads_captures:
            # Captured sub-fields sit beside the plain fields of this level
            if value is None:
                value = dict.fromkeys(plan.value_keys)
            values.update(value)
        else:
            values[plan.name] = value

    return values, errors


def _run_field(
    node: Tag,
    compiled: CompiledSchema,
    plan: FieldPlan,
    path: str
) -> tuple[Any, list[FieldError]]:
    matches = select(node, plan.selector)
    logger.debug(f"{path}: `{plan.selector_text}` matched {len(matches)} element(s)")

    if isinstance(plan.target, PresenceTarget):
        return bool(matches), []

    try:
        kept = collect(matches, plan.collector)
    except FieldExtractionError as e:
        return None, [_field_error(e, plan, path)]

    if plan.collector == CollectorPolicy.COLLECT:
        # Every item is evaluated so all bad items are reported, not just the first
        items = []
        errors: list[FieldError] = []
        for i, match in enumerate(kept):
            item, item_errors = _run_node(match, compiled, plan, f"{path}[{i}]")
            items.append(item)
            errors.extend(item_errors)
        return items, errors

    if not kept:
        # optional collector, nothing matched: explicit absence
        return None, []
    return _run_node(kept[0], compiled, plan, path)


def _run_node(
    node: Tag,
    compiled: CompiledSchema,
    plan: FieldPlan,
    path: str
) -> tuple[Any, list[FieldError]]:
    """Turn one retained match into a typed value."""
    if isinstance(plan.target, ElementTarget):
        # The match becomes the search root of the nested schema
        return _run_level(node, compiled, compiled.children_of(plan), prefix=path)

    try:
        raw = extract_target(node, plan.target)
    except FieldExtractionError as e:
        return None, [_field_error(e, plan, path)]

    if plan.pattern is None:
        try:
            return parse_value(raw, plan.value_type, plan.parser), []
        except ParseError as e:
            return None, [_field_error(e, plan, path)]

    try:
        groups = capture(raw, plan.pattern, [sub.name for sub in plan.sub_fields])
    except FieldExtractionError as e:
        return None, [_field_error(e, plan, path)]

    parsed = []
    errors: list[FieldError] = []
    for group, sub in zip(groups, plan.sub_fields):
        try:
            parsed.append(parse_value(group, sub.value_type, sub.parser))
        except ParseError as e:
            errors.append(_field_error(e, plan, _sub_field_path(plan, path, sub.name)))
    if errors:
        return None, errors
    if plan.record is not None:
        return plan.record(*parsed), []
    return dict(zip(plan.value_keys, parsed)), []


def _sub_field_path(plan: FieldPlan, path: str, name: str) -> str:
    if not plan.spreads_captures:
        return f"{path}.{name}"
    # Spread sub-fields are addressed as siblings of the capture field
    level = path.rpartition(".")[0]
    return f"{level}.{name}" if level else name


def _field_error(error: FieldExtractionError, plan: FieldPlan, path: str) -> FieldError:
    details = dict(error.details)
    if isinstance(error, ParseError) and error.target_type:
        details["target_type"] = error.target_type

    logger.debug(f"{path}: {error.kind}: {error.message}")
    return FieldError(
        kind=FieldErrorKind(error.kind),
        path=path,
        selector=plan.selector_text,
        message=f"extracting field `{path}`: {error.message}",
        raw=error.raw,
        details=details,
    )
