"""
Schema Compiler: validates a schema once and builds reusable field plans.

Pipeline position: before any document is seen.
Input:  Schema (or a dict / JSON string that validates into one)
Output: CompiledSchema, an immutable arena of FieldPlans plus a typed
        pydantic model mirroring the schema's shape

Every check happens here so that extraction never meets a malformed field:
selector syntax, regex syntax, capture-group count, collector/type shape and
target/type pairing.  The first defect aborts compilation with a SchemaError
naming the field; a partial schema is never returned.
"""

import keyword
import re
from typing import Any, Callable, NamedTuple, Optional, Union

import soupsieve as sv
from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from .schemas import (
    Schema, FieldSpec, SubField, TypeDescriptor, ValueKind, CollectorPolicy, TargetMode,
    ElementTarget, PresenceTarget, SCALAR_KINDS, ParserRef,
)
from .parsers import ParserRegistry
from .document import compile_selector
from .exceptions import SchemaError
from .logger import get_module_logger

logger = get_module_logger("compiler")

PYTHON_TYPES = {
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.STRING: str,
    ValueKind.BOOLEAN: bool,
}

FROZEN = ConfigDict(frozen=True)


class SubFieldPlan(BaseModel):
    """Pre-resolved sub-field of a capture tuple."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    name: str
    value_type: TypeDescriptor
    parser: Optional[Callable[[str], Any]] = None


class FieldPlan(BaseModel):
    """
    One field, ready to run: selector and regex compiled, parser resolved.

    Plans live in CompiledSchema.plans; nested schemas are linked by index
    (`parent`, `children`) rather than by reference.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    index: int
    name: str
    path: str                                  # dotted schema path, e.g. "product.price"
    selector_text: str
    selector: sv.SoupSieve
    target: TargetMode
    collector: CollectorPolicy
    value_type: TypeDescriptor
    pattern: Optional[re.Pattern] = None
    sub_fields: tuple[SubFieldPlan, ...] = ()
    record: Optional[type] = None              # NamedTuple class for collected captures
    parser: Optional[Callable[[str], Any]] = None
    parent: Optional[int] = None
    children: tuple[int, ...] = ()

    @property
    def spreads_captures(self) -> bool:
        """Single/optional capture fields put each sub-field on the enclosing level."""
        return self.pattern is not None and self.collector != CollectorPolicy.COLLECT

    @property
    def value_keys(self) -> list[str]:
        """Keys this plan writes into its level's values."""
        if self.spreads_captures:
            return [sub.name for sub in self.sub_fields]
        return [self.name]


class CompiledSchema(BaseModel):
    """
    Immutable, reusable result of compile_schema().

    Safe to share across threads and extraction calls: nothing in it is
    mutated after construction.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    name: str
    plans: tuple[FieldPlan, ...]
    roots: tuple[int, ...]
    model: type[BaseModel]
    source: Schema

    def top_level(self) -> list[FieldPlan]:
        return [self.plans[i] for i in self.roots]

    def children_of(self, plan: FieldPlan) -> list[FieldPlan]:
        return [self.plans[i] for i in plan.children]

    @property
    def field_names(self) -> list[str]:
        """Top-level result keys, in declaration order."""
        return [key for plan in self.top_level() for key in plan.value_keys]


def compile_schema(
    schema_source: Union[Schema, dict, str],
    parsers: Optional[Union[ParserRegistry, dict[str, Callable[[str], Any]]]] = None
) -> CompiledSchema:
    """
    Validate a schema and build its field plans.

    Args:
        schema_source: Schema model, plain dict, or JSON string
        parsers: Named custom parsers referenced by the schema

    Returns:
        CompiledSchema

    Raises:
        SchemaError: on the first defect found
    """
    schema = _load_source(schema_source)
    registry = parsers if isinstance(parsers, ParserRegistry) else ParserRegistry(parsers)

    builder = _Builder(registry)
    roots, model = builder.compile_level(schema, parent=None, prefix="", stack=[])

    compiled = CompiledSchema(
        name=schema.name,
        plans=tuple(builder.arena),
        roots=tuple(roots),
        model=model,
        source=schema,
    )
    logger.info(f"Compiled schema '{schema.name}': {len(roots)} fields, {len(compiled.plans)} plans")
    return compiled


def _load_source(schema_source: Union[Schema, dict, str]) -> Schema:
    if isinstance(schema_source, Schema):
        return schema_source
    try:
        if isinstance(schema_source, str):
            return Schema.model_validate_json(schema_source)
        if isinstance(schema_source, dict):
            return Schema.model_validate(schema_source)
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise SchemaError(
            f"invalid schema at `{errors[0]['loc']}`: {errors[0]['msg']}",
            details={"errors": errors}
        ) from e
    raise SchemaError(f"unsupported schema source type {type(schema_source).__name__}")


def _check_identifier(name: str, path: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name) or name.startswith("_"):
        raise SchemaError(f"`{name}` is not a valid field name", field=path)
    if hasattr(BaseModel, name):
        raise SchemaError(f"`{name}` is reserved and cannot be used as a field name", field=path)


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_") if part) or "Record"


class _Builder:
    """Accumulates plans into one arena while walking the schema tree."""

    def __init__(self, registry: ParserRegistry):
        self.registry = registry
        self.arena: list[Optional[FieldPlan]] = []

    def compile_level(
        self,
        schema: Schema,
        parent: Optional[int],
        prefix: str,
        stack: list[int]
    ) -> tuple[list[int], type[BaseModel]]:
        """Compile one schema level; returns its plan indices and model class."""
        if id(schema) in stack:
            raise SchemaError("schema nests itself", field=prefix or schema.name)
        stack = stack + [id(schema)]

        indices = []
        annotations: dict[str, Any] = {}
        seen = set()

        for spec in schema.fields:
            path = f"{prefix}.{spec.name}" if prefix else spec.name
            _check_identifier(spec.name, path)
            if spec.name in seen:
                raise SchemaError("duplicate field name", field=path)
            seen.add(spec.name)

            index, field_annotations = self.compile_field(spec, parent, path, stack)
            indices.append(index)
            for key, annotation in field_annotations.items():
                # Spread sub-fields share the level's namespace with plain fields
                if key in annotations:
                    raise SchemaError(f"`{key}` is already defined at this level", field=path)
                annotations[key] = (annotation, ...)

        model_name = schema.name
        if parent is not None and model_name == Schema.model_fields["name"].default:
            model_name = _camel(prefix.rsplit(".", 1)[-1])
        model = create_model(model_name, __config__=FROZEN, **annotations)
        return indices, model

    def compile_field(
        self,
        spec: FieldSpec,
        parent: Optional[int],
        path: str,
        stack: list[int]
    ) -> tuple[int, dict[str, Any]]:
        """Compile one field; returns its arena index and the model annotations it adds."""
        try:
            selector = compile_selector(spec.selector)
        except sv.SelectorSyntaxError as e:
            raise SchemaError(
                f"cannot parse the selector `{spec.selector}`: {e}", field=path
            ) from e

        value_type = _resolve_type(spec, path)

        pattern = None
        sub_fields: tuple[SubFieldPlan, ...] = ()
        record = None
        if spec.capture is not None:
            try:
                pattern = re.compile(spec.capture)
            except re.error as e:
                raise SchemaError(f"cannot parse the regex `{spec.capture}`: {e}", field=path) from e
            if pattern.groups != len(spec.sub_fields):
                raise SchemaError(
                    f"regex `{spec.capture}` has {pattern.groups} capture group(s) "
                    f"but {len(spec.sub_fields)} sub-field(s) are declared",
                    field=path
                )
            names = [sub.name for sub in spec.sub_fields]
            if len(set(names)) != len(names):
                raise SchemaError("duplicate sub-field name", field=path)
            sub_fields = tuple(self.compile_sub_field(sub, path) for sub in spec.sub_fields)
            if spec.collector == CollectorPolicy.COLLECT:
                record = NamedTuple(
                    _camel(spec.name),
                    [(sub.name, _python_type(sub.value_type, sub.parser)) for sub in sub_fields]
                )

        # Reserve the slot first so nested plans get higher indices than their parent
        index = len(self.arena)
        self.arena.append(None)

        children: list[int] = []
        nested_model = None
        if isinstance(spec.target, ElementTarget):
            children, nested_model = self.compile_level(
                value_type.nested, parent=index, prefix=path, stack=stack
            )

        parser = self.resolve_parser(spec.parser, path)

        plan = FieldPlan(
            index=index,
            name=spec.name,
            path=path,
            selector_text=spec.selector,
            selector=selector,
            target=spec.target,
            collector=spec.collector,
            value_type=value_type,
            pattern=pattern,
            sub_fields=sub_fields,
            record=record,
            parser=parser,
            parent=parent,
            children=tuple(children),
        )
        self.arena[index] = plan

        if plan.spreads_captures:
            return index, {
                sub.name: _wrap(_python_type(sub.value_type, sub.parser), spec.collector)
                for sub in sub_fields
            }
        if record is not None:
            item = record
        elif nested_model is not None:
            item = nested_model
        else:
            item = _python_type(value_type, parser)
        return index, {spec.name: _wrap(item, spec.collector)}

    def compile_sub_field(self, sub: SubField, path: str) -> SubFieldPlan:
        sub_path = f"{path}.{sub.name}"
        _check_identifier(sub.name, sub_path)
        if sub.value_type.kind not in SCALAR_KINDS or sub.value_type.many:
            raise SchemaError(
                f"sub-fields must be scalar, got {sub.value_type.describe()}", field=sub_path
            )
        return SubFieldPlan(
            name=sub.name,
            value_type=sub.value_type,
            parser=self.resolve_parser(sub.parser, sub_path),
        )

    def resolve_parser(self, ref: Optional[ParserRef], path: str) -> Optional[Callable[[str], Any]]:
        if ref is None:
            return None
        if callable(ref):
            return ref
        parser = self.registry.get(ref)
        if parser is None:
            known = ", ".join(self.registry.names()) or "none registered"
            raise SchemaError(f"unknown parser `{ref}` (known: {known})", field=path)
        return parser


def _resolve_type(spec: FieldSpec, path: str) -> TypeDescriptor:
    """Derive or check the value type against target, capture and collector."""
    target = spec.target
    value_type = spec.value_type
    many = spec.collector == CollectorPolicy.COLLECT
    has_capture = spec.capture is not None

    if isinstance(target, PresenceTarget):
        if has_capture or spec.sub_fields or spec.parser is not None:
            raise SchemaError("`presence` target cannot be combined with capture or parser", field=path)
        if spec.collector != CollectorPolicy.SINGLE:
            raise SchemaError("`presence` target only supports the `single` collector", field=path)
        if value_type is not None and (value_type.kind != ValueKind.BOOLEAN or value_type.many):
            raise SchemaError(
                f"`presence` target yields boolean, declared {value_type.describe()}", field=path
            )
        return TypeDescriptor(kind=ValueKind.BOOLEAN)

    if value_type is None:
        if isinstance(target, ElementTarget):
            raise SchemaError("`element` target needs a value_type with a nested schema", field=path)
        kind = ValueKind.TUPLE if has_capture else ValueKind.STRING
        value_type = TypeDescriptor(kind=kind, many=many)

    if many and not value_type.many:
        raise SchemaError(
            f"collector `collect` requires a sequence value type, declared {value_type.describe()}",
            field=path
        )
    if not many and value_type.many:
        raise SchemaError(
            f"collector `{spec.collector.value}` requires a non-sequence value type, "
            f"declared {value_type.describe()}",
            field=path
        )

    if isinstance(target, ElementTarget):
        if value_type.kind != ValueKind.SCHEMA or value_type.nested is None:
            raise SchemaError(
                f"`element` target requires a nested schema, declared {value_type.describe()}",
                field=path
            )
        if has_capture or spec.parser is not None:
            raise SchemaError("`element` target cannot be combined with capture or parser", field=path)
    elif value_type.kind == ValueKind.SCHEMA:
        raise SchemaError("a nested schema requires the `element` target", field=path)

    if has_capture:
        if value_type.kind != ValueKind.TUPLE:
            raise SchemaError(
                f"capture fields yield tuples, declared {value_type.describe()}", field=path
            )
        if not spec.sub_fields:
            raise SchemaError("capture requires at least one sub-field", field=path)
        if spec.parser is not None:
            raise SchemaError("capture fields take parsers per sub-field, not per field", field=path)
    elif value_type.kind == ValueKind.TUPLE:
        raise SchemaError("value kind `tuple` requires a capture regex", field=path)
    elif spec.sub_fields:
        raise SchemaError("sub-fields are declared but no capture regex is given", field=path)

    return value_type


def _python_type(value_type: TypeDescriptor, parser: Optional[Callable]) -> Any:
    # Custom parsers decide their own result type
    if parser is not None:
        return Any
    return PYTHON_TYPES[value_type.kind]


def _wrap(item: Any, collector: CollectorPolicy) -> Any:
    if collector == CollectorPolicy.COLLECT:
        return list[item]
    if collector == CollectorPolicy.OPTIONAL:
        return Optional[item]
    return item
