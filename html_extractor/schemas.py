"""
Pydantic schemas defining the extraction contract.

Schema / FieldSpec: what to extract (input to the compiler)
ExtractionOutcome / FieldError: what came out (output of the runner)

Data flow through the engine:
  Schema → compile_schema() → CompiledSchema
  CompiledSchema + document tree → extract() → ExtractionOutcome
"""

from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --- Target modes ---
# A closed set of variants keyed by "mode".  The Target Extractor dispatches on
# the variant class; adding a mode means adding a model here and a branch there.

class TextTarget(BaseModel):
    """Descendant text of the node, trimmed.  `node` picks one text node instead."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["text"] = "text"
    node: Optional[int] = Field(default=None, ge=0)


class AttributeTarget(BaseModel):
    """Value of one attribute of the node."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["attribute"] = "attribute"
    name: str = Field(min_length=1)


class InnerMarkupTarget(BaseModel):
    """Markup of the node's children."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["inner_markup"] = "inner_markup"


class OuterMarkupTarget(BaseModel):
    """Markup of the node including its own tag."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["outer_markup"] = "outer_markup"


class ElementTarget(BaseModel):
    """The node itself, handed to a nested schema as its search root."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["element"] = "element"


class PresenceTarget(BaseModel):
    """Whether the selector matched anything at all."""
    model_config = ConfigDict(frozen=True)
    mode: Literal["presence"] = "presence"


TargetMode = Annotated[
    Union[TextTarget, AttributeTarget, InnerMarkupTarget,
          OuterMarkupTarget, ElementTarget, PresenceTarget],
    Field(discriminator="mode"),
]


class CollectorPolicy(str, Enum):
    """Cardinality contract for a field's matches."""
    SINGLE = "single"        # exactly one
    OPTIONAL = "optional"    # zero or one
    COLLECT = "collect"      # zero or more, document order


class ValueKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    SCHEMA = "schema"    # nested sub-schema
    TUPLE = "tuple"      # capture sub-fields


SCALAR_KINDS = (ValueKind.INTEGER, ValueKind.FLOAT, ValueKind.STRING, ValueKind.BOOLEAN)

# A custom parser is either a callable or the name of one in the parser
# registry given to compile_schema() (schemas loaded from JSON can only name).
ParserRef = Union[str, Callable[[str], Any]]


class TypeDescriptor(BaseModel):
    """
    Declared shape of a field value.

    Accepts shorthand on input:
      "integer"         → TypeDescriptor(kind=integer)
      "list[float]"     → TypeDescriptor(kind=float, many=True)
      <Schema instance> → TypeDescriptor(kind=schema, nested=<schema>)
    """
    model_config = ConfigDict(frozen=True)
    kind: ValueKind
    many: bool = False
    nested: Optional["Schema"] = None

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, Schema):
            return {"kind": ValueKind.SCHEMA, "nested": data}
        if isinstance(data, str):
            text = data.strip()
            if text.startswith("list[") and text.endswith("]"):
                return {"kind": text[5:-1].strip(), "many": True}
            return {"kind": text}
        return data

    def describe(self) -> str:
        """Human-readable type name used in error messages."""
        name = self.kind.value
        if self.kind == ValueKind.SCHEMA and self.nested is not None:
            name = self.nested.name
        return f"list[{name}]" if self.many else name


class SubField(BaseModel):
    """One element of a capture tuple, fed by one regex group."""
    model_config = ConfigDict(frozen=True)
    name: str
    value_type: TypeDescriptor = Field(default_factory=lambda: TypeDescriptor(kind=ValueKind.STRING))
    parser: Optional[ParserRef] = None


class FieldSpec(BaseModel):
    """
    Declarative description of one field.

    `value_type` may be left out: it is derived from target, capture and
    collector.  When given, the compiler checks it against them.
    """
    model_config = ConfigDict(frozen=True)
    name: str
    selector: str
    target: TargetMode = Field(default_factory=TextTarget)
    capture: Optional[str] = None
    sub_fields: list[SubField] = Field(default_factory=list)
    collector: CollectorPolicy = CollectorPolicy.SINGLE
    value_type: Optional[TypeDescriptor] = None
    parser: Optional[ParserRef] = None

    @field_validator("target", mode="before")
    @classmethod
    def _target_shorthand(cls, value: Any) -> Any:
        # "text", "inner_markup", ... or "attribute:href"
        if isinstance(value, str):
            mode, _, arg = value.partition(":")
            if mode == "attribute":
                return {"mode": mode, "name": arg}
            return {"mode": mode}
        return value

    @field_validator("sub_fields", mode="before")
    @classmethod
    def _sub_field_shorthand(cls, value: Any) -> Any:
        # {"key": "string", "value": "integer"} → list of SubField
        if isinstance(value, dict):
            return [{"name": k, "value_type": v} for k, v in value.items()]
        return value


class Schema(BaseModel):
    """Ordered field definitions; a field may nest another Schema."""
    model_config = ConfigDict(frozen=True)
    name: str = "Extracted"
    fields: list[FieldSpec] = Field(default_factory=list)


TypeDescriptor.model_rebuild()
SubField.model_rebuild()
FieldSpec.model_rebuild()
Schema.model_rebuild()


# --- Extraction output models ---

class FieldErrorKind(str, Enum):
    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    MISSING_ATTRIBUTE = "missing_attribute"
    MISSING_TEXT_NODE = "missing_text_node"
    PATTERN_NOT_MATCHED = "pattern_not_matched"
    PARSE_ERROR = "parse_error"


class FieldError(BaseModel):
    """One failing field (or collected item) with enough context to debug it."""
    model_config = ConfigDict(frozen=True)
    kind: FieldErrorKind
    path: str                  # e.g. "products[2].price"
    selector: str
    message: str
    raw: Optional[str] = None  # offending extracted string, when there was one
    details: dict = Field(default_factory=dict)


class ExtractionOutcome(BaseModel):
    """
    Result of one extract() call.

    `values` holds every field that succeeded; failing fields are absent and
    described in `errors` instead.
    """
    model_config = ConfigDict(frozen=True)
    values: dict[str, Any] = Field(default_factory=dict)
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_paths(self) -> list[str]:
        return [e.path for e in self.errors]
