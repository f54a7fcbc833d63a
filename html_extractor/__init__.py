"""
HTML Extractor

A declarative engine for pulling typed data out of HTML.
- Compiler: validates a schema once and builds reusable field plans
- Runner:   evaluates the plans against a document tree
- Stages:   collector → target → capture → value parser, one per field

Public API surface:
  Orchestrator    : HTMLExtractor
  Functions       : compile_schema, extract, extract_html, extract_model, extract_from_str
  Schema models   : Schema, FieldSpec, SubField, TypeDescriptor, CollectorPolicy, target modes
  Outcome models  : ExtractionOutcome, FieldError
  Error types     : SchemaError (compile time), SchemaExtractionError (aggregate)
"""

# --- Orchestrator and engine functions ---
from .main import HTMLExtractor
from .compiler import compile_schema, CompiledSchema
from .runner import extract, extract_html, extract_model, extract_from_str
from .parsers import ParserRegistry

# --- Schema models (what to extract) ---
from .schemas import (
    Schema,
    FieldSpec,
    SubField,
    TypeDescriptor,
    ValueKind,
    CollectorPolicy,
    TextTarget,
    AttributeTarget,
    InnerMarkupTarget,
    OuterMarkupTarget,
    ElementTarget,
    PresenceTarget,
)

# --- Outcome models (what came out) ---
from .schemas import ExtractionOutcome, FieldError, FieldErrorKind

# --- Exceptions ---
from .exceptions import HTMLExtractorError, SchemaError, SchemaExtractionError

__version__ = "0.1.0"
__all__ = [
    "HTMLExtractor",
    "compile_schema",
    "CompiledSchema",
    "extract",
    "extract_html",
    "extract_model",
    "extract_from_str",
    "ParserRegistry",
    "Schema",
    "FieldSpec",
    "SubField",
    "TypeDescriptor",
    "ValueKind",
    "CollectorPolicy",
    "TextTarget",
    "AttributeTarget",
    "InnerMarkupTarget",
    "OuterMarkupTarget",
    "ElementTarget",
    "PresenceTarget",
    "ExtractionOutcome",
    "FieldError",
    "FieldErrorKind",
    "HTMLExtractorError",
    "SchemaError",
    "SchemaExtractionError",
]
