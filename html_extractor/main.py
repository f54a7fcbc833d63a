"""
Main orchestrator for the HTML Extractor engine.

Compiles a schema once and runs it over any number of documents, given as
strings, pre-parsed trees or files on disk.  File input goes through charset
detection so documents decode the way a browser would show them.
"""

from pathlib import Path
from typing import Any, Callable, Optional, Union

from bs4 import Tag
from pydantic import BaseModel

from .compiler import CompiledSchema, compile_schema
from .parsers import ParserRegistry
from .schemas import Schema, ExtractionOutcome
from .document import parse, decode_document
from .runner import extract, extract_model
from .config import get_settings
from .logger import get_module_logger, setup_logger

logger = get_module_logger("main")


class HTMLExtractor:
    """
    Main entry point for schema-driven extraction.

    Coordinates the engine:
    1. Compiler: validates the schema and builds field plans (once)
    2. Document: parses markup into a tree (per document)
    3. Runner: evaluates the plans and aggregates results (per document)
    """

    def __init__(
        self,
        schema: Union[Schema, CompiledSchema, dict, str],
        parsers: Optional[Union[ParserRegistry, dict[str, Callable[[str], Any]]]] = None,
        parser_backend: Optional[str] = None,
        log_level: Optional[int] = None
    ):
        settings = get_settings()
        # An explicit level wins over HTML_EXTRACTOR_LOG_LEVEL
        setup_logger(
            level=log_level if log_level is not None else settings.log_level,
            log_file=settings.log_file
        )

        self.parser_backend = parser_backend or settings.parser_backend
        if isinstance(schema, CompiledSchema):
            self.compiled = schema
        else:
            self.compiled = compile_schema(schema, parsers=parsers)

        logger.info(f"HTMLExtractor initialized for '{self.compiled.name}' ({self.parser_backend})")

    def extract(self, html: Union[str, Tag]) -> ExtractionOutcome:
        """
        Extract every field from markup or a parsed tree.

        Args:
            html: Markup string or document node

        Returns:
            ExtractionOutcome with values and field errors
        """
        return extract(self._root(html), self.compiled)

    def extract_model(self, html: Union[str, Tag]) -> BaseModel:
        """
        Extract into the schema's typed model.

        Raises:
            SchemaExtractionError: if any field failed
        """
        return extract_model(self._root(html), self.compiled)

    def extract_file(self, file_path: Union[str, Path]) -> ExtractionOutcome:
        """Extract from an HTML file, decoding it with its declared charset."""
        file_path = Path(file_path)

        # Read raw bytes so the <meta> charset is known before decoding
        html, charset = decode_document(file_path.read_bytes())
        logger.info(f"Extracting {file_path.name} (charset {charset})")
        return self.extract(html)

    def _root(self, html: Union[str, Tag]) -> Tag:
        if isinstance(html, Tag):
            return html
        return parse(html, self.parser_backend)


def extract_html_file(
    file_path: Union[str, Path],
    schema: Union[Schema, CompiledSchema, dict, str]
) -> ExtractionOutcome:
    """Convenience function to extract from one HTML file."""
    return HTMLExtractor(schema).extract_file(file_path)
