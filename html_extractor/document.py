"""
Document tree access.

Thin seam over BeautifulSoup and soupsieve: parsing markup into a tree,
compiling CSS selectors and running them against a node.  Everything else in
the engine sees nodes only through these functions and the bs4 Tag API.
"""

import re
from typing import Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

from .config import get_settings
from .logger import get_module_logger

logger = get_module_logger("document")

# Tree builders BeautifulSoup can use.  html5lib parses like a browser and is
# the default; lxml is faster; html.parser needs nothing beyond the stdlib.
PARSER_BACKENDS = ("html5lib", "lxml", "html.parser")

# WHATWG encoding spec: browsers silently remap these charset labels.
# https://encoding.spec.whatwg.org/#names-and-labels
WHATWG_CHARSET_MAP = {
    'iso-8859-1': 'windows-1252',
    'iso8859-1': 'windows-1252',
    'iso88591': 'windows-1252',
    'latin-1': 'windows-1252',
    'latin1': 'windows-1252',
    'us-ascii': 'windows-1252',
    'ascii': 'windows-1252',
    'iso-8859-9': 'windows-1254',
    'iso-8859-11': 'windows-874',
}

META_CHARSET = re.compile(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', re.IGNORECASE)
META_CONTENT_CHARSET = re.compile(
    r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)', re.IGNORECASE
)


def parse(html: str, parser: Optional[str] = None) -> BeautifulSoup:
    """
    Parse markup into a document tree.

    Args:
        html: Markup string
        parser: Tree builder name; defaults to the configured backend

    Returns:
        BeautifulSoup root node
    """
    backend = parser or get_settings().parser_backend
    if backend not in PARSER_BACKENDS:
        raise ValueError(f"Unknown parser backend '{backend}', expected one of {PARSER_BACKENDS}")
    logger.debug(f"Parsing {len(html)} chars with {backend}")
    return BeautifulSoup(html, backend)


def compile_selector(selector: str) -> sv.SoupSieve:
    """Compile a CSS selector.  Raises soupsieve.SelectorSyntaxError when invalid."""
    return sv.compile(selector)


def select(node: Tag, selector: sv.SoupSieve) -> list[Tag]:
    """
    Match a compiled selector against the descendants of `node`.

    The node itself is never a candidate, so nested schemas only ever see
    their own subtree.  Results come back in document order.
    """
    return selector.select(node)


def detect_charset(raw_bytes: bytes) -> str:
    """
    Detect the declared charset of raw HTML bytes.

    Scans the first 2048 bytes for <meta charset=...> or the legacy
    <meta http-equiv="Content-Type" content="...; charset=..."> form, then
    applies the WHATWG label mapping (e.g. iso-8859-1 → windows-1252) so the
    document decodes the way a browser would show it.

    Returns the browser-equivalent charset or 'utf-8' as default.
    """
    # Charset declarations are looked for within the first 2048 bytes
    head_str = raw_bytes[:2048].decode('ascii', errors='ignore')

    m = META_CHARSET.search(head_str) or META_CONTENT_CHARSET.search(head_str)
    if not m:
        return 'utf-8'

    charset = m.group(1).strip().lower()
    return WHATWG_CHARSET_MAP.get(charset, charset)


def decode_document(raw_bytes: bytes) -> tuple[str, str]:
    """Decode raw HTML bytes with their declared charset.  Returns (html, charset)."""
    charset = detect_charset(raw_bytes)
    try:
        return raw_bytes.decode(charset, errors='replace'), charset
    except LookupError:
        # Declared an encoding Python does not know
        logger.warning(f"Unknown charset '{charset}', decoding as utf-8")
        return raw_bytes.decode('utf-8', errors='replace'), 'utf-8'
