#!/usr/bin/env python3
"""
CLI script to run a schema over HTML files.

Reads a JSON schema, compiles it once, extracts from every file given and
prints (or saves) one JSON record per file.

Usage:
    python run_extractor.py --schema product.json page1.html page2.html
    python run_extractor.py -s product.json pages/*.html -o results.json
    python run_extractor.py -s product.json page.html --parsers myproject.parsers

Custom parsers named in the schema are looked up in the PARSERS dict of the
module passed with --parsers.

Exit status: 0 when every file extracted cleanly, 1 when any file had field
errors or could not be read, 2 when the schema or the parsers module cannot
be loaded.
"""

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Load .env file automatically
from dotenv import load_dotenv
load_dotenv()

from html_extractor.main import HTMLExtractor
from html_extractor.document import PARSER_BACKENDS
from html_extractor.exceptions import SchemaError


def _load_parsers(module_name: Optional[str]) -> dict:
    if not module_name:
        return {}
    module = importlib.import_module(module_name)
    return dict(getattr(module, "PARSERS", {}))


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Extract typed data from HTML files with a schema")
    parser.add_argument("files", nargs="+", help="HTML files to process")
    parser.add_argument("--schema", "-s", required=True, help="JSON schema file")
    parser.add_argument("--output", "-o", help="Output JSON file (default: print to stdout)")
    parser.add_argument("--parser-backend", "-p", choices=PARSER_BACKENDS,
                        help="HTML tree builder (default: HTML_EXTRACTOR_PARSER or html5lib)")
    parser.add_argument("--parsers", help="Module whose PARSERS dict holds named custom parsers")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging (default: HTML_EXTRACTOR_LOG_LEVEL or INFO)")
    args = parser.parse_args(argv)

    try:
        schema_text = Path(args.schema).read_text(encoding="utf-8")
    except OSError as e:
        print(f"✗ Cannot read schema: {e}", file=sys.stderr)
        return 2

    try:
        parsers = _load_parsers(args.parsers)
    except ImportError as e:
        print(f"✗ Cannot import parsers module: {e}", file=sys.stderr)
        return 2

    try:
        extractor = HTMLExtractor(
            schema_text,
            parsers=parsers,
            parser_backend=args.parser_backend,
            log_level=logging.DEBUG if args.verbose else None,
        )
    except SchemaError as e:
        print(f"✗ Invalid schema: {e.message}", file=sys.stderr)
        return 2

    results = []
    failed = 0

    for filepath in args.files:
        path = Path(filepath)
        print(f"Extracting: {path.name}", file=sys.stderr)

        try:
            outcome = extractor.extract_file(path)
        except OSError as e:
            failed += 1
            results.append({"file": path.name, "status": "error", "error": str(e)})
            print(f"  ✗ Error: {e}", file=sys.stderr)
            continue

        data = outcome.model_dump(mode="json")
        results.append({
            "file": path.name,
            "status": "success" if outcome.ok else "partial",
            "values": data["values"],
            "errors": data["errors"],
        })

        if outcome.ok:
            print(f"  ✓ {len(outcome.values)} fields", file=sys.stderr)
        else:
            failed += 1
            print(f"  ✗ {len(outcome.errors)} field error(s)", file=sys.stderr)
            for error in outcome.errors:
                print(f"    - {error.path}: {error.message}", file=sys.stderr)

    # ensure_ascii=False preserves unicode characters in the JSON
    output = json.dumps(results, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"\nSaved to: {args.output}", file=sys.stderr)
    else:
        print(output)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
