# SPDX-License-Identifier: Apache-2.0
"""
Contract PDF - CLI Tool

Fills a PDF template with record data and appends supplementary documents.

Usage:
    contract-pdf generate --template <template.json> --record <record.json> [options]
    contract-pdf inspect <base.pdf> [--scale 1.5]
    contract-pdf variables [--definitions <definitions.json>]

Examples:
    contract-pdf generate -t contract.json -r student.json -o out.pdf
    contract-pdf generate -t contract.json --base base.pdf -r student.json --date 2026-01-15
    contract-pdf inspect base.pdf
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, NoReturn, Optional, Sequence

from dotenv import load_dotenv

from contract_pdf.core.authoring import available_variables
from contract_pdf.core.models import DataRecord, FieldDefinition, FieldGeometryError, Template
from contract_pdf.core.preview import DEFAULT_PREVIEW_SCALE, PageRasterizer
from contract_pdf.core.resolver import ArabicDateFormatter, IsoDateFormatter
from contract_pdf.fonts.cascade import FontCache, FontCascadeConfig, build_default_cascade
from contract_pdf.fonts.sources import DEFAULT_EMBEDDED_FONT_PATH, HttpFontStore
from contract_pdf.pipeline.assembler import AssemblerConfig, DocumentAssembler
from contract_pdf.pipeline.errors import PipelineError

logger = logging.getLogger(__name__)

# Environment variables
FONT_PATH_ENV = "CONTRACT_PDF_FONT_PATH"
FONT_STORE_URL_ENV = "CONTRACT_PDF_FONT_STORE_URL"

DEFAULT_OUTPUT = "contract.pdf"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments (default: sys.argv[1:]).

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="contract-pdf",
        description="Fill PDF templates with record data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Environment Variables:
  {FONT_PATH_ENV}       Bundled font file (TTF)
  {FONT_STORE_URL_ENV}  Remote font store endpoint
""",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate
    gen = subparsers.add_parser("generate", help="Generate a filled document")
    gen.add_argument(
        "-t",
        "--template",
        type=Path,
        required=True,
        help="Template JSON (fields, and the base document unless --base is given)",
    )
    gen.add_argument(
        "--base",
        type=Path,
        help="Base PDF overriding the template's embedded document",
    )
    gen.add_argument(
        "-r",
        "--record",
        type=Path,
        required=True,
        help="Record JSON",
    )
    gen.add_argument(
        "-d",
        "--definitions",
        type=Path,
        help="Custom field definitions JSON (list of {id, label})",
    )
    gen.add_argument(
        "--stamp",
        type=Path,
        help="Stamp image drawn into stamp fields",
    )
    gen.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help=f"Output file path (default: {DEFAULT_OUTPUT})",
    )
    gen.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Date used for date placeholders, YYYY-MM-DD (default: today)",
    )
    gen.add_argument(
        "--date-format",
        default="arabic",
        choices=["arabic", "iso"],
        help="Rendering of date placeholders (default: arabic)",
    )
    gen.add_argument(
        "--font",
        type=Path,
        help=(
            f"Font file for the embedded stages (or set {FONT_PATH_ENV}). "
            "No font ships with the package; without one the embedded stages "
            "report not found and only remote sources can supply a font"
        ),
    )
    gen.add_argument(
        "--font-store-url",
        help=f"Remote font store endpoint (or set {FONT_STORE_URL_ENV})",
    )
    gen.add_argument(
        "--no-remote-fonts",
        action="store_true",
        help="Only use the bundled font",
    )
    gen.add_argument(
        "--captions",
        action="store_true",
        help="Caption supplementary pages",
    )
    gen.add_argument(
        "--subset-font",
        action="store_true",
        help="Embed only the glyphs the document uses",
    )
    gen.add_argument(
        "--report",
        type=Path,
        help="Write the generation report as JSON",
    )

    # inspect
    insp = subparsers.add_parser("inspect", help="Show page sizes and preview raster sizes")
    insp.add_argument("input", type=Path, help="PDF file")
    insp.add_argument(
        "--scale",
        type=float,
        default=DEFAULT_PREVIEW_SCALE,
        help=f"Preview render scale (default: {DEFAULT_PREVIEW_SCALE})",
    )

    # variables
    var = subparsers.add_parser("variables", help="List placeholders available for templates")
    var.add_argument(
        "-d",
        "--definitions",
        type=Path,
        help="Custom field definitions JSON",
    )

    return parser.parse_args(argv)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_definitions(path: Optional[Path]) -> list[FieldDefinition]:
    """Load custom field definitions from a JSON list or {"customFields": [...]}."""
    if path is None:
        return []
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("customFields", [])
    return [FieldDefinition.from_dict(item) for item in data]


def build_cascade_config(args: argparse.Namespace) -> FontCascadeConfig:
    """Build the font cascade configuration from flags and environment."""
    font_path = args.font or os.environ.get(FONT_PATH_ENV)
    config = FontCascadeConfig(
        embedded_path=Path(font_path) if font_path else DEFAULT_EMBEDDED_FONT_PATH,
    )
    if args.no_remote_fonts:
        config.cdn_urls = ()
    return config


async def run_generate(args: argparse.Namespace) -> int:
    """Run the generate command."""
    for path in (args.template, args.record, args.base, args.definitions, args.stamp):
        if path is not None and not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    try:
        base = args.base.read_bytes() if args.base else None
        template = Template.from_dict(_read_json(args.template), pdf_bytes=base)
        record = DataRecord.from_dict(_read_json(args.record))
        definitions = load_definitions(args.definitions)
    except (ValueError, KeyError, TypeError, FieldGeometryError) as e:
        print(f"Error: Invalid input: {e}", file=sys.stderr)
        return 1

    store_url = None
    if not args.no_remote_fonts:
        store_url = args.font_store_url or os.environ.get(FONT_STORE_URL_ENV)

    cascade_config = build_cascade_config(args)
    cascade = build_default_cascade(
        cascade_config,
        cache=FontCache(cascade_config.cache_floor_bytes),
        store=HttpFontStore(store_url) if store_url else None,
    )
    fixed_date = args.date
    assembler = DocumentAssembler(
        cascade,
        config=AssemblerConfig(captions=args.captions, subset_font=args.subset_font),
        date_formatter=IsoDateFormatter() if args.date_format == "iso" else ArabicDateFormatter(),
        today=(lambda: fixed_date) if fixed_date else None,
        stamp_image=args.stamp.read_bytes() if args.stamp else None,
    )

    try:
        result = await assembler.generate(template, record, definitions)
    except PipelineError as e:
        print(f"Error: Generation failed: {e}", file=sys.stderr)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(result.pdf_bytes)

    report = result.report
    print(f"Complete: {args.output}")
    print(f"  Pages: {report.page_count} ({report.base_page_count} base)")
    print(f"  Fields: {len(report.rendered)}/{len(report.fields)} rendered")
    for outcome in report.misses:
        print(f"  Unmatched: {outcome.variable} (page {outcome.page})")
    for outcome in report.failures:
        print(f"  Failed: {outcome.variable}: {outcome.error or outcome.status.value}")
    print(f"  Font: {report.font_source}")
    if report.font_fallback:
        for attempt in report.font_attempts:
            print(f"    {attempt}")

    if args.report:
        args.report.write_text(
            json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
    return 0


def run_inspect(args: argparse.Namespace) -> int:
    """Run the inspect command."""
    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1

    pdf_bytes = args.input.read_bytes()
    rasterizer = PageRasterizer(scale=args.scale)
    try:
        first = rasterizer.render(pdf_bytes, 1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Pages: {first.page_count}")
    for page in range(1, first.page_count + 1):
        preview = first if page == 1 else rasterizer.render(pdf_bytes, page)
        print(
            f"  Page {page}: {preview.page_width:g}x{preview.page_height:g} pt, "
            f"viewport {preview.width}x{preview.height} px"
        )
    return 0


def run_variables(args: argparse.Namespace) -> int:
    """Run the variables command."""
    try:
        definitions = load_definitions(args.definitions)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: Invalid definitions: {e}", file=sys.stderr)
        return 1

    for option in available_variables(definitions):
        suffix = " (custom)" if option.custom else ""
        print(f"{option.token}\t{option.label}{suffix}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if args.command == "generate":
        exit_code = asyncio.run(run_generate(args))
    elif args.command == "inspect":
        exit_code = run_inspect(args)
    else:
        exit_code = run_variables(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
