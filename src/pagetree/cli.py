# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Tree CLI.

Usage:
    python -m pagetree.cli extract --url URL [-o PATH | --stdout]
    python -m pagetree.cli extract --html FILE [--base-url URL] [--render] [-o PATH | --stdout]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .browser_session import WAIT_STRATEGIES, BrowserConfig
from .errors import PageTreeError
from .extractor import ExtractionConfig, extract_dom_data, extract_html, extract_rendered_html
from .logging_config import configure, resolve_level
from .postprocess import MERGE_LENGTH_CEILING
from .serializer import resolve_output_path, to_json, write_json
from .tables import RowMode

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "output"


def _browser_config(args: argparse.Namespace) -> BrowserConfig:
    config = BrowserConfig.from_env()
    if args.timeout_ms is not None:
        config.timeout_ms = args.timeout_ms
    if args.wait_until:
        config.wait_until = args.wait_until
    if args.headful:
        config.headless = False
    return config


def _extraction_config(args: argparse.Namespace) -> ExtractionConfig:
    return ExtractionConfig(
        merge_length_ceiling=args.merge_ceiling,
        table_row_mode=RowMode.FIRST if args.first_row_only else RowMode.ALL,
    )


def cmd_extract(args: argparse.Namespace) -> None:
    """Extract a simplified tree from a live URL or an HTML file."""
    config = _extraction_config(args)

    if args.url:
        data = asyncio.run(extract_dom_data(args.url, browser_config=_browser_config(args), config=config))
    else:
        html_path = Path(args.html)
        html = html_path.read_text(encoding="utf-8", errors="replace")
        if args.render:
            data = asyncio.run(extract_rendered_html(html, browser_config=_browser_config(args), config=config))
        else:
            base_uri = args.base_url or html_path.resolve().as_uri()
            data = extract_html(html, base_uri, config)

    if args.stdout:
        print(to_json(data, indent=args.indent))
        return

    default_dir = os.environ.get("PAGETREE_OUTPUT_DIR", "").strip() or DEFAULT_OUTPUT_DIR
    path = write_json(data, resolve_output_path(args.output, default_dir), indent=args.indent)
    print(f"Data successfully written to {path}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Page Tree CLI",
        prog="python -m pagetree.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _extract_epilog = """\
examples:
  %(prog)s --url https://example.com                Write output/simplified-<hash>.json
  %(prog)s --url https://example.com --stdout       Print JSON to stdout
  %(prog)s --url https://example.com -o page.json   Save to a single file
  %(prog)s --html page.html --base-url https://example.com/docs/
"""
    p_extract = subparsers.add_parser(
        "extract",
        help="Extract a simplified DOM tree",
        epilog=_extract_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = p_extract.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", type=str, metavar="URL", help="Render and extract a live URL")
    source.add_argument("--html", type=str, metavar="FILE", help="Extract a local HTML file")
    p_extract.add_argument("--base-url", type=str, metavar="URL", help="Base URI for --html (default: file URI)")
    p_extract.add_argument("--render", action="store_true", help="Render --html in Chromium before extracting")

    sink = p_extract.add_mutually_exclusive_group()
    sink.add_argument("-o", "--output", type=str, metavar="PATH", help="Output file (out.json) or directory (out/)")
    sink.add_argument("--stdout", action="store_true", help="Print JSON to stdout instead of writing a file")
    p_extract.add_argument("--indent", type=int, default=2, help="JSON indentation (default: 2)")

    p_extract.add_argument("--timeout-ms", type=int, default=None, help="Navigation timeout in milliseconds")
    p_extract.add_argument("--wait-until", choices=WAIT_STRATEGIES, help="Navigation wait policy")
    p_extract.add_argument("--headful", action="store_true", help="Show the browser window")
    p_extract.add_argument(
        "--merge-ceiling",
        type=int,
        default=MERGE_LENGTH_CEILING,
        help=f"Max length of a merged text run before it is flushed (default: {MERGE_LENGTH_CEILING})",
    )
    p_extract.add_argument(
        "--first-row-only",
        action="store_true",
        help="Keep only the first data row of each table (historical output)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(json_output=args.json_logs, level=resolve_level(args.verbose))

    commands = {"extract": cmd_extract}
    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (PageTreeError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        if args.verbose:
            logger.exception("Extraction failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
