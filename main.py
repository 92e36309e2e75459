#!/usr/bin/env python3
"""
Main entry point for Chat Export Parser.

Provides a command-line interface for parsing exports and serving the API.

    python main.py parse _chat.txt --platform android --format csv -o chat.csv
    python main.py serve --port 8000
"""
from typing import Any, Dict, List, Optional, TextIO
import argparse
import csv
import json
import sys
import logging

from chat_export.config import (
    ANON_MODES,
    ORDERS,
    PLATFORMS,
    SLASH_DATE_ORDERS,
    SMILEY_STRATEGIES,
    URL_MODES,
    ParseConfig,
)
from chat_export.errors import ChatParseError
from chat_export.logger_config import setup_logging
from chat_export.pipeline import ParseResult, parse_chat_file
from chat_export.utils import Colors, cell_to_text, format_message_count

OUTPUT_FORMATS = ("json", "csv")

logger = logging.getLogger("chat_export.cli")


def print_section(title: str) -> None:
    """Print a formatted section title to stderr."""
    print(f"\n{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}", file=sys.stderr)
    print(f"{Colors.BOLD}{Colors.HEADER}{title}{Colors.ENDC}", file=sys.stderr)
    print(f"{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}\n", file=sys.stderr)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse exported chat transcripts.")
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file (rotated at 5 MB).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse = subparsers.add_parser("parse", help="Parse an exported chat text file.")
    parse.add_argument("file", help="Path to the exported chat (.txt).")
    parse.add_argument("--platform", default="auto", choices=("auto",) + PLATFORMS)
    parse.add_argument("--language", default="auto", help="Export language (default: auto).")
    parse.add_argument("--smiley-strategy", default="dictionary", choices=SMILEY_STRATEGIES)
    parse.add_argument("--url-mode", default="domain", choices=URL_MODES)
    parse.add_argument("--anon-mode", default="add", choices=ANON_MODES)
    parse.add_argument("--order", default="both", choices=ORDERS)
    parse.add_argument(
        "--consent-text",
        default=None,
        help="Only keep participants who sent exactly this message.",
    )
    parse.add_argument(
        "--slash-date-order",
        default="mdy",
        choices=SLASH_DATE_ORDERS,
        help="How to read d/d/yy dates (default: mdy).",
    )
    parse.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Threads used for field extraction (default: 1).",
    )
    parse.add_argument("--format", default="json", choices=OUTPUT_FORMATS)
    parse.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the table to this file instead of stdout.",
    )

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> ParseConfig:
    return ParseConfig(
        platform=args.platform,
        language=args.language,
        smiley_strategy=args.smiley_strategy,
        url_mode=args.url_mode,
        anon_mode=args.anon_mode,
        order=args.order,
        consent_text=args.consent_text,
        slash_date_order=args.slash_date_order,
        workers=args.workers,
    )


def write_json(result: ParseResult, stream: TextIO) -> None:
    document: Dict[str, Any] = {
        "platform": result.platform,
        "language": result.language,
        "columns": list(result.table.columns),
        "rows": result.table.to_json_rows(),
        "diagnostics": result.diagnostics.to_dict(),
    }
    json.dump(document, stream, ensure_ascii=False, indent=2)
    stream.write("\n")


def write_csv(result: ParseResult, stream: TextIO) -> None:
    columns = list(result.table.columns)
    writer = csv.writer(stream)
    writer.writerow(columns)
    for row in result.table.to_json_rows():
        writer.writerow([cell_to_text(row[name]) for name in columns])


def _print_summary(result: ParseResult) -> None:
    print_section("Parse Summary")
    print(str(result), file=sys.stderr)
    print(
        f"{Colors.OKGREEN}Messages: {format_message_count(len(result.table))}{Colors.ENDC}",
        file=sys.stderr,
    )
    if result.diagnostics.empty_result:
        print(f"{Colors.WARNING}No messages could be parsed.{Colors.ENDC}", file=sys.stderr)


def run_parse(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
        result = parse_chat_file(args.file, config=config)
    except ChatParseError as e:
        print(f"{Colors.FAIL}Error ({e.stage}): {e.message}{Colors.ENDC}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"{Colors.FAIL}Error (configuration): {e}{Colors.ENDC}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"{Colors.FAIL}Error: cannot read {args.file}: {e}{Colors.ENDC}", file=sys.stderr)
        return 1

    writer = write_csv if args.format == "csv" else write_json
    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            writer(result, f)
        logger.info(f"Wrote {len(result.table)} rows to {args.output}")
    else:
        writer(result, sys.stdout)

    _print_summary(result)
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("chat_export.api:app", host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None):
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    setup_logging(log_file=args.log_file)

    if args.command == "serve":
        sys.exit(run_serve(args))
    sys.exit(run_parse(args))


if __name__ == '__main__':
    main()
