"""Command-line entry point.

Usage::

    nvdgrab [output] [year_start] [year_end] [schema] [extra_query]

    nvdgrab somedata.csv 1988 2023 headers.txt "noRejected&"
    nvdgrab

Every argument is positional and optional; an empty string selects the
default.  Arguments are validated before the output file is opened or
any request is made.
"""

import argparse
import datetime as dt
import re
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from .buckets import MonthBucket
from .config import FetchConfig, load_config
from .downloaders import PageFetcher, requests_session
from .errors import ArgumentError, NvdGrabError
from .log import setup_logging
from .pipeline import run
from .schema import Schema, default_schema, load_schema

DEFAULT_OUTPUT = "vulnData.csv"
DEFAULT_START_YEAR = 1988
EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_INTERRUPTED = 130

_YEAR_RE = re.compile(r"^[0-9]+$")
_BAR_WIDTH = 25


def _default_end_year() -> int:
    return dt.datetime.now().year


def _parse_year(value: str | None, default: int, label: str) -> int:
    """Parse a year argument, falling back to ``default`` when empty."""
    if value is None or value.strip() == "":
        return default
    if not _YEAR_RE.match(value.strip()):
        raise ArgumentError(f"Please enter a proper {label} year (digits only), got {value!r}")
    year = int(value)
    if not dt.MINYEAR <= year <= dt.MAXYEAR:
        raise ArgumentError(
            f"Please enter a proper {label} year between {dt.MINYEAR} and {dt.MAXYEAR}, got {value!r}"
        )
    return year


def _resolve_schema(value: str | None) -> Schema:
    """Load the schema named on the command line, or the built-in one."""
    if value is None or value.strip() == "":
        return default_schema()
    path = Path(value)
    if not path.is_file():
        raise ArgumentError(f"Please enter a schema file that exists: {value}")
    return load_schema(path)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="nvdgrab",
        description="Export NVD CVE records month by month into a CSV file.",
    )
    p.add_argument("output", nargs="?", default="", help=f"Output CSV path (default: {DEFAULT_OUTPUT})")
    p.add_argument("year_start", nargs="?", default="", help=f"First year, inclusive (default: {DEFAULT_START_YEAR})")
    p.add_argument("year_end", nargs="?", default="", help="Last year, inclusive (default: current year)")
    p.add_argument("schema", nargs="?", default="", help="Schema file (default: built-in 12-column schema)")
    p.add_argument(
        "extra_query",
        nargs="?",
        default="",
        help='Extra NVD API query parameters, &-terminated (e.g. "noRejected&")',
    )
    return p


class ProgressPrinter:
    """Prints bucket progress and rate-limit countdowns to stdout."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def __call__(self, completed: int, total: int, bucket: MonthBucket) -> None:
        pct = (completed / total) * 100.0 if total else 100.0
        filled = int(pct / 100.0 * _BAR_WIDTH)
        bar = "#" * filled + "." * (_BAR_WIDTH - filled)
        print(f"Completed {bucket.month:02d}, {bucket.year:5d}  Status: [{bar}] {pct:.2f}%", file=self.stream)

    def waiting(self, remaining: float) -> None:
        print(f"  Waiting... {remaining:2.0f} seconds left.", end="\r", file=self.stream, flush=True)


def _print_header(output: Path, year_start: int, year_end: int, schema: Schema, config: FetchConfig) -> None:
    print("=" * 70)
    print(f"• Output file        : {output}")
    print(f"• Years              : {year_start}–{year_end} ({(year_end - year_start + 1) * 12} months)")
    print(f"• Columns            : {len(schema)}")
    print(f"• Extra query        : {config.extra_query or '(none)'}")
    print(f"• API key            : {'yes' if config.authenticated else 'no (5 requests / 30s)'}")
    print("=" * 70)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the exporter.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``).

    Returns:
        Process exit code: 0 on success, otherwise the ``exit_code`` of
        the error that stopped the run.
    """
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        year_start = _parse_year(args.year_start, DEFAULT_START_YEAR, "start")
        year_end = _parse_year(args.year_end, _default_end_year(), "end")
        if year_start > year_end:
            raise ArgumentError(f"Start year {year_start} must be less than or equal to end year {year_end}")
        schema = _resolve_schema(args.schema)
        try:
            config = load_config(extra_query=args.extra_query or None)
        except (OSError, ValueError, ValidationError) as e:
            raise ArgumentError(f"Invalid configuration: {e}") from e
    except NvdGrabError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code

    output = Path(args.output or DEFAULT_OUTPUT)
    _print_header(output, year_start, year_end, schema, config)
    printer = ProgressPrinter()

    try:
        with output.open("w", encoding="utf-8", newline="") as sink, requests_session(config) as session:
            fetcher = PageFetcher(session, config, on_wait=printer.waiting)
            summary = run(year_start, year_end, schema, sink, config, fetcher=fetcher, progress=printer)
    except NvdGrabError as e:
        print(f"\nAborting: {e}", file=sys.stderr)
        print(f"Rows written so far are kept in {output}", file=sys.stderr)
        return e.exit_code
    except OSError as e:
        print(f"\nCould not write {output}: {e}", file=sys.stderr)
        return EXIT_IO_ERROR
    except KeyboardInterrupt:
        print(f"\nInterrupted; rows written so far are kept in {output}", file=sys.stderr)
        return EXIT_INTERRUPTED

    print(f"Wrote {summary.rows_written} rows to {output}")
    incomplete = summary.incomplete_buckets
    if incomplete:
        print(f"  ⚠️ {len(incomplete)} month(s) returned a different row count than totalResults")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
