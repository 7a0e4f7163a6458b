"""Render vulnerability records as CSV rows.

Each entry of a page's ``vulnerabilities`` list becomes one row.  Numbers
are written bare, everything else is double-quoted with embedded quotes
doubled, and unresolved fields leave the cell empty.
"""

import json
import os
import re
from collections.abc import Mapping
from typing import Any

from .errors import EncodingError
from .projection import is_empty, project
from .schema import RowIndex, Schema

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class RowCounter:
    """Running row number shared by every row written during one run.

    Attributes:
        value: Number the next row-index cell will receive.
    """

    def __init__(self, start: int = 1):
        self.value = start

    def take(self) -> int:
        """Return the current value and advance by one."""
        current = self.value
        self.value += 1
        return current

    def __repr__(self) -> str:
        return f"RowCounter(value={self.value})"


def is_numeric(value: Any) -> bool:
    """Check whether a value is written without quotes.

    Args:
        value: Projected cell value.

    Returns:
        True for ints, floats, and strings that look like decimal numbers.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value.strip()))
    return False


def quote(text: str) -> str:
    """Wrap ``text`` in double quotes, doubling any embedded quotes."""
    return '"' + text.replace('"', '""') + '"'


def render_cell(value: Any) -> str:
    """Render one projected value as a CSV cell.

    Args:
        value: Result of :func:`~nvdgrab.projection.project`.

    Returns:
        Cell text without the separating comma.
    """
    if is_empty(value):
        return ""
    if is_numeric(value):
        return str(value).strip()
    if isinstance(value, bool):
        return quote("true" if value else "false")
    if isinstance(value, (Mapping, list, tuple)):
        return quote(json.dumps(value, separators=(",", ":"), ensure_ascii=False))
    return quote(str(value))


def encode_record(
    record: Any,
    schema: Schema,
    counter: RowCounter,
    line_terminator: str = os.linesep,
) -> str:
    """Render a single vulnerability entry as one CSV row.

    Never raises on missing or oddly typed fields; those cells stay empty.

    Args:
        record: One entry from the ``vulnerabilities`` list.
        schema: Column schema.
        counter: Row counter advanced once per row-index column.
        line_terminator: Appended after the last cell.

    Returns:
        The rendered row including its terminator.
    """
    cells = []
    for spec in schema.values():
        if isinstance(spec, RowIndex):
            cells.append(str(counter.take()))
        else:
            cells.append(render_cell(project(record, spec.keys)))
    return ",".join(cells) + line_terminator


def encode_page(
    payload: Any,
    schema: Schema,
    counter: RowCounter,
    line_terminator: str = os.linesep,
) -> list[str]:
    """Render every vulnerability in a decoded API page.

    Args:
        payload: Decoded JSON body of one page.
        schema: Column schema.
        counter: Row counter shared across the whole run.
        line_terminator: Row terminator.

    Returns:
        One rendered row per entry, in page order.

    Raises:
        EncodingError: If ``payload`` is not a mapping with a
            ``vulnerabilities`` list.
    """
    if not isinstance(payload, Mapping):
        raise EncodingError(f"Page payload is not a JSON object (got {type(payload).__name__})")
    vulns = payload.get("vulnerabilities")
    if not isinstance(vulns, list):
        raise EncodingError("Page payload has no 'vulnerabilities' list")
    return [encode_record(v, schema, counter, line_terminator) for v in vulns]


def encode_header(schema: Schema, line_terminator: str = os.linesep) -> str:
    """Render the header row (column names joined by commas)."""
    return ",".join(schema.names) + line_terminator
