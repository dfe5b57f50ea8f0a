"""Flatten CSV event log content into one mapping per data row."""

from __future__ import annotations

import csv
import io
import re

from sfreceiver.logging import get_logger, log_warning

from .errors import ParseError
from .models import FlattenedLogRow

logger = get_logger(__name__)

# Event log files frequently separate records with blank lines.
_BLANK_LINE_RUN = re.compile(r"(?:\r?\n){2,}")


def collapse_blank_lines(text: str) -> str:
    """Collapse runs of line separators into a single ``\\n``."""
    return _BLANK_LINE_RUN.sub("\n", text)


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        msg = f"log file is not valid UTF-8: {exc}"
        raise ParseError(msg) from exc


def flatten(content: bytes) -> list[FlattenedLogRow]:
    """Parse header-plus-rows delimited text into row mappings.

    The first row names the columns. Each later row maps header names to the
    cell at the same index. Short rows keep only the columns they have and
    long rows drop surplus cells; both are logged rather than raised.

    Raises
    ------
    ParseError
        If the content is not UTF-8 or the CSV structure is broken, for
        example an unterminated quoted field.

    """
    text = collapse_blank_lines(_decode(content))
    reader = csv.reader(io.StringIO(text), strict=True)
    try:
        rows = [row for row in reader if row]
    except csv.Error as exc:
        msg = f"error reading CSV data at line {reader.line_num}: {exc}"
        raise ParseError(msg) from exc

    if not rows:
        return []

    header, *data = rows
    flattened: list[FlattenedLogRow] = []
    for index, row in enumerate(data, start=1):
        if len(row) != len(header):
            log_warning(
                logger,
                "Log file row %d has %d columns but the header has %d",
                index,
                len(row),
                len(header),
            )
        flattened.append(dict(zip(header, row, strict=False)))
    return flattened
