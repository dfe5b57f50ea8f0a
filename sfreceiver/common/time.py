"""Timestamp helpers for watermarks and Salesforce datetimes.

Watermarks are rendered in the canonical form Salesforce accepts as a SOQL
datetime literal: ISO-8601 with millisecond precision and an explicit ``Z``
suffix, for example ``2024-01-01T00:00:00.000Z``.
"""

from __future__ import annotations

import datetime as dt
import re

_CANONICAL_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$",
)
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def format_timestamp(value: dt.datetime) -> str:
    """Render an aware datetime in the canonical watermark form."""
    if value.tzinfo is None:
        msg = "timestamp must be timezone-aware"
        raise ValueError(msg)
    utc = value.astimezone(dt.UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_canonical_timestamp(text: str) -> dt.datetime:
    """Parse a canonical ``YYYY-MM-DDTHH:MM:SS.mmmZ`` timestamp.

    Raises
    ------
    ValueError
        If ``text`` is not in the canonical form or is not a real date.

    """
    if not _CANONICAL_PATTERN.match(text):
        msg = f"timestamp {text!r} is not in YYYY-MM-DDTHH:MM:SS.mmmZ form"
        raise ValueError(msg)
    return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).astimezone(dt.UTC)


def parse_salesforce_datetime(text: str) -> dt.datetime:
    """Parse a Salesforce datetime such as ``2024-01-02T10:00:00.000+0000``."""
    normalised = text.strip()
    if normalised.endswith("Z"):
        normalised = normalised[:-1] + "+00:00"
    else:
        normalised = _COMPACT_OFFSET.sub(r"\1:\2", normalised)
    parsed = dt.datetime.fromisoformat(normalised)
    if parsed.tzinfo is None:
        msg = f"Salesforce datetime missing timezone: {text}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)
