"""Unit tests for timestamp helpers."""

from __future__ import annotations

import datetime as dt

import pytest

from sfreceiver.common.time import (
    format_timestamp,
    parse_canonical_timestamp,
    parse_salesforce_datetime,
)


def test_format_timestamp_truncates_to_milliseconds() -> None:
    """Microseconds are truncated and the suffix is always Z."""
    value = dt.datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=dt.UTC)

    assert format_timestamp(value) == "2024-01-02T03:04:05.678Z"


def test_format_timestamp_converts_to_utc() -> None:
    """Offsets are normalised to UTC before rendering."""
    offset = dt.timezone(dt.timedelta(hours=2))
    value = dt.datetime(2024, 1, 2, 12, 0, tzinfo=offset)

    assert format_timestamp(value) == "2024-01-02T10:00:00.000Z"


def test_format_timestamp_rejects_naive_values() -> None:
    """Naive datetimes have no defined position on the timeline."""
    with pytest.raises(ValueError, match="timezone-aware"):
        format_timestamp(dt.datetime(2024, 1, 2))  # noqa: DTZ001


def test_canonical_round_trip() -> None:
    """Parsing and formatting a canonical timestamp is lossless."""
    text = "2024-02-29T23:59:59.999Z"

    assert format_timestamp(parse_canonical_timestamp(text)) == text


@pytest.mark.parametrize(
    "text",
    ["2024-01-01T00:00:00Z", "2024-01-01T00:00:00.000+00:00", "2023-02-29T00:00:00.000Z"],
)
def test_parse_canonical_rejects_other_forms(text: str) -> None:
    """Only the exact millisecond Z form is accepted."""
    with pytest.raises(ValueError):  # noqa: PT011
        parse_canonical_timestamp(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024-01-02T10:00:00.000+0000", dt.datetime(2024, 1, 2, 10, tzinfo=dt.UTC)),
        ("2024-01-02T10:00:00.000Z", dt.datetime(2024, 1, 2, 10, tzinfo=dt.UTC)),
        ("2024-01-02T12:00:00.000+0200", dt.datetime(2024, 1, 2, 10, tzinfo=dt.UTC)),
    ],
)
def test_parse_salesforce_datetime(text: str, expected: dt.datetime) -> None:
    """Salesforce offsets with or without a colon parse to UTC."""
    assert parse_salesforce_datetime(text) == expected


def test_parse_salesforce_datetime_requires_timezone() -> None:
    """A datetime without an offset is rejected."""
    with pytest.raises(ValueError, match="missing timezone"):
        parse_salesforce_datetime("2024-01-02T10:00:00.000")
