"""Typed domain models for incremental collection."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import datetime as dt

from sfreceiver.common.time import format_timestamp

type JsonValue = (
    str
    | int
    | float
    | bool
    | None
    | cabc.Mapping[str, JsonValue]
    | cabc.Sequence[JsonValue]
)

EVENT_LOG_FILE_TYPE = "eventlogfile"


def is_log_bearing(type_name: str) -> bool:
    """Return whether records of ``type_name`` carry an attached log file."""
    return type_name.lower() == EVENT_LOG_FILE_TYPE


@dataclasses.dataclass(frozen=True, slots=True)
class ObjectTypeTarget:
    """Snapshot of one object type and the watermark to query from."""

    type_name: str
    watermark: dt.datetime

    @property
    def watermark_text(self) -> str:
        """Return the watermark in canonical ``...mmmZ`` form."""
        return format_timestamp(self.watermark)


@dataclasses.dataclass(frozen=True, slots=True)
class RawRecord:
    """One Salesforce record as returned by the API."""

    record_id: str
    type_name: str
    created_at: dt.datetime
    fields: cabc.Mapping[str, JsonValue]

    @property
    def log_file_path(self) -> str | None:
        """Return the relative API path of the attached log file, if any."""
        value = self.fields.get("LogFile")
        return value if isinstance(value, str) and value else None


@dataclasses.dataclass(frozen=True, slots=True)
class Event:
    """An encoded event ready for delivery."""

    record_id: str
    type_name: str
    body: bytes


type FlattenedLogRow = dict[str, str]
type EnrichmentFields = cabc.Mapping[str, JsonValue]
