"""Assemble JSON events from records, enrichment, and log rows."""

from __future__ import annotations

import typing as typ

import msgspec

from .errors import SerializationError
from .models import Event

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import EnrichmentFields, FlattenedLogRow, JsonValue, RawRecord

LOG_CONTENT_FIELD = "LogFileContent"

_encoder = msgspec.json.Encoder()


def _merge(
    record: RawRecord, enrichment: EnrichmentFields | None
) -> dict[str, JsonValue]:
    merged: dict[str, JsonValue] = dict(record.fields)
    if enrichment:
        merged.update(enrichment)
    return merged


def _encode(record: RawRecord, payload: cabc.Mapping[str, object]) -> Event:
    try:
        body = _encoder.encode(payload)
    except (TypeError, ValueError, OverflowError, msgspec.EncodeError) as exc:
        raise SerializationError(record.record_id, str(exc)) from exc
    return Event(record_id=record.record_id, type_name=record.type_name, body=body)


def assemble(record: RawRecord, enrichment: EnrichmentFields | None = None) -> Event:
    """Return the single event for a record without an attached log file.

    Enrichment fields overwrite record fields that share a key.
    """
    return _encode(record, _merge(record, enrichment))


def assemble_with_log(
    record: RawRecord,
    enrichment: EnrichmentFields | None,
    rows: cabc.Sequence[FlattenedLogRow],
) -> list[Event]:
    """Return one event per log row, each carrying that row under ``LogFileContent``.

    Every event shares the merged record and enrichment fields; a log file
    with no data rows yields no events.
    """
    base = _merge(record, enrichment)
    return [_encode(record, {**base, LOG_CONTENT_FIELD: row}) for row in rows]
