"""Fetch records created after an object type's watermark."""

from __future__ import annotations

import typing as typ

from sfreceiver.common.time import parse_salesforce_datetime
from sfreceiver.salesforce.errors import SalesforceError

from .errors import QueryError
from .models import ObjectTypeTarget, RawRecord

if typ.TYPE_CHECKING:
    from sfreceiver.salesforce.client import SalesforceRecordClient
    from sfreceiver.salesforce.models import SalesforceSession


def build_query(target: ObjectTypeTarget) -> str:
    """Return the SOQL selecting records created after the target's watermark."""
    return (
        f"SELECT Id,CreatedDate FROM {target.type_name} "
        f"WHERE CreatedDate > {target.watermark_text} ORDER BY CreatedDate"
    )


def _to_raw_record(type_name: str, fields: dict[str, typ.Any]) -> RawRecord:
    record_id = fields.get("Id")
    created = fields.get("CreatedDate")
    if not isinstance(record_id, str) or not record_id:
        raise QueryError(type_name, "record is missing Id")
    if not isinstance(created, str):
        raise QueryError(type_name, f"record {record_id} is missing CreatedDate")
    try:
        created_at = parse_salesforce_datetime(created)
    except ValueError as exc:
        detail = f"record {record_id} has invalid CreatedDate {created!r}"
        raise QueryError(type_name, detail) from exc
    return RawRecord(
        record_id=record_id,
        type_name=type_name,
        created_at=created_at,
        fields=fields,
    )


class RecordFetcher:
    """Query one object type and retrieve each new record in full."""

    def __init__(self, client: SalesforceRecordClient) -> None:
        """Bind the fetcher to a Salesforce client."""
        self._client = client

    async def fetch(
        self, target: ObjectTypeTarget, session: SalesforceSession
    ) -> list[RawRecord]:
        """Return records of ``target`` created after its watermark.

        An empty list means nothing new. Any client failure surfaces as a
        :class:`QueryError` scoped to ``target.type_name``.
        """
        type_name = target.type_name
        try:
            rows = await self._client.query(session, build_query(target))
            records: list[RawRecord] = []
            for row in rows:
                summary = _to_raw_record(type_name, row)
                full = await self._client.get_record(
                    session, type_name, summary.record_id
                )
                # Fields from the full record win over the query summary.
                records.append(_to_raw_record(type_name, {**row, **full}))
        except SalesforceError as exc:
            raise QueryError(type_name, str(exc)) from exc
        return records
