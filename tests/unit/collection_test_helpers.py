"""Test doubles for collection loop and fetcher tests."""

from __future__ import annotations

import dataclasses
import datetime as dt
import re
import typing as typ

from sfreceiver.collector import (
    CollectionConfig,
    CollectionLoop,
    RecordFetcher,
    WatermarkStore,
)
from sfreceiver.common.time import parse_salesforce_datetime
from sfreceiver.salesforce import SalesforceAPIError, SalesforceSession
from sfreceiver.sink import SinkError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_QUERY_PATTERN = re.compile(r"FROM (?P<type>\S+) WHERE CreatedDate > (?P<since>\S+)")

SESSION = SalesforceSession(
    instance_url="https://example.my.salesforce.com",
    access_token="00Dx0000000TOKEN",
)


def make_record(
    record_id: str,
    created: str,
    *,
    type_name: str = "Account",
    **fields: object,
) -> dict[str, typ.Any]:
    """Return a Salesforce-shaped record payload."""
    return {
        "attributes": {
            "type": type_name,
            "url": f"/services/data/v55.0/sobjects/{type_name}/{record_id}",
        },
        "Id": record_id,
        "CreatedDate": created,
        **fields,
    }


class FakeSalesforceClient:
    """Deterministic SalesforceRecordClient implementation for tests."""

    def __init__(
        self,
        records: cabc.Mapping[str, list[dict[str, typ.Any]]] | None = None,
        *,
        query_errors: cabc.Mapping[str, Exception] | None = None,
        login_results: list[SalesforceSession | Exception] | None = None,
    ) -> None:
        """Store records per type and scripted login outcomes."""
        self._records = {name: list(rows) for name, rows in (records or {}).items()}
        self._query_errors = dict(query_errors or {})
        self._login_results = list(login_results or [])
        self.queries: list[tuple[SalesforceSession, str]] = []
        self.logins = 0

    def add_records(self, type_name: str, rows: list[dict[str, typ.Any]]) -> None:
        """Make more records available to later queries."""
        self._records.setdefault(type_name, []).extend(rows)

    async def login(self) -> SalesforceSession:
        """Return the next scripted session or raise the scripted error."""
        self.logins += 1
        if not self._login_results:
            return SESSION
        outcome = self._login_results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def query(
        self, session: SalesforceSession, soql: str
    ) -> list[dict[str, typ.Any]]:
        """Return Id/CreatedDate summaries newer than the SOQL watermark."""
        self.queries.append((session, soql))
        match = _QUERY_PATTERN.search(soql)
        assert match is not None, f"unexpected SOQL: {soql}"
        type_name = match.group("type")
        if type_name in self._query_errors:
            raise self._query_errors[type_name]
        since = parse_salesforce_datetime(match.group("since"))
        return [
            {"Id": row["Id"], "CreatedDate": row["CreatedDate"]}
            for row in self._records.get(type_name, [])
            if parse_salesforce_datetime(row["CreatedDate"]) > since
        ]

    async def get_record(
        self, session: SalesforceSession, type_name: str, record_id: str
    ) -> dict[str, typ.Any]:
        """Return the full record payload for ``record_id``."""
        del session
        for row in self._records.get(type_name, []):
            if row["Id"] == record_id:
                return dict(row)
        raise SalesforceAPIError.http_error(404, "NOT_FOUND")


class FakeLogFileFetcher:
    """Serve log file content from a path mapping."""

    def __init__(self, contents: cabc.Mapping[str, bytes | Exception]) -> None:
        """Store content (or an error to raise) per path."""
        self._contents = dict(contents)
        self.calls: list[str] = []

    async def fetch_content(self, path: str, session: SalesforceSession) -> bytes:
        """Return the configured content for ``path``."""
        del session
        self.calls.append(path)
        outcome = self._contents[path]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSink:
    """EventSink that records payloads and fails on chosen send numbers."""

    def __init__(self, *, fail_on: cabc.Iterable[int] = ()) -> None:
        """Fail the sends whose 1-based position is listed in ``fail_on``."""
        self._fail_on = set(fail_on)
        self.attempts = 0
        self.sent: list[bytes] = []
        self.flushes = 0
        self.stopped = False

    async def send(self, body: bytes) -> None:
        """Record ``body`` or raise the scripted failure."""
        self.attempts += 1
        if self.attempts in self._fail_on:
            raise SinkError.network_error("connection reset")
        self.sent.append(body)

    async def flush(self) -> None:
        """Count flush calls."""
        self.flushes += 1

    async def stop(self) -> None:
        """Mark the sink as stopped."""
        self.stopped = True


@dataclasses.dataclass(slots=True)
class LoopHarness:
    """A collection loop wired to fakes."""

    loop: CollectionLoop
    store: WatermarkStore
    client: FakeSalesforceClient
    sink: RecordingSink
    log_fetcher: FakeLogFileFetcher
    sleeps: list[float]


def build_loop(  # noqa: PLR0913
    client: FakeSalesforceClient,
    *,
    type_names: cabc.Sequence[str] = ("Account",),
    start: str = "2024-01-01T00:00:00.000Z",
    sink: RecordingSink | None = None,
    log_contents: cabc.Mapping[str, bytes | Exception] | None = None,
    enrichment: cabc.Mapping[str, typ.Any] | None = None,
) -> LoopHarness:
    """Return a loop over ``type_names`` backed by the supplied fakes."""
    store = WatermarkStore.initialise(type_names, start=start)
    recording_sink = sink or RecordingSink()
    log_fetcher = FakeLogFileFetcher(log_contents or {})
    sleeps: list[float] = []

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    loop = CollectionLoop(
        store=store,
        record_fetcher=RecordFetcher(client),
        log_fetcher=typ.cast("typ.Any", log_fetcher),
        sink=recording_sink,
        session_provider=client,
        config=CollectionConfig(interval_s=5.0, enrichment=dict(enrichment or {})),
        sleep=_sleep,
    )
    return LoopHarness(
        loop=loop,
        store=store,
        client=client,
        sink=recording_sink,
        log_fetcher=log_fetcher,
        sleeps=sleeps,
    )


def utc(text: str) -> dt.datetime:
    """Parse a Salesforce-style timestamp for assertions."""
    return parse_salesforce_datetime(text)
