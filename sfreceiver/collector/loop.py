"""Incremental collection loop.

Each cycle walks the configured object types one at a time. For every type
the loop queries records created after the type's watermark, turns each
record into one or more events, delivers them through the sink, and moves
the watermark to a record's creation time only once every event of that
record was accepted. The first failure for a type stops that type for the
rest of the cycle; the next cycle picks up from the unchanged watermark.
"""

from __future__ import annotations

import asyncio
import dataclasses
import operator
import typing as typ

from sfreceiver.common.time import utcnow
from sfreceiver.salesforce.errors import SalesforceError
from sfreceiver.sink.errors import SinkError

from .errors import (
    DeliveryError,
    FetchError,
    ParseError,
    QueryError,
    SerializationError,
    SessionRefreshError,
)
from .events import assemble, assemble_with_log
from .flatten import flatten
from .models import is_log_bearing
from .observability import CollectionEventLogger, CycleContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sfreceiver.salesforce.models import SalesforceSession
    from sfreceiver.sink.protocol import EventSink

    from .errors import CollectorError
    from .logfile import LogFileFetcher
    from .models import EnrichmentFields, Event, RawRecord
    from .records import RecordFetcher
    from .watermark import WatermarkStore

    type SleepFn = cabc.Callable[[float], cabc.Awaitable[None]]

_RECORD_ERRORS = (FetchError, ParseError, SerializationError, DeliveryError)


class SessionProvider(typ.Protocol):
    """Source of fresh Salesforce sessions."""

    async def login(self) -> SalesforceSession:
        """Authenticate and return a new session context."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class CollectionConfig:
    """Runtime knobs for the collection loop."""

    interval_s: float = 5.0
    enrichment: EnrichmentFields = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True, slots=True)
class TypeCollectionResult:
    """Outcome of collecting one object type within a cycle."""

    type_name: str
    watermark: dt.datetime
    records_delivered: int = 0
    events_delivered: int = 0
    error: CollectorError | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the type finished without an error."""
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class CycleResult:
    """Outcome of one full collection cycle."""

    types: tuple[TypeCollectionResult, ...]

    @property
    def records_delivered(self) -> int:
        """Return the records fully delivered across all types."""
        return sum(result.records_delivered for result in self.types)

    @property
    def events_delivered(self) -> int:
        """Return the events delivered across all types."""
        return sum(result.events_delivered for result in self.types)

    @property
    def failed_types(self) -> tuple[str, ...]:
        """Return the types stopped by an error this cycle."""
        return tuple(result.type_name for result in self.types if not result.succeeded)


@dataclasses.dataclass(slots=True)
class _TypeProgress:
    type_name: str
    records_delivered: int = 0
    events_delivered: int = 0


class CollectionLoop:
    """Poll Salesforce on an interval and deliver new records as events."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        store: WatermarkStore,
        record_fetcher: RecordFetcher,
        log_fetcher: LogFileFetcher,
        sink: EventSink,
        session_provider: SessionProvider,
        config: CollectionConfig | None = None,
        event_logger: CollectionEventLogger | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        """Wire the loop to its collaborators."""
        self._store = store
        self._records = record_fetcher
        self._log_files = log_fetcher
        self._sink = sink
        self._session_provider = session_provider
        self._config = config or CollectionConfig()
        self._event_logger = event_logger or CollectionEventLogger()
        self._sleep = sleep or asyncio.sleep
        self._cycle = 0

    async def run_forever(
        self,
        session: SalesforceSession,
        *,
        max_cycles: int | None = None,
    ) -> None:
        """Run cycles separated by the interval, refreshing the session each time.

        ``max_cycles`` bounds the number of cycles; ``None`` runs forever.

        Raises
        ------
        SessionRefreshError
            If logging in again after a cycle fails.

        """
        completed = 0
        current = session
        while max_cycles is None or completed < max_cycles:
            await self.run_cycle(current)
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                return
            await self._sleep(self._config.interval_s)
            current = await self._refresh_session()

    async def run_cycle(self, session: SalesforceSession) -> CycleResult:
        """Collect every configured type once using ``session`` throughout."""
        self._cycle += 1
        context = CycleContext(cycle=self._cycle, started_at=utcnow())
        type_names = self._store.type_names
        self._event_logger.log_cycle_started(context, len(type_names))

        results = [
            await self._collect_type(context, type_name, session)
            for type_name in type_names
        ]

        try:
            await self._sink.flush()
        except SinkError as exc:
            self._event_logger.log_flush_failed(context, exc)

        result = CycleResult(types=tuple(results))
        self._event_logger.log_cycle_completed(
            context, result, utcnow() - context.started_at
        )
        return result

    async def _collect_type(
        self,
        context: CycleContext,
        type_name: str,
        session: SalesforceSession,
    ) -> TypeCollectionResult:
        progress = _TypeProgress(type_name=type_name)
        try:
            records = await self._records.fetch(self._store.target(type_name), session)
        except QueryError as exc:
            return self._failed(context, progress, exc, record_id=None)

        for record in sorted(records, key=operator.attrgetter("created_at")):
            try:
                await self._collect_record(record, session, progress)
            except _RECORD_ERRORS as exc:
                return self._failed(context, progress, exc, record_id=record.record_id)
            progress.records_delivered += 1
            # The query filter is strictly after the watermark, so a later
            # record sharing this CreatedDate is not fetched again if it fails.
            self._advance(type_name, record.created_at)

        result = self._result(progress)
        self._event_logger.log_type_completed(context, result)
        return result

    async def _collect_record(
        self,
        record: RawRecord,
        session: SalesforceSession,
        progress: _TypeProgress,
    ) -> None:
        for event in await self._build_events(record, session):
            await self._deliver(event)
            progress.events_delivered += 1

    async def _build_events(
        self, record: RawRecord, session: SalesforceSession
    ) -> list[Event]:
        enrichment = self._config.enrichment
        if not is_log_bearing(record.type_name):
            return [assemble(record, enrichment)]

        path = record.log_file_path
        if path is None:
            raise FetchError.missing_reference(record.record_id)
        content = await self._log_files.fetch_content(path, session)
        return assemble_with_log(record, enrichment, flatten(content))

    async def _deliver(self, event: Event) -> None:
        try:
            await self._sink.send(event.body)
        except SinkError as exc:
            raise DeliveryError(event.type_name, event.record_id, str(exc)) from exc

    def _advance(self, type_name: str, created_at: dt.datetime) -> None:
        previous = self._store.get(type_name)
        if self._store.advance(type_name, created_at):
            self._event_logger.log_watermark_advanced(type_name, previous, created_at)

    async def _refresh_session(self) -> SalesforceSession:
        try:
            return await self._session_provider.login()
        except SalesforceError as exc:
            msg = f"error creating new access token: {exc}"
            raise SessionRefreshError(msg) from exc

    def _result(
        self, progress: _TypeProgress, error: CollectorError | None = None
    ) -> TypeCollectionResult:
        return TypeCollectionResult(
            type_name=progress.type_name,
            watermark=self._store.get(progress.type_name),
            records_delivered=progress.records_delivered,
            events_delivered=progress.events_delivered,
            error=error,
        )

    def _failed(
        self,
        context: CycleContext,
        progress: _TypeProgress,
        error: CollectorError,
        *,
        record_id: str | None,
    ) -> TypeCollectionResult:
        result = self._result(progress, error)
        self._event_logger.log_type_failed(context, result, error, record_id)
        return result
