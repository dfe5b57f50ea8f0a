"""Structured log events for collection cycles.

Each event is emitted through femtologging with a bracketed event identifier
followed by ``key=value`` fields, so log aggregators can parse cycle
throughput, per-type failures, and watermark movement.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from sfreceiver.common.time import format_timestamp
from sfreceiver.logging import get_logger, log_error, log_info, log_warning
from sfreceiver.salesforce.errors import SalesforceAPIError, SalesforceAuthError

from .errors import (
    ConfigurationError,
    DeliveryError,
    FetchError,
    ParseError,
    QueryError,
    SerializationError,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from .loop import CycleResult, TypeCollectionResult

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class CollectionEventType(enum.StrEnum):
    """Structured log event types for collection observability."""

    CYCLE_STARTED = "collection.cycle.started"
    CYCLE_COMPLETED = "collection.cycle.completed"
    TYPE_COMPLETED = "collection.type.completed"
    TYPE_FAILED = "collection.type.failed"
    WATERMARK_ADVANCED = "collection.watermark.advanced"
    FLUSH_FAILED = "collection.flush.failed"


class ErrorCategory(enum.StrEnum):
    """Categories used to route collection failures."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    AUTH = "auth"
    DATA = "data"
    DELIVERY = "delivery"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ParseError, ErrorCategory.DATA),
    (SerializationError, ErrorCategory.DATA),
    (DeliveryError, ErrorCategory.DELIVERY),
    (ConfigurationError, ErrorCategory.CONFIGURATION),
    (SalesforceAuthError, ErrorCategory.AUTH),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alert routing."""
    if isinstance(exc, FetchError) and exc.permanent:
        return ErrorCategory.DATA

    if isinstance(exc, (FetchError, SalesforceAPIError)):
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    if isinstance(exc, QueryError):
        cause = exc.__cause__
        return categorize_error(cause) if cause is not None else ErrorCategory.UNKNOWN

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class CycleContext:
    """Identity of one collection cycle."""

    cycle: int
    started_at: dt.datetime


class CollectionEventLogger:
    """Emit structured collection events via femtologging."""

    def log_cycle_started(self, context: CycleContext, type_count: int) -> None:
        """Log the start of a cycle."""
        log_info(
            logger,
            "[%s] cycle=%d started_at=%s object_types=%d",
            CollectionEventType.CYCLE_STARTED,
            context.cycle,
            context.started_at.isoformat(),
            type_count,
        )

    def log_cycle_completed(
        self,
        context: CycleContext,
        result: CycleResult,
        duration: dt.timedelta,
    ) -> None:
        """Log cycle completion with delivery totals."""
        log_info(
            logger,
            "[%s] cycle=%d duration_seconds=%.3f records_delivered=%d "
            "events_delivered=%d failed_types=%d",
            CollectionEventType.CYCLE_COMPLETED,
            context.cycle,
            duration.total_seconds(),
            result.records_delivered,
            result.events_delivered,
            len(result.failed_types),
        )

    def log_type_completed(
        self, context: CycleContext, result: TypeCollectionResult
    ) -> None:
        """Log a type that finished without errors."""
        log_info(
            logger,
            "[%s] cycle=%d sobject_type=%s records_delivered=%d "
            "events_delivered=%d watermark=%s",
            CollectionEventType.TYPE_COMPLETED,
            context.cycle,
            result.type_name,
            result.records_delivered,
            result.events_delivered,
            format_timestamp(result.watermark),
        )

    def log_type_failed(
        self,
        context: CycleContext,
        result: TypeCollectionResult,
        error: BaseException,
        record_id: str | None,
    ) -> None:
        """Log the error that stopped a type for this cycle."""
        log_error(
            logger,
            "[%s] cycle=%d sobject_type=%s record_id=%s records_delivered=%d "
            "watermark=%s error_type=%s error_category=%s error_message=%s",
            CollectionEventType.TYPE_FAILED,
            context.cycle,
            result.type_name,
            record_id,
            result.records_delivered,
            format_timestamp(result.watermark),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_watermark_advanced(
        self, type_name: str, previous: dt.datetime, current: dt.datetime
    ) -> None:
        """Log watermark movement for a type."""
        log_info(
            logger,
            "[%s] sobject_type=%s previous=%s current=%s",
            CollectionEventType.WATERMARK_ADVANCED,
            type_name,
            format_timestamp(previous),
            format_timestamp(current),
        )

    def log_flush_failed(self, context: CycleContext, error: BaseException) -> None:
        """Log a sink flush failure; queued events remain buffered."""
        log_warning(
            logger,
            "[%s] cycle=%d error_type=%s error_message=%s",
            CollectionEventType.FLUSH_FAILED,
            context.cycle,
            type(error).__name__,
            str(error),
            exc_info=error,
        )
