"""Incremental collection engine primitives."""

from __future__ import annotations

from .errors import (
    CollectorError,
    ConfigurationError,
    DeliveryError,
    FetchError,
    ParseError,
    QueryError,
    SerializationError,
    SessionRefreshError,
)
from .events import LOG_CONTENT_FIELD, assemble, assemble_with_log
from .flatten import flatten
from .logfile import LogFileFetchConfig, LogFileFetcher
from .loop import (
    CollectionConfig,
    CollectionLoop,
    CycleResult,
    SessionProvider,
    TypeCollectionResult,
)
from .models import Event, ObjectTypeTarget, RawRecord, is_log_bearing
from .observability import (
    CollectionEventLogger,
    CollectionEventType,
    ErrorCategory,
    categorize_error,
)
from .records import RecordFetcher, build_query
from .watermark import WatermarkStore

__all__ = [
    "LOG_CONTENT_FIELD",
    "CollectionConfig",
    "CollectionEventLogger",
    "CollectionEventType",
    "CollectionLoop",
    "CollectorError",
    "ConfigurationError",
    "CycleResult",
    "DeliveryError",
    "ErrorCategory",
    "Event",
    "FetchError",
    "LogFileFetchConfig",
    "LogFileFetcher",
    "ObjectTypeTarget",
    "ParseError",
    "QueryError",
    "RawRecord",
    "RecordFetcher",
    "SerializationError",
    "SessionProvider",
    "SessionRefreshError",
    "TypeCollectionResult",
    "WatermarkStore",
    "assemble",
    "assemble_with_log",
    "build_query",
    "categorize_error",
    "flatten",
    "is_log_bearing",
]
