"""Event sinks: the delivery port and the Logz.io adapter."""

from __future__ import annotations

from .errors import SinkError
from .logzio import (
    DEFAULT_LISTENER_URL,
    DEFAULT_LOG_TYPE,
    LogzioSender,
    LogzioSenderConfig,
)
from .protocol import EventSink

__all__ = [
    "DEFAULT_LISTENER_URL",
    "DEFAULT_LOG_TYPE",
    "EventSink",
    "LogzioSender",
    "LogzioSenderConfig",
    "SinkError",
]
