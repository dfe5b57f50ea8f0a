"""Buffered Logz.io bulk HTTP sender implementing :class:`EventSink`."""

from __future__ import annotations

import asyncio
import collections
import dataclasses

import httpx

from sfreceiver.logging import get_logger, log_error, log_info

from .errors import SinkError

logger = get_logger(__name__)

DEFAULT_LISTENER_URL = "https://listener.logz.io:8071"
DEFAULT_LOG_TYPE = "salesforce"

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_SERVER_ERROR_THRESHOLD = 500
# Logz.io rejects bulk requests over 10 MB.
_MAX_BATCH_BYTES = 9 * 1024 * 1024
_MAX_QUEUE_BYTES = 100 * 1024 * 1024


def _is_retryable(error: SinkError) -> bool:
    status = error.status_code
    return status is None or status >= _HTTP_SERVER_ERROR_THRESHOLD


@dataclasses.dataclass(frozen=True, slots=True)
class LogzioSenderConfig:
    """Listener location, shipping token, and queue limits."""

    token: str
    listener_url: str = DEFAULT_LISTENER_URL
    log_type: str = DEFAULT_LOG_TYPE
    timeout_s: float = 10.0
    max_batch_bytes: int = _MAX_BATCH_BYTES
    max_queue_bytes: int = _MAX_QUEUE_BYTES


class LogzioSender:
    """Queue events in memory and ship them as newline-delimited JSON."""

    def __init__(
        self,
        config: LogzioSenderConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the sender with its config and an optional HTTP client."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._queue: collections.deque[bytes] = collections.deque()
        self._queued_bytes = 0
        self._stopped = False
        self._flush_lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        """Return the number of queued, unshipped events."""
        return len(self._queue)

    async def send(self, body: bytes) -> None:
        """Queue ``body`` for the next flush."""
        if self._stopped:
            raise SinkError.closed()
        size = len(body) + 1
        if self._queued_bytes + size > self._config.max_queue_bytes:
            raise SinkError.queue_full(self._config.max_queue_bytes)
        self._queue.append(body)
        self._queued_bytes += size

    async def flush(self) -> None:
        """Ship queued events in size-bounded batches, oldest first.

        Transport failures and 5xx responses leave the batch queued for the
        next flush. Any other rejection is permanent: the batch is logged and
        dropped so later events can still ship.

        Raises
        ------
        SinkError
            If the listener is unreachable or answers with a 5xx status.

        """
        async with self._flush_lock:
            shipped = 0
            while self._queue:
                count, payload = self._next_batch()
                try:
                    await self._post(payload)
                except SinkError as exc:
                    if _is_retryable(exc):
                        raise
                    log_error(
                        logger,
                        "Logz.io rejected %d events with HTTP %s; dropping batch: %s",
                        count,
                        exc.status_code,
                        exc,
                    )
                else:
                    shipped += count
                self._dequeue(count)
            if shipped:
                log_info(logger, "Shipped %d events to Logz.io", shipped)

    async def stop(self) -> None:
        """Drain the queue and close owned HTTP resources."""
        if self._stopped:
            return
        try:
            await self.flush()
        finally:
            self._stopped = True
            if self._owns_client:
                await self._client.aclose()

    def _dequeue(self, count: int) -> None:
        for _ in range(count):
            self._queued_bytes -= len(self._queue.popleft()) + 1

    def _next_batch(self) -> tuple[int, bytes]:
        lines: list[bytes] = []
        size = 0
        for body in self._queue:
            if lines and size + len(body) + 1 > self._config.max_batch_bytes:
                break
            lines.append(body)
            size += len(body) + 1
        return len(lines), b"\n".join(lines) + b"\n"

    async def _post(self, payload: bytes) -> None:
        try:
            response = await self._client.post(
                self._config.listener_url,
                params={"token": self._config.token, "type": self._config.log_type},
                content=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as exc:
            raise SinkError.network_error(str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise SinkError.http_error(response.status_code, response.text)
