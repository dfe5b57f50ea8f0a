"""Retrieve attached log file content with bounded retry.

Only HTTP 5xx responses are treated as transient. Client errors, transport
failures, and an exhausted retry budget surface as :class:`FetchError`
without substituting any fallback content.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

import httpx

from sfreceiver.logging import get_logger, log_warning

from .errors import FetchError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sfreceiver.salesforce.models import SalesforceSession

    type SleepFn = cabc.Callable[[float], cabc.Awaitable[None]]

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_SERVER_ERROR_CEILING = 600
_HTTP_SUCCESS_CEILING = 300
_HTTP_SUCCESS_FLOOR = 200


@dataclasses.dataclass(frozen=True, slots=True)
class LogFileFetchConfig:
    """Retry policy for log file downloads.

    Attributes
    ----------
    max_attempts
        Total attempts including the first request.
    initial_backoff_s
        Delay before the first retry; doubled for every later retry.
    max_backoff_s
        Upper bound for any single delay.

    """

    max_attempts: int = 3
    initial_backoff_s: float = 1.0
    max_backoff_s: float = 10.0

    def __post_init__(self) -> None:
        """Reject policies that could never make a request."""
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)

    def backoff_for(self, retry: int) -> float:
        """Return the delay before retry number ``retry`` (1-based)."""
        return min(self.max_backoff_s, self.initial_backoff_s * 2 ** (retry - 1))


def _is_transient(status_code: int) -> bool:
    return _HTTP_SERVER_ERROR_THRESHOLD <= status_code < _HTTP_SERVER_ERROR_CEILING


class LogFileFetcher:
    """Download a record's log file over authenticated HTTP GET."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        config: LogFileFetchConfig | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        """Create a fetcher sharing ``http_client`` with the Salesforce client."""
        self._client = http_client
        self._config = config or LogFileFetchConfig()
        self._sleep = sleep or asyncio.sleep

    async def fetch_content(self, path: str, session: SalesforceSession) -> bytes:
        """Return the raw bytes found at ``path`` on the session's instance."""
        url = session.url_for(path)
        headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "Accept": "application/json",
            "Authorization": session.authorization,
        }
        max_attempts = self._config.max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._client.get(url, headers=headers)
            except httpx.RequestError as exc:
                raise FetchError.network_error(str(exc), attempts=attempt) from exc

            status = response.status_code
            if _HTTP_SUCCESS_FLOOR <= status < _HTTP_SUCCESS_CEILING:
                return response.content

            if not _is_transient(status):
                raise FetchError.http_error(status, response.text, attempts=attempt)
            if attempt >= max_attempts:
                raise FetchError.retries_exhausted(
                    status, response.text, attempts=attempt
                )

            delay = self._config.backoff_for(attempt)
            log_warning(
                logger,
                "Log file request to %s returned HTTP %d (attempt %d/%d); "
                "retrying in %.2fs",
                path,
                status,
                attempt,
                max_attempts,
                delay,
            )
            await self._sleep(delay)
