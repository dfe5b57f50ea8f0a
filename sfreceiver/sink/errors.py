"""Errors raised by event sinks."""

from __future__ import annotations


class SinkError(RuntimeError):
    """Raised when a sink cannot accept or ship events."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def closed(cls) -> SinkError:
        """Return an error for sends after ``stop``."""
        return cls("sink is stopped")

    @classmethod
    def queue_full(cls, limit: int) -> SinkError:
        """Return an error when the in-memory queue would exceed its limit."""
        return cls(f"sink queue is full ({limit} bytes)")

    @classmethod
    def http_error(cls, status_code: int, body: str) -> SinkError:
        """Return an error for a rejected bulk request."""
        return cls(
            f"listener returned HTTP {status_code}: {body}", status_code=status_code
        )

    @classmethod
    def network_error(cls, detail: str) -> SinkError:
        """Return an error for transport failures."""
        return cls(f"listener network error: {detail}")
