"""EventSink protocol for shipping encoded events.

This module defines the port the collection loop delivers through. Adapters
queue events on :meth:`EventSink.send` and ship them on
:meth:`EventSink.flush`; :meth:`EventSink.stop` drains before shutdown.

The protocol is ``runtime_checkable`` so adapters and test fakes can be
checked with ``isinstance``.
"""

from __future__ import annotations

import typing as typ


@typ.runtime_checkable
class EventSink(typ.Protocol):
    """Destination for encoded JSON events."""

    async def send(self, body: bytes) -> None:
        """Queue one encoded event.

        Raises
        ------
        SinkError
            If the event cannot be accepted.

        """
        ...

    async def flush(self) -> None:
        """Ship every queued event; unshipped events stay queued on failure."""
        ...

    async def stop(self) -> None:
        """Flush remaining events and release resources."""
        ...
