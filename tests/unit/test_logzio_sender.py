"""Unit tests for the buffered Logz.io sender."""

from __future__ import annotations

import httpx
import pytest

from sfreceiver.sink import EventSink, LogzioSender, LogzioSenderConfig, SinkError


def _make_sender(
    statuses: list[int],
    *,
    max_batch_bytes: int = 1024,
    max_queue_bytes: int = 4096,
) -> tuple[LogzioSender, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        status = statuses[min(len(requests), len(statuses)) - 1]
        return httpx.Response(status, text="listener says no" if status >= 400 else "")

    config = LogzioSenderConfig(
        token="shipping-token",
        listener_url="https://listener.example:8071",
        max_batch_bytes=max_batch_bytes,
        max_queue_bytes=max_queue_bytes,
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    return LogzioSender(config, http_client=client), requests


def test_sender_satisfies_event_sink_protocol() -> None:
    """The sender can be used wherever an EventSink is expected."""
    sender, _ = _make_sender([200])

    assert isinstance(sender, EventSink)


@pytest.mark.asyncio
async def test_flush_posts_ndjson_with_token_and_type() -> None:
    """Queued events ship as one newline-delimited request."""
    sender, requests = _make_sender([200])
    await sender.send(b'{"Id":"001"}')
    await sender.send(b'{"Id":"002"}')

    await sender.flush()

    (request,) = requests
    assert request.url.params["token"] == "shipping-token"
    assert request.url.params["type"] == "salesforce"
    assert request.content == b'{"Id":"001"}\n{"Id":"002"}\n'
    assert sender.pending == 0


@pytest.mark.asyncio
async def test_flush_splits_batches_by_size() -> None:
    """Batches never exceed the configured byte limit."""
    sender, requests = _make_sender([200], max_batch_bytes=20)
    for index in range(3):
        await sender.send(f'{{"n":{index}}}'.encode())

    await sender.flush()

    assert [request.content for request in requests] == [
        b'{"n":0}\n{"n":1}\n',
        b'{"n":2}\n',
    ]


@pytest.mark.asyncio
async def test_failed_flush_keeps_events_queued() -> None:
    """Events stay queued after a rejected request and ship on the next flush."""
    sender, requests = _make_sender([500, 200])
    await sender.send(b'{"Id":"001"}')

    with pytest.raises(SinkError, match="HTTP 500") as excinfo:
        await sender.flush()

    assert excinfo.value.status_code == 500
    assert sender.pending == 1

    await sender.flush()

    assert sender.pending == 0
    assert len(requests) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 413])
async def test_rejected_batch_is_dropped_so_later_events_ship(status: int) -> None:
    """Client-error rejections drop the batch instead of blocking the queue."""
    sender, requests = _make_sender([status, 200])
    await sender.send(b'{"Id":"001"}')

    await sender.flush()

    assert sender.pending == 0

    await sender.send(b'{"Id":"002"}')
    await sender.flush()

    assert [request.content for request in requests] == [
        b'{"Id":"001"}\n',
        b'{"Id":"002"}\n',
    ]
    assert sender.pending == 0


@pytest.mark.asyncio
async def test_flush_continues_past_rejected_batch() -> None:
    """Batches after a rejected one ship within the same flush."""
    sender, requests = _make_sender([400, 200], max_batch_bytes=10)
    await sender.send(b'{"n":0}')
    await sender.send(b'{"n":1}')

    await sender.flush()

    assert [request.content for request in requests] == [b'{"n":0}\n', b'{"n":1}\n']
    assert sender.pending == 0


@pytest.mark.asyncio
async def test_network_failure_keeps_events_queued() -> None:
    """Transport errors are retryable and leave the batch queued."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    sender = LogzioSender(LogzioSenderConfig(token="t"), http_client=client)
    await sender.send(b'{"Id":"001"}')

    with pytest.raises(SinkError, match="network error"):
        await sender.flush()

    assert sender.pending == 1


@pytest.mark.asyncio
async def test_flush_with_empty_queue_sends_nothing() -> None:
    """No request is made when nothing is queued."""
    sender, requests = _make_sender([200])

    await sender.flush()

    assert requests == []


@pytest.mark.asyncio
async def test_stop_drains_then_rejects_sends() -> None:
    """Stopping ships pending events and closes the sender."""
    sender, requests = _make_sender([200])
    await sender.send(b'{"Id":"001"}')

    await sender.stop()

    assert len(requests) == 1
    with pytest.raises(SinkError, match="stopped"):
        await sender.send(b'{"Id":"002"}')


@pytest.mark.asyncio
async def test_send_rejects_when_queue_is_full() -> None:
    """The queue refuses events past its byte limit."""
    sender, _ = _make_sender([200], max_queue_bytes=10)
    await sender.send(b"12345678")

    with pytest.raises(SinkError, match="queue is full"):
        await sender.send(b"9")
