"""Unit tests for the sfreceiver.runtime entrypoint."""

from __future__ import annotations

import httpx
import pytest

from sfreceiver import runtime
from sfreceiver.collector import CollectionLoop, SessionRefreshError, WatermarkStore
from sfreceiver.config import ReceiverConfig
from sfreceiver.salesforce import SalesforceAuthError, SalesforceClient
from tests.unit.collection_test_helpers import RecordingSink

_ENV = {
    "CLIENT_ID": "receiver",
    "USERNAME": "user@example.com",
    "PASSWORD": "secret",
    "SECURITY_TOKEN": "TOKEN",
    "SOBJECT_TYPES": "Account",
    "FROM_TIMESTAMP": "2024-01-01T00:00:00.000Z",
    "LOGZIO_TOKEN": "shipping-token",
}


@pytest.fixture
def receiver_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Populate the process environment with a valid configuration."""
    for name in ("SALESFORCE_URL", "API_VERSION", "INTERVAL", "CUSTOM_FIELDS"):
        monkeypatch.delenv(name, raising=False)
    for name, value in _ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setattr(runtime, "configure_logging", lambda *_, **__: ("INFO", False))


def test_build_collection_loop_seeds_store_from_config() -> None:
    """The loop starts every configured type at FROM_TIMESTAMP."""
    config = ReceiverConfig.from_env(_ENV)
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda _: httpx.Response(500))
    )
    client = SalesforceClient(config.salesforce, http_client=http_client)
    store = WatermarkStore.initialise(config.sobject_types, start=config.from_timestamp)

    loop = runtime.build_collection_loop(config, client, RecordingSink(), store=store)

    assert isinstance(loop, CollectionLoop)
    assert store.target("Account").watermark_text == "2024-01-01T00:00:00.000Z"


def test_main_returns_one_on_configuration_error(
    monkeypatch: pytest.MonkeyPatch, receiver_env: None
) -> None:
    """Missing credentials end the process with status 1."""
    del receiver_env
    monkeypatch.delenv("USERNAME")

    assert runtime.main([]) == 1


def test_main_returns_one_when_login_fails(
    monkeypatch: pytest.MonkeyPatch, receiver_env: None
) -> None:
    """A rejected startup login ends the process with status 1."""
    del receiver_env

    async def _fail(config: ReceiverConfig, *, once: bool = False) -> None:
        del config, once
        raise SalesforceAuthError.login_failed("INVALID_LOGIN")

    monkeypatch.setattr(runtime, "run", _fail)

    assert runtime.main(["--once"]) == 1


def test_main_returns_one_when_refresh_fails(
    monkeypatch: pytest.MonkeyPatch, receiver_env: None
) -> None:
    """A failed session renewal ends the process with status 1."""
    del receiver_env

    async def _fail(config: ReceiverConfig, *, once: bool = False) -> None:
        del config, once
        msg = "error creating new access token: boom"
        raise SessionRefreshError(msg)

    monkeypatch.setattr(runtime, "run", _fail)

    assert runtime.main([]) == 1


def test_main_passes_once_flag(
    monkeypatch: pytest.MonkeyPatch, receiver_env: None
) -> None:
    """``--once`` runs a single cycle and exits cleanly."""
    del receiver_env
    calls: list[tuple[tuple[str, ...], bool]] = []

    async def _record(config: ReceiverConfig, *, once: bool = False) -> None:
        calls.append((config.sobject_types, once))

    monkeypatch.setattr(runtime, "run", _record)

    assert runtime.main(["--once"]) == 0
    assert calls == [(("Account",), True)]
