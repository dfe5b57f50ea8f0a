"""Process entrypoint for the Salesforce receiver.

Configuration is read from the environment (see :mod:`sfreceiver.config`).
The process logs in to Salesforce, then runs collection cycles forever,
sleeping ``INTERVAL`` seconds between cycles and renewing the session after
each one. Startup configuration or login failures, and a failed session
renewal, end the process with exit status 1.

Run the receiver with ``python -m sfreceiver.runtime``; ``--once`` runs a
single cycle and exits.
"""

from __future__ import annotations

import argparse
import asyncio
import typing as typ

from sfreceiver.collector import (
    CollectionConfig,
    CollectionLoop,
    ConfigurationError,
    LogFileFetcher,
    RecordFetcher,
    SessionRefreshError,
    WatermarkStore,
)
from sfreceiver.config import ReceiverConfig
from sfreceiver.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)
from sfreceiver.salesforce import SalesforceClient, SalesforceError
from sfreceiver.sink import LogzioSender, SinkError

if typ.TYPE_CHECKING:
    from sfreceiver.sink import EventSink

__all__ = ["build_collection_loop", "main", "run"]

logger = get_logger(__name__)


def build_collection_loop(
    config: ReceiverConfig,
    client: SalesforceClient,
    sink: EventSink,
    *,
    store: WatermarkStore | None = None,
) -> CollectionLoop:
    """Assemble a collection loop from validated configuration."""
    return CollectionLoop(
        store=store
        or WatermarkStore.initialise(
            config.sobject_types, start=config.from_timestamp
        ),
        record_fetcher=RecordFetcher(client),
        log_fetcher=LogFileFetcher(client.http_client),
        sink=sink,
        session_provider=client,
        config=CollectionConfig(
            interval_s=float(config.interval_s),
            enrichment=config.custom_fields,
        ),
    )


async def run(config: ReceiverConfig, *, once: bool = False) -> None:
    """Log in and run collection cycles until a fatal error.

    Raises
    ------
    SalesforceError
        If the initial login fails.
    SessionRefreshError
        If renewing the session after a cycle fails.

    """
    client = SalesforceClient(config.salesforce)
    sender = LogzioSender(config.logzio)
    try:
        session = await client.login()
        log_info(
            logger,
            "Logged in to Salesforce instance %s; collecting %s every %ds",
            session.instance_url,
            ",".join(config.sobject_types),
            config.interval_s,
        )
        loop = build_collection_loop(config, client, sender)
        await loop.run_forever(session, max_cycles=1 if once else None)
    finally:
        try:
            await sender.stop()
        except SinkError as exc:
            log_exception(logger, "Failed to drain Logz.io sender on shutdown", exc)
        await client.aclose()


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging, and run the receiver.

    Returns
    -------
    int
        Exit code: 0 after a ``--once`` run, 1 on a fatal error.

    """
    parser = argparse.ArgumentParser(description="Ship Salesforce records to Logz.io")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection cycle and exit",
    )
    args = parser.parse_args(argv)

    try:
        config = ReceiverConfig.from_env()
    except ConfigurationError as exc:
        configure_logging("INFO")
        log_error(logger, "Invalid configuration: %s", exc)
        return 1

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized_level,
        )

    try:
        asyncio.run(run(config, once=args.once))
    except (SalesforceError, SessionRefreshError) as exc:
        log_exception(logger, f"Receiver stopped: {exc}", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
