"""Environment-driven configuration for the receiver process.

All settings are read once at startup and validated before the collection
loop starts; any problem raises :class:`ConfigurationError`.

Usage
-----
>>> import os
>>> os.environ.update(
...     CLIENT_ID="cid", USERNAME="u", PASSWORD="p", SECURITY_TOKEN="t",
...     SOBJECT_TYPES="Account, EventLogFile", LOGZIO_TOKEN="shipping",
... )
>>> config = ReceiverConfig.from_env()
>>> config.sobject_types
('Account', 'EventLogFile')

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import os
import typing as typ

from sfreceiver.collector.errors import ConfigurationError
from sfreceiver.common.time import parse_canonical_timestamp
from sfreceiver.logging import get_logger, log_warning
from sfreceiver.salesforce.client import (
    DEFAULT_API_VERSION,
    DEFAULT_URL,
    SalesforceClientConfig,
)
from sfreceiver.sink.logzio import DEFAULT_LISTENER_URL, LogzioSenderConfig

if typ.TYPE_CHECKING:
    from sfreceiver.collector.models import EnrichmentFields

logger = get_logger(__name__)

ENV_SALESFORCE_URL = "SALESFORCE_URL"
ENV_CLIENT_ID = "CLIENT_ID"
ENV_API_VERSION = "API_VERSION"
ENV_USERNAME = "USERNAME"
ENV_PASSWORD = "PASSWORD"  # noqa: S105 - environment variable name
ENV_SECURITY_TOKEN = "SECURITY_TOKEN"  # noqa: S105 - environment variable name
ENV_SOBJECT_TYPES = "SOBJECT_TYPES"
ENV_FROM_TIMESTAMP = "FROM_TIMESTAMP"
ENV_INTERVAL = "INTERVAL"
ENV_CUSTOM_FIELDS = "CUSTOM_FIELDS"
ENV_LOGZIO_LISTENER_URL = "LOGZIO_LISTENER_URL"
ENV_LOGZIO_TOKEN = "LOGZIO_TOKEN"  # noqa: S105 - environment variable name
ENV_LOG_LEVEL = "LOG_LEVEL"

DEFAULT_INTERVAL_S = 5


def parse_sobject_types(raw: str) -> tuple[str, ...]:
    """Split a comma-separated type list, removing all spaces.

    Raises
    ------
    ConfigurationError
        If the list is empty or any entry is blank.

    """
    cleaned = raw.replace(" ", "")
    if not cleaned:
        raise ConfigurationError.missing("sObjects")
    names = tuple(cleaned.split(","))
    if any(not name for name in names):
        raise ConfigurationError.missing("sObject name")
    return tuple(dict.fromkeys(names))


def parse_custom_fields(raw: str) -> dict[str, str]:
    """Parse ``key:value`` pairs separated by commas.

    Each pair splits on its first ``:`` so values may contain colons.

    Raises
    ------
    ConfigurationError
        If a pair lacks the ``:`` separator or has an empty key.

    """
    fields: dict[str, str] = {}
    if not raw.strip():
        return fields
    for item in raw.split(","):
        key, separator, value = item.partition(":")
        if not separator:
            msg = (
                f"each field in {ENV_CUSTOM_FIELDS} must have ':' separator "
                "between the field key and value"
            )
            raise ConfigurationError(msg)
        key = key.strip()
        if not key:
            msg = f"each field in {ENV_CUSTOM_FIELDS} must have a non-empty key"
            raise ConfigurationError(msg)
        fields[key] = value.strip()
    return fields


def parse_interval(raw: str) -> int:
    """Return the polling interval in seconds, falling back to the default."""
    if not raw.strip():
        return DEFAULT_INTERVAL_S
    try:
        interval = int(raw)
    except ValueError:
        log_warning(
            logger,
            "%s %r is not a number; using default of %d seconds",
            ENV_INTERVAL,
            raw,
            DEFAULT_INTERVAL_S,
        )
        return DEFAULT_INTERVAL_S
    if interval <= 0:
        log_warning(
            logger,
            "%s %d is not a positive number; using default of %d seconds",
            ENV_INTERVAL,
            interval,
            DEFAULT_INTERVAL_S,
        )
        return DEFAULT_INTERVAL_S
    return interval


def _required(env: cabc.Mapping[str, str], name: str, label: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigurationError.missing(label)
    return value


@dc.dataclass(frozen=True, slots=True)
class ReceiverConfig:
    """Validated settings for one receiver process.

    Attributes
    ----------
    salesforce
        Credentials and endpoint for the Salesforce client.
    logzio
        Listener and token for the Logz.io sender.
    sobject_types
        Object types to collect, in configuration order.
    from_timestamp
        Canonical starting watermark, or ``None`` for "one hour ago".
    interval_s
        Seconds to wait between cycles.
    custom_fields
        Static enrichment fields added to every event.
    log_level
        Raw log level string; normalised when logging is configured.

    """

    salesforce: SalesforceClientConfig
    logzio: LogzioSenderConfig
    sobject_types: tuple[str, ...]
    from_timestamp: str | None = None
    interval_s: int = DEFAULT_INTERVAL_S
    custom_fields: EnrichmentFields = dc.field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: cabc.Mapping[str, str] | None = None) -> ReceiverConfig:
        """Build configuration from ``env`` (default ``os.environ``).

        Raises
        ------
        ConfigurationError
            If a required value is missing or a value is malformed.

        """
        source = os.environ if env is None else env

        salesforce = SalesforceClientConfig(
            client_id=_required(source, ENV_CLIENT_ID, "client ID"),
            username=_required(source, ENV_USERNAME, "username"),
            password=_required(source, ENV_PASSWORD, "password"),
            security_token=_required(source, ENV_SECURITY_TOKEN, "security token"),
            url=source.get(ENV_SALESFORCE_URL, "").strip() or DEFAULT_URL,
            api_version=source.get(ENV_API_VERSION, "").strip() or DEFAULT_API_VERSION,
        )
        logzio = LogzioSenderConfig(
            token=_required(source, ENV_LOGZIO_TOKEN, "Logz.io token"),
            listener_url=source.get(ENV_LOGZIO_LISTENER_URL, "").strip()
            or DEFAULT_LISTENER_URL,
        )

        from_timestamp = source.get(ENV_FROM_TIMESTAMP, "").strip() or None
        if from_timestamp is not None:
            try:
                parse_canonical_timestamp(from_timestamp)
            except ValueError as exc:
                raise ConfigurationError.invalid_timestamp(from_timestamp) from exc

        return cls(
            salesforce=salesforce,
            logzio=logzio,
            sobject_types=parse_sobject_types(source.get(ENV_SOBJECT_TYPES, "")),
            from_timestamp=from_timestamp,
            interval_s=parse_interval(source.get(ENV_INTERVAL, "")),
            custom_fields=parse_custom_fields(source.get(ENV_CUSTOM_FIELDS, "")),
            log_level=source.get(ENV_LOG_LEVEL, "INFO"),
        )
