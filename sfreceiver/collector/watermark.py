"""In-memory per-object-type watermark store."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sfreceiver.common.time import parse_canonical_timestamp, utcnow

from .errors import ConfigurationError
from .models import ObjectTypeTarget

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_LOOKBACK = dt.timedelta(hours=1)


class WatermarkStore:
    """Hold the creation-time boundary already delivered for each type.

    Watermarks only ever move forward. The store lives for the lifetime of
    the process; nothing is persisted.
    """

    def __init__(self, watermarks: cabc.Mapping[str, dt.datetime]) -> None:
        """Create a store seeded with one watermark per type name."""
        for type_name, value in watermarks.items():
            if value.tzinfo is None:
                msg = f"watermark for {type_name} must be timezone-aware"
                raise ValueError(msg)
        self._watermarks = {
            type_name: value.astimezone(dt.UTC)
            for type_name, value in watermarks.items()
        }

    @classmethod
    def initialise(
        cls,
        type_names: cabc.Iterable[str],
        *,
        start: str | None = None,
        now: dt.datetime | None = None,
    ) -> WatermarkStore:
        """Seed every type from ``start`` or from one hour before ``now``.

        Raises
        ------
        ConfigurationError
            If ``start`` is not a canonical ``YYYY-MM-DDTHH:MM:SS.mmmZ`` value.

        """
        if start:
            try:
                initial = parse_canonical_timestamp(start)
            except ValueError as exc:
                raise ConfigurationError.invalid_timestamp(start) from exc
        else:
            initial = (now or utcnow()) - DEFAULT_LOOKBACK
        return cls(dict.fromkeys(type_names, initial))

    @property
    def type_names(self) -> tuple[str, ...]:
        """Return the tracked type names in configuration order."""
        return tuple(self._watermarks)

    def get(self, type_name: str) -> dt.datetime:
        """Return the current watermark for ``type_name``."""
        return self._watermarks[type_name]

    def target(self, type_name: str) -> ObjectTypeTarget:
        """Return an immutable snapshot for querying ``type_name``."""
        return ObjectTypeTarget(type_name=type_name, watermark=self.get(type_name))

    def advance(self, type_name: str, candidate: dt.datetime) -> bool:
        """Move the watermark to ``candidate`` when it is strictly later.

        Returns ``True`` when the watermark moved.
        """
        current = self._watermarks[type_name]
        if candidate <= current:
            return False
        self._watermarks[type_name] = candidate.astimezone(dt.UTC)
        return True
