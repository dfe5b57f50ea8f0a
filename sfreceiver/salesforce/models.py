"""Salesforce connection models."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True, slots=True)
class SalesforceSession:
    """Authenticated session context used for every call within a cycle.

    A fresh value replaces the previous one on each login; fetches carry the
    value explicitly rather than reading shared client state.
    """

    instance_url: str
    access_token: str

    def url_for(self, path: str) -> str:
        """Join a relative API path onto the instance URL."""
        return f"{self.instance_url.rstrip('/')}{path}"

    @property
    def authorization(self) -> str:
        """Return the bearer ``Authorization`` header value."""
        return f"Bearer {self.access_token}"
