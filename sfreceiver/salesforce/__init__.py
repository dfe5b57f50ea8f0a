"""Salesforce API collaborator: login, query, and record retrieval."""

from __future__ import annotations

from .client import (
    DEFAULT_API_VERSION,
    DEFAULT_URL,
    SalesforceClient,
    SalesforceClientConfig,
    SalesforceRecordClient,
)
from .errors import (
    SalesforceAPIError,
    SalesforceAuthError,
    SalesforceError,
    SalesforceResponseShapeError,
)
from .models import SalesforceSession

__all__ = [
    "DEFAULT_API_VERSION",
    "DEFAULT_URL",
    "SalesforceAPIError",
    "SalesforceAuthError",
    "SalesforceClient",
    "SalesforceClientConfig",
    "SalesforceError",
    "SalesforceRecordClient",
    "SalesforceResponseShapeError",
    "SalesforceSession",
]
