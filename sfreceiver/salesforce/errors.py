"""Salesforce API errors."""

from __future__ import annotations


class SalesforceError(RuntimeError):
    """Base class for Salesforce client failures."""


class SalesforceAPIError(SalesforceError):
    """Raised when Salesforce returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str) -> SalesforceAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(
            f"Salesforce API HTTP {status_code}: {body}", status_code=status_code
        )

    @classmethod
    def network_error(cls, detail: str) -> SalesforceAPIError:
        """Return an error for DNS, connection, or TLS failures."""
        return cls(f"Salesforce API network error: {detail}")


class SalesforceAuthError(SalesforceError):
    """Raised when the SOAP login call is rejected or unusable."""

    @classmethod
    def login_failed(cls, detail: str) -> SalesforceAuthError:
        """Return an error for a rejected login."""
        return cls(f"error login Salesforce API: {detail}")


class SalesforceResponseShapeError(SalesforceError):
    """Raised when a Salesforce response is missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> SalesforceResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"Salesforce response missing expected field: {field}")
