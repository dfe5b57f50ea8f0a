"""Error taxonomy for the incremental collection engine."""

from __future__ import annotations


class CollectorError(Exception):
    """Base class for collection engine errors."""


class ConfigurationError(CollectorError):
    """Raised at startup when configuration is missing or malformed."""

    @classmethod
    def missing(cls, name: str) -> ConfigurationError:
        """Return an error for a required setting without a value."""
        return cls(f"{name} must have a value")

    @classmethod
    def invalid_timestamp(cls, value: str) -> ConfigurationError:
        """Return an error for a start watermark in the wrong format."""
        return cls(
            f"start timestamp {value!r} must use the YYYY-MM-DDTHH:MM:SS.mmmZ format"
        )


class QueryError(CollectorError):
    """Raised when querying records for one object type fails."""

    def __init__(self, type_name: str, detail: str) -> None:
        """Initialise with the object type and a description of the failure."""
        self.type_name = type_name
        super().__init__(f"error querying {type_name} records: {detail}")


class FetchError(CollectorError):
    """Raised when an attached log file cannot be retrieved.

    Attributes
    ----------
    status_code
        HTTP status of the last response, ``None`` for transport failures.
    attempts
        Number of HTTP attempts made before giving up.
    permanent
        Whether retrying cannot succeed because the record itself is unusable.

    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int = 1,
        permanent: bool = False,
    ) -> None:
        """Initialise with a message, last status code, and attempt count."""
        self.status_code = status_code
        self.attempts = attempts
        self.permanent = permanent
        super().__init__(message)

    @classmethod
    def http_error(
        cls, status_code: int, body: str, *, attempts: int = 1
    ) -> FetchError:
        """Return an error for a non-2xx log file response."""
        return cls(
            f"log file request failed: statuscode: {status_code}, body: {body}",
            status_code=status_code,
            attempts=attempts,
        )

    @classmethod
    def retries_exhausted(
        cls, status_code: int, body: str, *, attempts: int
    ) -> FetchError:
        """Return an error once every attempt hit a server error."""
        return cls(
            f"log file request failed after {attempts} attempts: "
            f"statuscode: {status_code}, body: {body}",
            status_code=status_code,
            attempts=attempts,
        )

    @classmethod
    def network_error(cls, detail: str, *, attempts: int = 1) -> FetchError:
        """Return an error for transport-level failures."""
        return cls(f"log file request network error: {detail}", attempts=attempts)

    @classmethod
    def missing_reference(cls, record_id: str) -> FetchError:
        """Return an error for a log-bearing record without a ``LogFile`` path."""
        return cls(
            f"record {record_id} has no LogFile reference",
            attempts=0,
            permanent=True,
        )


class ParseError(CollectorError):
    """Raised when log file content cannot be parsed as delimited text."""


class SerializationError(CollectorError):
    """Raised when an event cannot be encoded as JSON."""

    def __init__(self, record_id: str, detail: str) -> None:
        """Initialise with the offending record identifier."""
        self.record_id = record_id
        super().__init__(f"error encoding record {record_id} as JSON: {detail}")


class DeliveryError(CollectorError):
    """Raised when the sink rejects an event."""

    def __init__(self, type_name: str, record_id: str, detail: str) -> None:
        """Initialise with the record whose event failed delivery."""
        self.type_name = type_name
        self.record_id = record_id
        super().__init__(
            f"error sending {type_name} record ID {record_id} to the sink: {detail}"
        )


class SessionRefreshError(CollectorError):
    """Raised when the session cannot be renewed between cycles."""
