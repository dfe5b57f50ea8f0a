"""Salesforce API client used by the record and log file fetchers."""

from __future__ import annotations

import dataclasses
import typing as typ
import urllib.parse
import xml.etree.ElementTree as ET  # noqa: N817
from xml.sax.saxutils import escape

import httpx

from .errors import SalesforceAPIError, SalesforceAuthError, SalesforceResponseShapeError
from .models import SalesforceSession

DEFAULT_URL = "https://login.salesforce.com"
DEFAULT_API_VERSION = "55.0"

_PARTNER_NS = "urn:partner.soap.sforce.com"
_HTTP_ERROR_STATUS_THRESHOLD = 400

_LOGIN_ENVELOPE = """<?xml version="1.0" encoding="utf-8" ?>
<env:Envelope
    xmlns:xsd="http://www.w3.org/2001/XMLSchema"
    xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
    xmlns:env="http://schemas.xmlsoap.org/soap/envelope/"
    xmlns:urn="urn:partner.soap.sforce.com">
  <env:Header>
    <urn:CallOptions>
      <urn:client>{client_id}</urn:client>
      <urn:defaultNamespace>sf</urn:defaultNamespace>
    </urn:CallOptions>
  </env:Header>
  <env:Body>
    <n1:login xmlns:n1="urn:partner.soap.sforce.com">
      <n1:username>{username}</n1:username>
      <n1:password>{password}</n1:password>
    </n1:login>
  </env:Body>
</env:Envelope>
"""


class SalesforceRecordClient(typ.Protocol):
    """Interface the collector needs from a Salesforce client."""

    async def login(self) -> SalesforceSession:
        """Authenticate and return a fresh session context."""
        ...

    async def query(
        self, session: SalesforceSession, soql: str
    ) -> list[dict[str, typ.Any]]:
        """Run a SOQL query and return every matching record."""
        ...

    async def get_record(
        self, session: SalesforceSession, type_name: str, record_id: str
    ) -> dict[str, typ.Any]:
        """Return every field of a single record."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class SalesforceClientConfig:
    """Credentials and connection settings for the Salesforce API."""

    client_id: str
    username: str
    password: str
    security_token: str
    url: str = DEFAULT_URL
    api_version: str = DEFAULT_API_VERSION
    timeout_s: float = 30.0

    @property
    def data_path(self) -> str:
        """Return the versioned REST API root path."""
        return f"/services/data/v{self.api_version}"


def _instance_url(server_url: str) -> str:
    parsed = urllib.parse.urlsplit(server_url)
    if not parsed.scheme or not parsed.netloc:
        raise SalesforceResponseShapeError.missing("serverUrl")
    return f"{parsed.scheme}://{parsed.netloc}"


def _parse_login_response(text: str) -> SalesforceSession:
    """Extract the session id and instance URL from a SOAP login response."""
    try:
        root = ET.fromstring(text)  # noqa: S314 - response from the configured login host
    except ET.ParseError as exc:
        msg = f"login response is not valid XML: {exc}"
        raise SalesforceAuthError.login_failed(msg) from exc

    fault = root.find(".//faultstring")
    if fault is not None:
        raise SalesforceAuthError.login_failed(fault.text or "SOAP fault")

    session_id = root.findtext(f".//{{{_PARTNER_NS}}}sessionId")
    server_url = root.findtext(f".//{{{_PARTNER_NS}}}serverUrl")
    if not session_id:
        raise SalesforceResponseShapeError.missing("sessionId")
    if not server_url:
        raise SalesforceResponseShapeError.missing("serverUrl")
    return SalesforceSession(
        instance_url=_instance_url(server_url),
        access_token=session_id,
    )


def _records_page(payload: object) -> tuple[list[dict[str, typ.Any]], str | None]:
    if not isinstance(payload, dict):
        raise SalesforceResponseShapeError.missing("response")
    records = payload.get("records")
    if not isinstance(records, list):
        raise SalesforceResponseShapeError.missing("records")
    next_url = payload.get("nextRecordsUrl")
    done = payload.get("done", True)
    if done or not isinstance(next_url, str):
        next_url = None
    return [record for record in records if isinstance(record, dict)], next_url


class SalesforceClient:
    """httpx implementation of :class:`SalesforceRecordClient`."""

    def __init__(
        self,
        config: SalesforceClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with credentials and an optional HTTP client."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Return the underlying HTTP client for sharing with other fetchers."""
        return self._client

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def login(self) -> SalesforceSession:
        """Log in with username, password, and security token via SOAP."""
        config = self._config
        body = _LOGIN_ENVELOPE.format(
            client_id=escape(config.client_id),
            username=escape(config.username),
            password=escape(config.password + config.security_token),
        )
        url = f"{config.url.rstrip('/')}/services/Soap/u/{config.api_version}"
        try:
            response = await self._client.post(
                url,
                content=body.encode("utf-8"),
                headers={
                    "Content-Type": "text/xml; charset=UTF-8",
                    "SOAPAction": "login",
                    "charset": "UTF-8",
                },
            )
        except httpx.RequestError as exc:
            raise SalesforceAuthError.login_failed(str(exc)) from exc

        # Faults arrive as HTTP 500 with a SOAP body; parse before the status check.
        failed = response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD
        detail = f"HTTP {response.status_code}: {response.text}"
        try:
            session = _parse_login_response(response.text)
        except SalesforceResponseShapeError as exc:
            if failed:
                raise SalesforceAuthError.login_failed(detail) from exc
            raise
        if failed:
            raise SalesforceAuthError.login_failed(detail)
        return session

    async def query(
        self, session: SalesforceSession, soql: str
    ) -> list[dict[str, typ.Any]]:
        """Run ``soql`` and follow ``nextRecordsUrl`` until the result is done."""
        payload = await self._get_json(
            session,
            f"{self._config.data_path}/query",
            params={"q": soql},
        )
        records, next_url = _records_page(payload)
        while next_url is not None:
            payload = await self._get_json(session, next_url)
            page, next_url = _records_page(payload)
            records.extend(page)
        return records

    async def get_record(
        self, session: SalesforceSession, type_name: str, record_id: str
    ) -> dict[str, typ.Any]:
        """Return every field of one record from the sObject endpoint."""
        type_part = urllib.parse.quote(type_name, safe="")
        id_part = urllib.parse.quote(record_id, safe="")
        payload = await self._get_json(
            session,
            f"{self._config.data_path}/sobjects/{type_part}/{id_part}",
        )
        if not isinstance(payload, dict):
            raise SalesforceResponseShapeError.missing("record")
        return payload

    async def _get_json(
        self,
        session: SalesforceSession,
        path: str,
        *,
        params: dict[str, str] | None = None,
    ) -> object:
        try:
            response = await self._client.get(
                session.url_for(path),
                params=params,
                headers={
                    "Authorization": session.authorization,
                    "Accept": "application/json",
                },
            )
        except httpx.RequestError as exc:
            raise SalesforceAPIError.network_error(str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise SalesforceAPIError.http_error(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise SalesforceResponseShapeError.missing("JSON body") from exc
