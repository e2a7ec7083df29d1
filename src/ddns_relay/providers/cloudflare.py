"""
CloudFlare DNS provider implementation.

This module implements the CloudFlare DNS API v4 for reading and updating
A/AAAA records. Authentication uses the caller's account email and Global
API Key, forwarded as `X-Auth-Email` / `X-Auth-Key` headers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from starlette import status as st_status

from ddns_relay.errors import (
    ProviderAPIError,
    ProviderTransportError,
    RecordNotFoundError,
    UpdateRejectedError,
)
from ddns_relay.models import DNSRecord
from ddns_relay.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from typing import Final

    from ddns_relay.models import RecordFamily
    from ddns_relay.providers.base import ProviderCredentials


# CloudFlare API base URL
CF_API_BASE: Final[str] = "https://api.cloudflare.com/client/v4"

# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0

# TTL value meaning "automatic"
CF_AUTO_TTL: Final[int] = 1

# Failures raised while building or sending a request. Caller-supplied
# credentials that are not ASCII fail header encoding before anything is sent.
REQUEST_ERRORS: Final[tuple[type[Exception], ...]] = (
    httpx.RequestError,
    httpx.InvalidURL,
    UnicodeEncodeError,
)


logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    """Percent-encode a value for use as a single URL path segment."""
    return quote(value, safe="")


class CloudFlareProvider(BaseDNSProvider):
    """
    CloudFlare DNS provider.

    Uses CloudFlare API v4 with email + Global API Key authentication.
    A new HTTP client is opened per call; the provider keeps no state.
    """

    def __init__(
        self,
        api_base: str = CF_API_BASE,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize a CloudFlareProvider.

        Parameters
        ----------
        api_base : str, optional
            The API base URL.
        timeout : float, optional
            HTTP timeout in seconds.
        transport : httpx.AsyncBaseTransport | None, optional
            Custom transport (used by tests to stub the API).
        """
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "cloudflare"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _headers(credentials: ProviderCredentials) -> dict[str, str]:
        return {
            "X-Auth-Email": credentials.email,
            "X-Auth-Key": credentials.key,
            "Content-Type": "application/json",
        }

    @staticmethod
    def _parse_body(response: httpx.Response) -> dict[str, Any]:
        """
        Decode a CloudFlare JSON response body.

        Parameters
        ----------
        response : httpx.Response
            The HTTP response.

        Returns
        -------
        dict[str, Any]
            The decoded body.

        Raises
        ------
        ProviderTransportError
            If the body is not a JSON object.
        """
        try:
            data = response.json()
        except ValueError as e:
            logger.error("[cloudflare] Invalid JSON response: '%s'", response.text)  # noqa: TRY400
            msg = f"Invalid response from provider: {e}"
            raise ProviderTransportError(msg) from e

        if not isinstance(data, dict):
            msg = "Invalid response from provider: expected a JSON object"
            raise ProviderTransportError(msg)
        return data

    @staticmethod
    def _error_details(data: dict[str, Any]) -> Any:
        errors = data.get("errors")
        return errors if errors is not None else data

    async def get_record(
        self,
        zone: str,
        record_name: str,
        family: RecordFamily,
        credentials: ProviderCredentials,
    ) -> DNSRecord:
        """
        Fetch the current record from CloudFlare.

        Parameters
        ----------
        zone : str
            The zone ID.
        record_name : str
            The fully qualified record name.
        family : RecordFamily
            The record type (A or AAAA).
        credentials : ProviderCredentials
            Caller-supplied email and API key.

        Returns
        -------
        DNSRecord
            The first matching record.

        Raises
        ------
        ProviderTransportError
            On a request failure or an unparseable response.
        ProviderAPIError
            If CloudFlare answers with a non-2xx status.
        RecordNotFoundError
            If no record matches.
        """
        url = f"{self.api_base}/zones/{_segment(zone)}/dns_records"
        params = {"type": family.value, "name": record_name}

        try:
            async with self._client() as client:
                response = await client.get(
                    url,
                    headers=self._headers(credentials),
                    params=params,
                )
        except REQUEST_ERRORS as e:
            logger.error("[cloudflare] Request failed: '%s'", e)  # noqa: TRY400
            raise ProviderTransportError(str(e) or type(e).__name__) from e

        logger.debug(
            "[cloudflare] GET %s?type=%s&name=%s -> %d",
            url,
            family,
            record_name,
            response.status_code,
        )

        data = self._parse_body(response)
        logger.debug("[cloudflare] Response: %s", response.text)

        if not response.is_success:
            logger.error("[cloudflare] Failed to get records: '%s'", response.text)
            msg = "Failed to query DNS records"
            raise ProviderAPIError(
                msg,
                status_code=response.status_code,
                details=data,
            )

        results = data.get("result") or []
        if not data.get("success") or not results:
            msg = f"DNS {family} record '{record_name}' not found in zone"
            raise RecordNotFoundError(msg, details=self._error_details(data))

        try:
            return DNSRecord.model_validate(results[0])
        except ValidationError as e:
            msg = f"Invalid record in provider response: {e.error_count()} error(s)"
            raise ProviderTransportError(msg, details=results[0]) from e

    async def update_record(
        self,
        zone: str,
        record: DNSRecord,
        content: str,
        credentials: ProviderCredentials,
    ) -> DNSRecord:
        """
        Overwrite a record's content in CloudFlare.

        The TTL is reset to automatic and the proxied flag is preserved.

        Parameters
        ----------
        zone : str
            The zone ID.
        record : DNSRecord
            The record as previously fetched.
        content : str
            The new IP address.
        credentials : ProviderCredentials
            Caller-supplied email and API key.

        Returns
        -------
        DNSRecord
            The updated record.

        Raises
        ------
        ProviderTransportError
            On a request failure or an unparseable response.
        UpdateRejectedError
            If CloudFlare refuses the update.
        """
        url = f"{self.api_base}/zones/{_segment(zone)}/dns_records/{_segment(record.id)}"
        payload: dict[str, str | int | bool] = {
            "type": record.type,
            "name": record.name,
            "content": content,
            "ttl": CF_AUTO_TTL,
            "proxied": record.proxied,
        }

        try:
            async with self._client() as client:
                response = await client.put(
                    url,
                    headers=self._headers(credentials),
                    json=payload,
                )
        except REQUEST_ERRORS as e:
            logger.error("[cloudflare] Request failed: '%s'", e)  # noqa: TRY400
            raise ProviderTransportError(str(e) or type(e).__name__) from e

        logger.debug("[cloudflare] PUT %s -> %d", url, response.status_code)

        data = self._parse_body(response)
        logger.debug("[cloudflare] Response: %s", response.text)

        if not (response.is_success and data.get("success")):
            logger.error("[cloudflare] Failed to update record: '%s'", response.text)
            status_code = (
                st_status.HTTP_500_INTERNAL_SERVER_ERROR
                if response.is_success
                else response.status_code
            )
            msg = "Failed to update DNS record"
            raise UpdateRejectedError(
                msg,
                status_code=status_code,
                details=self._error_details(data),
            )

        try:
            return DNSRecord.model_validate(data.get("result") or {})
        except ValidationError:
            logger.warning("[cloudflare] Update succeeded without a usable record body")
            return record.model_copy(update={"content": content, "ttl": CF_AUTO_TTL})
