"""
Data models for DDNS Relay.

This module defines the core data structures used throughout the application,
including the update request parameters, provider records, the decision
outcome, cache statistics and the JSON response envelope.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from ddns_relay.errors import MissingParametersError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Final


# Query parameters that make up an update request, in reporting order
DDNS_PARAM_NAMES: Final[tuple[str, ...]] = ("zone", "email", "key", "name")


class RecordFamily(StrEnum):
    """
    Address family of a DNS record.

    Attributes
    ----------
    A : str
        IPv4 address record.
    AAAA : str
        IPv6 address record.
    """

    A = "A"
    AAAA = "AAAA"


class DDNSParams(BaseModel):
    """
    DDNS update request parameters.

    All four fields are required together; none is independently optional.

    Attributes
    ----------
    zone : str
        The provider's zone identifier.
    email : str
        The provider account email, forwarded as a credential.
    key : str
        The provider API key, forwarded as a credential.
    name : str
        The DNS record name (e.g., "home.example.com").
    """

    zone: str = Field(..., min_length=1, description="Provider zone identifier")
    email: str = Field(..., min_length=1, description="Provider account email")
    key: str = Field(..., min_length=1, description="Provider API key")
    name: str = Field(..., min_length=1, description="DNS record name")

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> DDNSParams:
        """
        Build parameters from a query-string mapping.

        Parameters
        ----------
        query : Mapping[str, str]
            The request query parameters.

        Returns
        -------
        DDNSParams
            The validated parameters.

        Raises
        ------
        MissingParametersError
            If any of the four parameters is absent or empty.
        """
        missing = [name for name in DDNS_PARAM_NAMES if not query.get(name)]
        if missing:
            msg = f"Missing required parameters: {', '.join(missing)}"
            raise MissingParametersError(msg)

        return cls(**{name: query[name] for name in DDNS_PARAM_NAMES})


class DNSRecord(BaseModel):
    """
    A DNS record as reported by the provider.

    Attributes
    ----------
    id : str
        The provider's record identifier.
    type : str
        The record type ("A" or "AAAA").
    name : str
        The fully qualified record name.
    content : str
        The record value (an IP address).
    ttl : int
        Time to live in seconds (1 means automatic).
    proxied : bool
        Whether the record is proxied by the provider.
    """

    id: str
    type: str
    name: str
    content: str
    ttl: int = 1
    proxied: bool = False


class UpdateOutcome(BaseModel):
    """
    Terminal, successful result of an update decision.

    Attributes
    ----------
    action : Literal["unchanged", "updated"]
        Whether the provider was written to.
    source : Literal["cache", "upstream", "provider"]
        What confirmed the result: the cache, the fetched record, or a
        provider write.
    ip : str
        The caller's observed IP.
    family : RecordFamily
        The address family of the IP.
    record_name : str
        The record name as requested by the caller.
    record_id : str
        The provider's record identifier.
    previous_ip : str | None
        The record content before an update (only for action=updated).
    """

    action: Literal["unchanged", "updated"]
    source: Literal["cache", "upstream", "provider"]
    ip: str
    family: RecordFamily
    record_name: str
    record_id: str
    previous_ip: str | None = None


class CacheStats(BaseModel):
    """
    Snapshot of the update cache counters.

    Attributes
    ----------
    tracked_keys : int
        Number of keys currently held by the LRU tracker.
    hits : int
        Cache hits since the last reset.
    misses : int
        Cache misses since the last reset.
    ratio : str
        Hits to misses, reduced by their greatest common divisor ("h:m").
    """

    tracked_keys: int
    hits: int
    misses: int
    ratio: str


class ApiResponse(BaseModel):
    """
    JSON response envelope for update and error outcomes.

    Optional fields are omitted from the body when unset.

    Attributes
    ----------
    success : bool
        Whether the request succeeded.
    error : str | None
        Machine-readable error code.
    message : str | None
        Human-readable message.
    ip : str | None
        The caller's IP.
    previous_ip : str | None
        The record content before an update.
    record_name : str | None
        The record name.
    record_id : str | None
        The provider's record identifier.
    details : Any
        Provider error payload, passed through as-is.
    """

    success: bool
    error: str | None = None
    message: str | None = None
    ip: str | None = None
    previous_ip: str | None = None
    record_name: str | None = None
    record_id: str | None = None
    details: Any = None

    @classmethod
    def from_outcome(cls, outcome: UpdateOutcome) -> ApiResponse:
        """
        Create a success response from an update outcome.

        An unchanged record yields a bare `{"success": true}` body.

        Parameters
        ----------
        outcome : UpdateOutcome
            The decision engine result.

        Returns
        -------
        ApiResponse
            A success response instance.
        """
        if outcome.action == "unchanged":
            return cls(success=True)
        return cls(
            success=True,
            message="DNS record updated successfully",
            ip=outcome.ip,
            previous_ip=outcome.previous_ip,
            record_name=outcome.record_name,
            record_id=outcome.record_id,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        message: str,
        details: Any = None,
    ) -> ApiResponse:
        """
        Create an error response.

        Parameters
        ----------
        error : str
            Machine-readable error code.
        message : str
            Human-readable error message.
        details : Any, optional
            Provider error payload.

        Returns
        -------
        ApiResponse
            An error response instance.
        """
        return cls(success=False, error=error, message=message, details=details)
