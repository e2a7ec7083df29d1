"""
Error taxonomy for DDNS Relay.

Every user-visible failure is a `DDNSError` carrying a machine-readable
code, a human-readable message, the HTTP status to answer with, and the
provider's error payload when there is one. `CacheIOError` is internal to
the cache layer and never reaches a caller.
"""

from __future__ import annotations

from typing import Any

from starlette import status as st_status


class DDNSError(Exception):
    """
    Base class for errors reported to the caller.

    Attributes
    ----------
    code : str
        Machine-readable error code.
    message : str
        Human-readable error message.
    status_code : int
        HTTP status code for the response.
    details : Any
        Provider error payload, if any.
    """

    code: str = "internal_error"
    default_status: int = st_status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        """
        Initialize a DDNSError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        status_code : int | None, optional
            HTTP status code, or None to use the class default.
        details : Any, optional
            Provider error payload.
        """
        self.message = message
        self.status_code = status_code or self.default_status
        self.details = details
        super().__init__(message)


class MissingParametersError(DDNSError):
    """Required update parameters are absent or empty."""

    code = "missing_parameters"
    default_status = st_status.HTTP_400_BAD_REQUEST


class InvalidParametersError(DDNSError):
    """A query parameter is present but malformed."""

    code = "invalid_parameters"
    default_status = st_status.HTTP_400_BAD_REQUEST


class UnrecognizedAddressError(DDNSError):
    """The caller's address is neither IPv4 nor IPv6."""

    code = "invalid_ip"
    default_status = st_status.HTTP_400_BAD_REQUEST


class RecordNotFoundError(DDNSError):
    """No record exists for the requested name and type."""

    code = "record_not_found"
    default_status = st_status.HTTP_404_NOT_FOUND


class ProviderAPIError(DDNSError):
    """The provider answered a record lookup with a non-success status."""

    code = "cloudflare_api_error"
    default_status = st_status.HTTP_502_BAD_GATEWAY


class ProviderTransportError(DDNSError):
    """Network or parse failure while talking to the provider."""

    code = "internal_error"
    default_status = st_status.HTTP_502_BAD_GATEWAY


class UpdateRejectedError(DDNSError):
    """The provider refused to write the new record content."""

    code = "update_failed"
    default_status = st_status.HTTP_500_INTERNAL_SERVER_ERROR


class CacheIOError(Exception):
    """A cache backing store operation failed."""
