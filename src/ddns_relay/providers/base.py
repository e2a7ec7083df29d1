"""
Base class for DNS providers.

This module defines the abstract base class that all DNS provider
implementations must inherit from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ddns_relay.models import DNSRecord, RecordFamily


class ProviderCredentials:
    """
    Caller-supplied provider credentials.

    Attributes
    ----------
    email : str
        The provider account email.
    key : str
        The provider API key.
    """

    __slots__ = ("email", "key")

    def __init__(self, email: str, key: str) -> None:
        """
        Initialize ProviderCredentials.

        Parameters
        ----------
        email : str
            The provider account email.
        key : str
            The provider API key.
        """
        self.email = email
        self.key = key

    def __repr__(self) -> str:
        return f"ProviderCredentials(email={self.email!r}, key='******')"


class BaseDNSProvider(ABC):
    """
    Abstract base class for DNS providers.

    Implementations are stateless request/response adapters. Failures are
    raised as `ddns_relay.errors.DDNSError` subclasses:

    - `RecordNotFoundError` when no record matches.
    - `ProviderAPIError` when a lookup is answered with an error status.
    - `ProviderTransportError` on network, timeout or parse failures.
    - `UpdateRejectedError` when a write is refused.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Get the provider name.

        Returns
        -------
        str
            Provider name identifier.
        """
        ...

    @abstractmethod
    async def get_record(
        self,
        zone: str,
        record_name: str,
        family: RecordFamily,
        credentials: ProviderCredentials,
    ) -> DNSRecord:
        """
        Fetch the current record for a name and family.

        Parameters
        ----------
        zone : str
            The provider zone identifier.
        record_name : str
            The record name.
        family : RecordFamily
            The record family (A or AAAA).
        credentials : ProviderCredentials
            Caller-supplied credentials.

        Returns
        -------
        DNSRecord
            The first matching record.
        """
        ...

    @abstractmethod
    async def update_record(
        self,
        zone: str,
        record: DNSRecord,
        content: str,
        credentials: ProviderCredentials,
    ) -> DNSRecord:
        """
        Write new content to an existing record.

        Parameters
        ----------
        zone : str
            The provider zone identifier.
        record : DNSRecord
            The record as previously fetched.
        content : str
            The new record content.
        credentials : ProviderCredentials
            Caller-supplied credentials.

        Returns
        -------
        DNSRecord
            The record as stored by the provider.
        """
        ...
