"""
Address family classification.

Maps a textual address to the DNS record type that would hold it.
"""

from __future__ import annotations

import ipaddress

from ddns_relay.models import RecordFamily


def classify(address: str) -> RecordFamily | None:
    """
    Determine the record family of an address.

    IPv4 requires four dot-separated decimal octets in [0, 255]. IPv6 accepts
    the colon-hex grammar, including "::" compression and the degenerate
    forms "::" and "::1".

    Parameters
    ----------
    address : str
        The address to classify.

    Returns
    -------
    RecordFamily | None
        `RecordFamily.A` for IPv4, `RecordFamily.AAAA` for IPv6, or None if
        the address is not recognized.
    """
    if not address or address != address.strip():
        return None

    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        pass
    else:
        return RecordFamily.A

    try:
        ipaddress.IPv6Address(address)
    except ValueError:
        return None
    return RecordFamily.AAAA


def canonical(address: str) -> str:
    """
    Get the canonical text form of an address.

    IPv6 addresses are lower-cased and compressed (RFC 5952), so two spellings
    of the same address compare equal. Text that is not an address is
    returned unchanged.

    Parameters
    ----------
    address : str
        The address to normalize.

    Returns
    -------
    str
        The canonical form.
    """
    try:
        return str(ipaddress.ip_address(address))
    except ValueError:
        return address
