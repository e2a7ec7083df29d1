"""Tests for address family classification."""

from __future__ import annotations

import pytest

from ddns_relay.address import canonical, classify
from ddns_relay.models import RecordFamily


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "address",
        ["8.8.8.8", "0.0.0.0", "255.255.255.255", "203.0.113.5", "10.0.0.1"],
    )
    def test_ipv4(self, address: str) -> None:
        assert classify(address) == RecordFamily.A

    @pytest.mark.parametrize(
        "address",
        [
            "::",
            "::1",
            "2001:db8::1",
            "fe80::1ff:fe23:4567:890a",
            "2001:0db8:85a3:0000:0000:8a2e:0370:7334",
            "2001:DB8:0:0:8:800:200C:417A",
        ],
    )
    def test_ipv6(self, address: str) -> None:
        assert classify(address) == RecordFamily.AAAA

    @pytest.mark.parametrize(
        "address",
        [
            "",
            "not-an-ip",
            "unknown",
            "1.2.3.999",
            "999.1.1.1",
            "1.2.3",
            "1.2.3.4.5",
            " 1.2.3.4",
            "1.2.3.4 ",
            "2001:db8::g",
            "1::2::3",
            "1:2:3:4:5:6:7:8:9",
        ],
    )
    def test_unrecognized(self, address: str) -> None:
        assert classify(address) is None

    def test_family_maps_to_record_type(self) -> None:
        assert classify("8.8.8.8") == "A"
        assert classify("::1") == "AAAA"


class TestCanonical:
    """Tests for canonical()."""

    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("2001:0DB8:0000:0000:0000:0000:0000:0001", "2001:db8::1"),
            ("2001:DB8::1", "2001:db8::1"),
            ("::1", "::1"),
            ("203.0.113.5", "203.0.113.5"),
            ("not-an-ip", "not-an-ip"),
        ],
    )
    def test_canonical(self, address: str, expected: str) -> None:
        assert canonical(address) == expected
