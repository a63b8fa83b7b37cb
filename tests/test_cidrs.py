"""Tests for CIDR group membership."""

from __future__ import annotations

import ipaddress

import pytest

from satinv.cidrs import Cidrs
from satinv.output import OutputManager, set_output


@pytest.fixture
def cidrs() -> Cidrs:
    c = Cidrs()
    c.add_cidr_map({"dmz": "10.1.0.0/16", "web": "10.1.2.0/24", "v6": "2001:db8::/32"})
    return c


class TestAddCidr:
    def test_valid_subnets_added(self, cidrs: Cidrs) -> None:
        assert set(cidrs) == {"dmz", "web", "v6"}
        assert cidrs["dmz"] == ipaddress.ip_network("10.1.0.0/16")

    def test_host_bits_are_masked(self) -> None:
        c = Cidrs()
        c.add_cidr("lab", "192.168.0.17/24")
        assert c["lab"] == ipaddress.ip_network("192.168.0.0/24")

    def test_invalid_subnet_skipped_with_warning(self, capsys) -> None:
        set_output(OutputManager(no_color=True))
        c = Cidrs()
        c.add_cidr("broken", "10.0.0.0/99")
        assert "broken" not in c
        assert "Invalid subnet for broken" in capsys.readouterr().err


class TestParseCidrs:
    def test_address_in_nested_subnets(self, cidrs: Cidrs) -> None:
        assert sorted(cidrs.parse_cidrs("10.1.2.3")) == ["dmz", "web"]

    def test_address_in_one_subnet(self, cidrs: Cidrs) -> None:
        assert cidrs.parse_cidrs("10.1.99.1") == ["dmz"]

    def test_address_outside_all_subnets(self, cidrs: Cidrs) -> None:
        assert cidrs.parse_cidrs("172.16.0.1") == []

    def test_ipv6(self, cidrs: Cidrs) -> None:
        assert cidrs.parse_cidrs("2001:db8::1") == ["v6"]

    def test_invalid_address(self, cidrs: Cidrs, capsys) -> None:
        set_output(OutputManager(no_color=True))
        assert cidrs.parse_cidrs("not-an-ip") == []
        assert "Invalid IP address: not-an-ip" in capsys.readouterr().err

    def test_empty_map(self) -> None:
        assert Cidrs().parse_cidrs("10.0.0.1") == []
