"""Subnet membership tests for building CIDR inventory groups."""

from __future__ import annotations

import ipaddress
from typing import Union

from satinv.output import warning

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class Cidrs(dict[str, Network]):
    """Mapping of inventory group name to the subnet whose hosts belong in it."""

    def add_cidr(self, name: str, subnet: str) -> None:
        """Add *subnet* under *name*. Invalid subnets are reported and skipped."""
        try:
            self[name] = ipaddress.ip_network(subnet, strict=False)
        except ValueError as exc:
            warning(f"Invalid subnet for {name}: {exc}")

    def add_cidr_map(self, cidr_map: dict[str, str]) -> None:
        for name, subnet in cidr_map.items():
            self.add_cidr(name, subnet)

    def parse_cidrs(self, address: str) -> list[str]:
        """Return the names of every subnet containing *address*."""
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            warning(f"Invalid IP address: {address}")
            return []
        return [name for name, network in self.items() if ip in network]
