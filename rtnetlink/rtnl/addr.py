"""IP address helpers: parsing host addresses, families, scopes and broadcasts."""

from __future__ import annotations

import ipaddress
from typing import Union

AF_INET = 2
AF_INET6 = 10

RT_SCOPE_UNIVERSE = 0
RT_SCOPE_LINK = 253
RT_SCOPE_HOST = 254

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]

_V4_BROADCAST = ipaddress.IPv4Address("255.255.255.255")


class AddrError(ValueError):
    """An address is invalid or does not fit the operation."""

    def __init__(self, err: str, addr: str = "") -> None:
        self.err = err
        self.addr = addr
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.addr:
            return f"address {self.addr}: {self.err}"
        return self.err


def _to_address(ip: object) -> IPAddress:
    if isinstance(ip, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return ip.ip
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return ip
    if isinstance(ip, (bytes, bytearray)):
        if len(ip) not in (4, 16):
            raise AddrError("invalid IP address", "?" + bytes(ip).hex())
        return ipaddress.ip_address(bytes(ip))
    try:
        return ipaddress.ip_address(ip)
    except ValueError as exc:
        raise AddrError("invalid IP address", str(ip)) from exc


def _unmap(address: IPAddress) -> IPAddress:
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def parse_addr(s: str) -> IPInterface:
    """Parse CIDR notation into a host address with its network mask.

    Raises AddrError when the address is the network address of its subnet,
    and ValueError when the text is not in CIDR notation.
    """
    if "/" not in s or "%" in s:
        raise ValueError(f"invalid CIDR address: {s}")
    try:
        interface = ipaddress.ip_interface(s)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR address: {s}") from exc
    if is_subnet_addr(interface):
        raise AddrError(
            "attempted to parse a subnet address into a host address", str(interface.ip)
        )
    return interface


def addr_family(ip: object) -> int:
    """Return AF_INET for IPv4 (including IPv4-mapped IPv6) and AF_INET6 otherwise."""
    address = _to_address(ip)
    if isinstance(_unmap(address), ipaddress.IPv4Address):
        return AF_INET
    return AF_INET6


def _is_global_unicast(address: IPAddress) -> bool:
    if address == _V4_BROADCAST:
        return False
    return not (
        address.is_unspecified
        or address.is_loopback
        or address.is_multicast
        or address.is_link_local
    )


def addr_scope(ip: object) -> int:
    """Universe scope for global unicast, host scope for loopback, link scope otherwise."""
    address = _unmap(_to_address(ip))
    if _is_global_unicast(address):
        return RT_SCOPE_UNIVERSE
    if address.is_loopback:
        return RT_SCOPE_HOST
    return RT_SCOPE_LINK


def broadcast_addr(interface: IPInterface) -> ipaddress.IPv4Address | None:
    """Return the IPv4 broadcast address of the interface's network, or None for IPv6."""
    if not isinstance(interface, ipaddress.IPv4Interface):
        return None
    return interface.network.broadcast_address


def is_subnet_addr(interface: IPInterface) -> bool:
    """True when the interface address is the network address of its subnet."""
    if interface.network.prefixlen == interface.max_prefixlen:
        return False
    return interface.ip == interface.network.network_address