"""Routes, route options, and the route messages built from them."""

from __future__ import annotations

import dataclasses
import ipaddress
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from ..route import RouteAttributes, RouteMessage
from .addr import RT_SCOPE_LINK, RT_SCOPE_UNIVERSE, addr_family
from .links import Interface

RT_TABLE_MAIN = 254
RTPROT_BOOT = 3
RTN_UNICAST = 1

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _as_interface(value: object) -> IPInterface:
    if isinstance(value, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return value
    if isinstance(value, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return ipaddress.ip_interface((value.network_address, value.prefixlen))
    return ipaddress.ip_interface(value)


def _as_address(value: object) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return value.ip
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


@dataclass
class Route:
    """A routing table entry."""

    destination: IPNetwork
    gateway: Optional[IPAddress] = None
    interface: Optional[Interface] = None
    metric: int = 0


@dataclass
class RouteOptions:
    """Optional settings applied when building a route message."""

    src: Optional[IPInterface] = None
    attrs: RouteAttributes = field(default_factory=RouteAttributes)


RouteOption = Callable[[RouteOptions], None]


def default_route_options(ifc: Interface, dst: object, gw: object) -> RouteOptions:
    """Options routing ``dst`` out of ``ifc``, through ``gw`` when it is given."""
    destination = _as_interface(dst)
    attrs = RouteAttributes(dst=destination.ip, out_iface=ifc.index)
    if gw is not None:
        attrs.gateway = _as_address(gw)
    return RouteOptions(src=None, attrs=attrs)


def with_route_src(src: object) -> RouteOption:
    """Option setting the preferred source address and its prefix length."""

    def apply(opts: RouteOptions) -> None:
        opts.src = None if src is None else _as_interface(src)

    return apply


def with_route_attrs(attrs: RouteAttributes) -> RouteOption:
    """Option replacing all route attributes."""

    def apply(opts: RouteOptions) -> None:
        opts.attrs = attrs

    return apply


def build_route_message(ifc: Interface, dst: object, gw: object, *args: RouteOption) -> RouteMessage:
    """Build the message adding or replacing a unicast route in the main table."""
    opts = default_route_options(ifc, dst, gw)
    for option in args:
        option(opts)

    destination = _as_interface(dst)
    family = addr_family(destination.ip)

    if gw is not None:
        scope = RT_SCOPE_UNIVERSE
    elif isinstance(destination.ip, ipaddress.IPv6Address) and destination.ip.ipv4_mapped is None:
        scope = RT_SCOPE_UNIVERSE
    else:
        scope = RT_SCOPE_LINK

    attrs = opts.attrs
    src_length = 0
    if opts.src is not None:
        src_length = opts.src.network.prefixlen
        attrs = dataclasses.replace(attrs, src=opts.src.ip)

    return RouteMessage(
        family=family,
        table=RT_TABLE_MAIN,
        protocol=RTPROT_BOOT,
        type=RTN_UNICAST,
        scope=scope,
        dst_length=destination.network.prefixlen,
        src_length=src_length,
        attributes=attrs,
    )


def build_route_delete_message(ifc: Interface, dst: object) -> RouteMessage:
    """Build the message deleting the main-table route to ``dst`` via ``ifc``."""
    destination = _as_interface(dst)
    return RouteMessage(
        family=addr_family(destination.ip),
        table=RT_TABLE_MAIN,
        dst_length=destination.network.prefixlen,
        attributes=RouteAttributes(dst=destination.ip, out_iface=ifc.index),
    )


def build_route_get_message(dst: object) -> RouteMessage:
    """Build the message looking up main-table routes to the address ``dst``."""
    address = _as_address(dst)
    return RouteMessage(
        family=addr_family(address),
        table=RT_TABLE_MAIN,
        attributes=RouteAttributes(dst=address),
    )