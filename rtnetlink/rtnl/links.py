"""Interfaces as seen through link messages, and link messages that change them."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ..link import LinkAttributes, LinkMessage

AF_UNSPEC = 0

IFF_UP = 0x1
IFF_BROADCAST = 0x2
IFF_LOOPBACK = 0x8
IFF_POINTOPOINT = 0x10
IFF_MULTICAST = 0x1000


class InterfaceFlags(enum.IntFlag):
    """Portable interface flags."""

    UP = 1
    BROADCAST = 2
    LOOPBACK = 4
    POINT_TO_POINT = 8
    MULTICAST = 16


@dataclass
class Interface:
    """A network interface: index, MTU, name, hardware address and flags."""

    index: int = 0
    mtu: int = 0
    name: str = ""
    hardware_addr: bytes | None = None
    flags: InterfaceFlags = InterfaceFlags(0)


_FLAG_MAP = (
    (IFF_UP, InterfaceFlags.UP),
    (IFF_BROADCAST, InterfaceFlags.BROADCAST),
    (IFF_LOOPBACK, InterfaceFlags.LOOPBACK),
    (IFF_POINTOPOINT, InterfaceFlags.POINT_TO_POINT),
    (IFF_MULTICAST, InterfaceFlags.MULTICAST),
)


def link_flags(raw_flags: int) -> InterfaceFlags:
    """Translate kernel IFF_* flags into InterfaceFlags; other bits are dropped."""
    result = InterfaceFlags(0)
    for raw, flag in _FLAG_MAP:
        if raw_flags & raw:
            result |= flag
    return result


def interface_from_link_message(message: LinkMessage) -> Interface:
    """Build an Interface from a link message received from the kernel."""
    attrs = message.attributes or LinkAttributes()
    return Interface(
        index=message.index,
        mtu=attrs.mtu,
        name=attrs.name,
        hardware_addr=attrs.address,
        flags=link_flags(message.flags),
    )


def hardware_addr_message(ifc: Interface, current: LinkMessage, hw: bytes) -> LinkMessage:
    """Message setting the L2 address of ``ifc``, keeping the attributes always sent."""
    attrs = current.attributes or LinkAttributes()
    return LinkMessage(
        family=AF_UNSPEC,
        type=current.type,
        index=ifc.index,
        flags=current.flags,
        change=0,
        attributes=LinkAttributes(
            address=bytes(hw),
            name=attrs.name,
            mtu=attrs.mtu,
            type=attrs.type,
            queue_disc=attrs.queue_disc,
        ),
    )


def link_up_message(ifc: Interface, current: LinkMessage) -> LinkMessage:
    """Message driving ``ifc`` up."""
    return LinkMessage(
        family=AF_UNSPEC, type=current.type, index=ifc.index, flags=IFF_UP, change=IFF_UP
    )


def link_down_message(ifc: Interface, current: LinkMessage) -> LinkMessage:
    """Message taking ``ifc`` down."""
    return LinkMessage(
        family=AF_UNSPEC, type=current.type, index=ifc.index, flags=0, change=IFF_UP
    )