"""Neighbour table messages: RTM_NEWNEIGH, RTM_GETNEIGH and friends."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import Optional, Union

from .nlattr import (
    Attribute,
    AttributeEncoder,
    InvalidAttributeError,
    MessageTooShortError,
    decode_attributes,
    decode_ip,
)

SIZEOF_NDMSG = 12
_HEADER = struct.Struct("=B3xIHBB")
_CACHEINFO = struct.Struct("=4I")

NDA_UNSPEC = 0
NDA_DST = 1
NDA_LLADDR = 2
NDA_CACHEINFO = 3
NDA_IFINDEX = 8

NTF_PROXY = 0x08

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class NeighCacheInfo:
    """Cache statistics of a neighbour entry (struct nda_cacheinfo)."""

    confirmed: int = 0
    used: int = 0
    updated: int = 0
    ref_count: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> NeighCacheInfo:
        """Parse exactly 16 bytes."""
        if len(data) != _CACHEINFO.size:
            raise InvalidAttributeError(f"incorrect size, want: 16, got: {len(data)}")
        return cls(*_CACHEINFO.unpack(data))


@dataclass
class NeighAttributes:
    """Attributes of a neighbour entry.

    The address is sent exactly as given: an IPv4-mapped IPv6 address keeps
    its sixteen byte form.
    """

    address: Optional[IPAddress] = None
    ll_address: Optional[bytes] = None
    cache_info: Optional[NeighCacheInfo] = None
    if_index: int = 0

    def __post_init__(self) -> None:
        if self.address is not None and not isinstance(
            self.address, (ipaddress.IPv4Address, ipaddress.IPv6Address)
        ):
            self.address = ipaddress.ip_address(self.address)

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> NeighAttributes:
        result = cls()
        for attr in attrs:
            if attr.type == NDA_DST:
                result.address = decode_ip(attr.data) if attr.data else None
            elif attr.type == NDA_LLADDR:
                # MAC-48, EUI-64 and InfiniBand addresses are all accepted.
                if attr.data:
                    result.ll_address = attr.data
            elif attr.type == NDA_CACHEINFO:
                result.cache_info = NeighCacheInfo.from_bytes(attr.data)
            elif attr.type == NDA_IFINDEX:
                result.if_index = attr.uint32()
        return result

    def _encode(self, encoder: AttributeEncoder) -> None:
        encoder.uint16(NDA_UNSPEC, 0)
        encoder.bytes(NDA_DST, self.address.packed if self.address is not None else b"")
        encoder.bytes(NDA_LLADDR, self.ll_address or b"")
        encoder.uint32(NDA_IFINDEX, self.if_index)


@dataclass
class NeighMessage:
    """A route netlink neighbour message (struct ndmsg plus attributes)."""

    family: int = 0
    index: int = 0
    state: int = 0
    flags: int = 0
    type: int = 0
    attributes: Optional[NeighAttributes] = None

    def marshal(self) -> bytes:
        """Encode the header followed by any attributes."""
        try:
            header = _HEADER.pack(self.family, self.index, self.state, self.flags, self.type)
        except struct.error as exc:
            raise ValueError(f"neighbour message header field out of range: {exc}") from exc
        if self.attributes is None:
            return header
        encoder = AttributeEncoder()
        self.attributes._encode(encoder)
        return header + encoder.encode()

    @classmethod
    def unmarshal(cls, data: bytes) -> NeighMessage:
        """Decode a message; raise MessageTooShortError if the header is incomplete."""
        if len(data) < SIZEOF_NDMSG:
            raise MessageTooShortError("rtnetlink NeighMessage is invalid or too short")
        family, index, state, flags, typ = _HEADER.unpack_from(data)
        message = cls(family=family, index=index, state=state, flags=flags, type=typ)
        if len(data) > SIZEOF_NDMSG:
            message.attributes = NeighAttributes._decode(decode_attributes(data[SIZEOF_NDMSG:]))
        return message