"""Netlink attribute (TLV) encoding and decoding."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, field
from typing import Callable, Union

NLA_HDRLEN = 4
NLA_ALIGNTO = 4
NLA_F_NESTED = 0x8000
NLA_F_NET_BYTEORDER = 0x4000
NLA_TYPE_MASK = ~(NLA_F_NESTED | NLA_F_NET_BYTEORDER) & 0xFFFF

_HEADER = struct.Struct("=HH")
_U8 = struct.Struct("=B")
_U16 = struct.Struct("=H")
_U32 = struct.Struct("=I")
_U64 = struct.Struct("=Q")
_I32 = struct.Struct("=i")

IPLike = Union[str, bytes, int, ipaddress.IPv4Address, ipaddress.IPv6Address]


class RtnetlinkError(Exception):
    """Base class for errors raised while handling rtnetlink messages."""


class MessageTooShortError(RtnetlinkError):
    """A message is malformed or shorter than its fixed header."""


class InvalidAttributeError(RtnetlinkError):
    """A netlink attribute is malformed or has an unexpected length."""


def _align(length: int) -> int:
    return (length + NLA_ALIGNTO - 1) & ~(NLA_ALIGNTO - 1)


def _pack(fmt: struct.Struct, name: str, value: int) -> bytes:
    try:
        return fmt.pack(value)
    except struct.error as exc:
        raise ValueError(f"value {value!r} does not fit in a {name}") from exc


@dataclass(frozen=True)
class Attribute:
    """A single decoded netlink attribute.

    ``type`` has the nested and byte-order flags masked off; they are kept
    in ``flags``.
    """

    type: int
    data: bytes = b""
    flags: int = 0

    @property
    def is_nested(self) -> bool:
        return bool(self.flags & NLA_F_NESTED)

    def _unpack(self, fmt: struct.Struct, name: str) -> int:
        if len(self.data) != fmt.size:
            raise InvalidAttributeError(
                f"attribute {self.type} is not a {name}; length: {len(self.data)}"
            )
        return fmt.unpack(self.data)[0]

    def uint8(self) -> int:
        return self._unpack(_U8, "uint8")

    def uint16(self) -> int:
        return self._unpack(_U16, "uint16")

    def uint32(self) -> int:
        return self._unpack(_U32, "uint32")

    def uint64(self) -> int:
        return self._unpack(_U64, "uint64")

    def int32(self) -> int:
        return self._unpack(_I32, "int32")

    def string(self) -> str:
        """Return the data as text with trailing NUL bytes removed."""
        return self.data.rstrip(b"\x00").decode("utf-8", errors="replace")

    def ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        return decode_ip(self.data)

    def nested(self) -> list[Attribute]:
        """Decode the data as a list of nested attributes."""
        return decode_attributes(self.data)


def decode_attributes(data: bytes) -> list[Attribute]:
    """Parse a packed run of netlink attributes."""
    buf = bytes(data)
    attrs: list[Attribute] = []
    offset = 0
    while offset < len(buf):
        remaining = len(buf) - offset
        if remaining < NLA_HDRLEN:
            raise InvalidAttributeError("invalid attribute; length too short or too large")
        length, raw_type = _HEADER.unpack_from(buf, offset)
        if length > remaining:
            raise InvalidAttributeError("invalid attribute; length too short or too large")
        if length == 0:
            offset += NLA_HDRLEN
            continue
        if length < NLA_HDRLEN:
            raise InvalidAttributeError("invalid attribute; length too short or too large")
        attrs.append(
            Attribute(
                type=raw_type & NLA_TYPE_MASK,
                data=buf[offset + NLA_HDRLEN : offset + length],
                flags=raw_type & ~NLA_TYPE_MASK & 0xFFFF,
            )
        )
        offset += _align(length)
    return attrs


def encode_ip(ip: IPLike) -> bytes:
    """Pack an address: four bytes for IPv4 (including IPv4-mapped IPv6), else sixteen."""
    address = ip if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else ipaddress.ip_address(ip)
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped.packed
    return address.packed


def decode_ip(data: bytes) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Unpack a four or sixteen byte address."""
    if len(data) not in (4, 16):
        raise InvalidAttributeError(f"invalid IP address length: {len(data)}")
    return ipaddress.ip_address(bytes(data))


@dataclass
class AttributeEncoder:
    """Collects attributes and packs them into netlink wire format."""

    _attrs: list[tuple[int, bytes]] = field(default_factory=list, repr=False)

    def _add(self, typ: int, data: bytes) -> None:
        if not 0 <= typ <= 0xFFFF:
            raise ValueError(f"attribute type {typ} out of range")
        self._attrs.append((typ, bytes(data)))

    def uint8(self, typ: int, value: int) -> None:
        self._add(typ, _pack(_U8, "uint8", value))

    def uint16(self, typ: int, value: int) -> None:
        self._add(typ, _pack(_U16, "uint16", value))

    def uint32(self, typ: int, value: int) -> None:
        self._add(typ, _pack(_U32, "uint32", value))

    def uint64(self, typ: int, value: int) -> None:
        self._add(typ, _pack(_U64, "uint64", value))

    def int32(self, typ: int, value: int) -> None:
        self._add(typ, _pack(_I32, "int32", value))

    def string(self, typ: int, value: str) -> None:
        """Add a NUL-terminated string."""
        self._add(typ, value.encode("utf-8") + b"\x00")

    def bytes(self, typ: int, value: bytes) -> None:
        self._add(typ, value)

    def ip(self, typ: int, value: IPLike) -> None:
        self._add(typ, encode_ip(value))

    def nested(self, typ: int, fn: Callable[[AttributeEncoder], None]) -> None:
        """Add an attribute whose payload ``fn`` fills in; it carries the nested flag."""
        child = AttributeEncoder()
        fn(child)
        self._add(typ | NLA_F_NESTED, child.encode())

    def encode(self) -> bytes:
        parts = []
        for typ, data in self._attrs:
            length = NLA_HDRLEN + len(data)
            if length > 0xFFFF:
                raise InvalidAttributeError(f"attribute {typ} too large: {length} bytes")
            padding = _align(length) - length
            parts.append(_HEADER.pack(length, typ) + data + b"\x00" * padding)
        return b"".join(parts)