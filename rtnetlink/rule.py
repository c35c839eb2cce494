"""Routing policy rule messages: RTM_NEWRULE, RTM_GETRULE and friends."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .nlattr import (
    Attribute,
    AttributeEncoder,
    InvalidAttributeError,
    MessageTooShortError,
    decode_attributes,
)

SIZEOF_FIB_RULE_HDR = 12
_HEADER = struct.Struct("=5B2xBI")
_RANGE = struct.Struct("=HH")

FRA_UNSPEC = 0
FRA_DST = 1
FRA_SRC = 2
FRA_IIFNAME = 3
FRA_GOTO = 4
FRA_UNUSED2 = 5
FRA_PRIORITY = 6
FRA_UNUSED3 = 7
FRA_UNUSED4 = 8
FRA_UNUSED5 = 9
FRA_FWMARK = 10
FRA_FLOW = 11
FRA_TUN_ID = 12
FRA_SUPPRESS_IFGROUP = 13
FRA_SUPPRESS_PREFIXLEN = 14
FRA_TABLE = 15
FRA_FWMASK = 16
FRA_OIFNAME = 17
FRA_PAD = 18
FRA_L3MDEV = 19
FRA_UID_RANGE = 20
FRA_PROTOCOL = 21
FRA_IP_PROTO = 22
FRA_SPORT_RANGE = 23
FRA_DPORT_RANGE = 24

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _to_ip(value: object) -> Optional[IPAddress]:
    if value is None or isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


@dataclass
class _Range:
    start: int = 0
    end: int = 0

    def _pack(self) -> bytes:
        try:
            return _RANGE.pack(self.start, self.end)
        except struct.error as exc:
            raise ValueError(f"range bounds out of range for uint16: {exc}") from exc

    @classmethod
    def _from_bytes(cls, data: bytes):
        if len(data) < _RANGE.size:
            raise InvalidAttributeError(
                f"range attribute too short: want {_RANGE.size} bytes, got {len(data)}"
            )
        start, end = _RANGE.unpack_from(data)
        return cls(start=start, end=end)


@dataclass
class RulePortRange(_Range):
    """Start and end ports matched by a rule."""


@dataclass
class RuleUIDRange(_Range):
    """Start and end user ids matched by a rule."""


_SKIPPED = frozenset(
    {FRA_UNSPEC, FRA_UNUSED2, FRA_UNUSED3, FRA_UNUSED4, FRA_UNUSED5, FRA_PAD}
)

_SCALARS: dict[int, tuple[str, Callable[[Attribute], object]]] = {
    FRA_DST: ("dst", Attribute.ip),
    FRA_SRC: ("src", Attribute.ip),
    FRA_IIFNAME: ("iif_name", Attribute.string),
    FRA_GOTO: ("goto", Attribute.uint32),
    FRA_PRIORITY: ("priority", Attribute.uint32),
    FRA_FWMARK: ("fw_mark", Attribute.uint32),
    FRA_TUN_ID: ("tun_id", Attribute.uint64),
    FRA_SUPPRESS_IFGROUP: ("suppress_if_group", Attribute.uint32),
    FRA_SUPPRESS_PREFIXLEN: ("suppress_prefix_len", Attribute.uint32),
    FRA_TABLE: ("table", Attribute.uint32),
    FRA_FWMASK: ("fw_mask", Attribute.uint32),
    FRA_OIFNAME: ("oif_name", Attribute.string),
    FRA_L3MDEV: ("l3mdev", Attribute.uint8),
    FRA_PROTOCOL: ("protocol", Attribute.uint8),
    FRA_IP_PROTO: ("ip_proto", Attribute.uint8),
}

_RANGES: dict[int, tuple[str, type[_Range]]] = {
    FRA_UID_RANGE: ("uid_range", RuleUIDRange),
    FRA_SPORT_RANGE: ("sport_range", RulePortRange),
    FRA_DPORT_RANGE: ("dport_range", RulePortRange),
}


@dataclass
class RuleAttributes:
    """Attributes of a routing policy rule; unset attributes are None."""

    src: Optional[IPAddress] = None
    dst: Optional[IPAddress] = None
    iif_name: Optional[str] = None
    oif_name: Optional[str] = None
    goto: Optional[int] = None
    priority: Optional[int] = None
    fw_mark: Optional[int] = None
    fw_mask: Optional[int] = None
    src_realm: Optional[int] = None
    dst_realm: Optional[int] = None
    tun_id: Optional[int] = None
    table: Optional[int] = None
    l3mdev: Optional[int] = None
    protocol: Optional[int] = None
    ip_proto: Optional[int] = None
    suppress_prefix_len: Optional[int] = None
    suppress_if_group: Optional[int] = None
    uid_range: Optional[RuleUIDRange] = None
    sport_range: Optional[RulePortRange] = None
    dport_range: Optional[RulePortRange] = None

    def __post_init__(self) -> None:
        self.src = _to_ip(self.src)
        self.dst = _to_ip(self.dst)

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> RuleAttributes:
        result = cls()
        for attr in attrs:
            if attr.type in _SKIPPED:
                continue
            scalar = _SCALARS.get(attr.type)
            if scalar is not None:
                name, read = scalar
                setattr(result, name, read(attr))
                continue
            ranged = _RANGES.get(attr.type)
            if ranged is not None:
                name, range_cls = ranged
                setattr(result, name, range_cls._from_bytes(attr.data))
                continue
            if attr.type == FRA_FLOW:
                value = attr.uint32()
                result.src_realm = (value >> 16) & 0xFFFF
                result.dst_realm = value & 0xFFFF
                continue
            raise InvalidAttributeError("rtnetlink RuleMessage contains an unknown Attribute")
        return result

    def _flow(self) -> Optional[int]:
        if self.dst_realm is None:
            return None
        value = self.dst_realm
        if self.src_realm is not None:
            value |= (self.src_realm & 0xFFFF) << 16
        return value

    def _encode(self, encoder: AttributeEncoder) -> None:
        def packed(value: Optional[_Range]) -> Optional[bytes]:
            return None if value is None else value._pack()

        steps = (
            (FRA_TABLE, self.table, encoder.uint32),
            (FRA_PROTOCOL, self.protocol, encoder.uint8),
            (FRA_SRC, self.src, encoder.ip),
            (FRA_DST, self.dst, encoder.ip),
            (FRA_IIFNAME, self.iif_name, encoder.string),
            (FRA_OIFNAME, self.oif_name, encoder.string),
            (FRA_GOTO, self.goto, encoder.uint32),
            (FRA_PRIORITY, self.priority, encoder.uint32),
            (FRA_FWMARK, self.fw_mark, encoder.uint32),
            (FRA_FWMASK, self.fw_mask, encoder.uint32),
            (FRA_FLOW, self._flow(), encoder.uint32),
            (FRA_TUN_ID, self.tun_id, encoder.uint64),
            (FRA_L3MDEV, self.l3mdev, encoder.uint8),
            (FRA_IP_PROTO, self.ip_proto, encoder.uint8),
            (FRA_SUPPRESS_IFGROUP, self.suppress_if_group, encoder.uint32),
            (FRA_SUPPRESS_PREFIXLEN, self.suppress_prefix_len, encoder.uint32),
            (FRA_UID_RANGE, packed(self.uid_range), encoder.bytes),
            (FRA_SPORT_RANGE, packed(self.sport_range), encoder.bytes),
            (FRA_DPORT_RANGE, packed(self.dport_range), encoder.bytes),
        )
        for typ, value, put in steps:
            if value is not None:
                put(typ, value)


@dataclass
class RuleMessage:
    """A route netlink rule message (struct fib_rule_hdr plus attributes)."""

    family: int = 0
    dst_length: int = 0
    src_length: int = 0
    tos: int = 0
    table: int = 0
    action: int = 0
    flags: int = 0
    attributes: Optional[RuleAttributes] = None

    def marshal(self) -> bytes:
        """Encode the header followed by any attributes."""
        try:
            header = _HEADER.pack(
                self.family,
                self.dst_length,
                self.src_length,
                self.tos,
                self.table,
                self.action,
                self.flags,
            )
        except struct.error as exc:
            raise ValueError(f"rule message header field out of range: {exc}") from exc
        if self.attributes is None:
            return header
        encoder = AttributeEncoder()
        self.attributes._encode(encoder)
        return header + encoder.encode()

    @classmethod
    def unmarshal(cls, data: bytes) -> RuleMessage:
        """Decode a message; raise MessageTooShortError if the header is incomplete."""
        if len(data) < SIZEOF_FIB_RULE_HDR:
            raise MessageTooShortError("rtnetlink RuleMessage is invalid or too short")
        family, dst_length, src_length, tos, table, action, flags = _HEADER.unpack_from(data)
        message = cls(
            family=family,
            dst_length=dst_length,
            src_length=src_length,
            tos=tos,
            table=table,
            action=action,
            flags=flags,
        )
        if len(data) > SIZEOF_FIB_RULE_HDR:
            attrs = decode_attributes(data[SIZEOF_FIB_RULE_HDR:])
            message.attributes = RuleAttributes._decode(attrs)
        return message