"""Route messages: RTM_NEWROUTE, RTM_GETROUTE and friends."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, field
from typing import Optional, Union

from .nlattr import (
    Attribute,
    AttributeEncoder,
    InvalidAttributeError,
    MessageTooShortError,
    decode_attributes,
)

SIZEOF_RTMSG = 12
SIZEOF_RTNEXTHOP = 8

_HEADER = struct.Struct("=8BI")
_RTNEXTHOP = struct.Struct("=HBBI")
_MPLS_LABEL = struct.Struct(">I")

RTA_UNSPEC = 0
RTA_DST = 1
RTA_OIF = 4
RTA_GATEWAY = 5
RTA_PRIORITY = 6
RTA_PREFSRC = 7
RTA_METRICS = 8
RTA_MULTIPATH = 9
RTA_TABLE = 15
RTA_MARK = 16
RTA_PREF = 20
RTA_ENCAP_TYPE = 21
RTA_ENCAP = 22
RTA_EXPIRES = 23

RTAX_MTU = 2
RTAX_ADVMSS = 8
RTAX_INITCWND = 11
RTAX_FEATURES = 12
RTAX_INITRWND = 14

LWTUNNEL_ENCAP_MPLS = 1
MPLS_IPTUNNEL_DST = 1

_WRONG_LENGTH = "rtnetlink RouteMessage has a wrong attribute data length"

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _to_ip(value: object) -> Optional[IPAddress]:
    if value is None or isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


@dataclass
class RouteMetrics:
    """Advanced metrics of a route (RTA_METRICS)."""

    adv_mss: int = 0
    features: int = 0
    init_cwnd: int = 0
    init_rwnd: int = 0
    mtu: int = 0

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> RouteMetrics:
        metrics = cls()
        for attr in attrs:
            if attr.type == RTAX_ADVMSS:
                metrics.adv_mss = attr.uint32()
            elif attr.type == RTAX_FEATURES:
                metrics.features = attr.uint32()
            elif attr.type == RTAX_INITCWND:
                metrics.init_cwnd = attr.uint32()
            elif attr.type == RTAX_INITRWND:
                metrics.init_rwnd = attr.uint32()
            elif attr.type == RTAX_MTU:
                metrics.mtu = attr.uint32()
        return metrics

    def _encode(self, encoder: AttributeEncoder) -> None:
        for typ, value in (
            (RTAX_ADVMSS, self.adv_mss),
            (RTAX_FEATURES, self.features),
            (RTAX_INITCWND, self.init_cwnd),
            (RTAX_INITRWND, self.init_rwnd),
            (RTAX_MTU, self.mtu),
        ):
            if value:
                encoder.uint32(typ, value)


@dataclass
class RTNextHop:
    """The fixed part of a multipath next hop (struct rtnexthop).

    ``length`` is recomputed whenever a message is encoded.
    """

    length: int = 0
    flags: int = 0
    hops: int = 0
    if_index: int = 0


@dataclass
class MPLSNextHop:
    """One MPLS label stack entry of a next hop."""

    label: int = 0
    traffic_class: int = 0
    bottom_of_stack: bool = False
    ttl: int = 0

    def _pack(self) -> bytes:
        if not 0 <= self.label < 1 << 20:
            raise ValueError(f"MPLS label {self.label} does not fit in 20 bits")
        if not 0 <= self.traffic_class < 1 << 3:
            raise ValueError(f"MPLS traffic class {self.traffic_class} does not fit in 3 bits")
        if not 0 <= self.ttl <= 0xFF:
            raise ValueError(f"MPLS TTL {self.ttl} does not fit in 8 bits")
        value = (
            (self.label << 12)
            | (self.traffic_class << 9)
            | (0x100 if self.bottom_of_stack else 0)
            | self.ttl
        )
        return _MPLS_LABEL.pack(value)

    @classmethod
    def _unpack(cls, value: int) -> MPLSNextHop:
        return cls(
            label=value >> 12,
            traffic_class=(value & 0xE00) >> 9,
            bottom_of_stack=bool(value & 0x100),
            ttl=value & 0xFF,
        )


def _decode_encap(typ: int, data: bytes) -> list[MPLSNextHop]:
    if typ != LWTUNNEL_ENCAP_MPLS:
        return []
    labels: list[MPLSNextHop] = []
    for attr in decode_attributes(data):
        if attr.type != MPLS_IPTUNNEL_DST:
            continue
        if len(attr.data) % 4:
            raise InvalidAttributeError(_WRONG_LENGTH)
        labels.extend(MPLSNextHop._unpack(value) for (value,) in _MPLS_LABEL.iter_unpack(attr.data))
    return labels


@dataclass
class NextHop:
    """A multipath next hop with its gateway and MPLS encapsulation."""

    hop: RTNextHop = field(default_factory=RTNextHop)
    gateway: Optional[IPAddress] = None
    mpls: list[MPLSNextHop] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.gateway = _to_ip(self.gateway)

    @classmethod
    def _decode(cls, hop: RTNextHop, attrs: list[Attribute]) -> NextHop:
        nexthop = cls(hop=hop)
        encap_type = 0
        encap_data: Optional[bytes] = None
        for attr in attrs:
            if attr.type == RTA_ENCAP:
                encap_data = attr.data
            elif attr.type == RTA_ENCAP_TYPE:
                encap_type = attr.uint16()
            elif attr.type == RTA_GATEWAY:
                nexthop.gateway = attr.ip()
        if encap_type and encap_data is not None:
            nexthop.mpls = _decode_encap(encap_type, encap_data)
        return nexthop

    def _encode_encap(self, encoder: AttributeEncoder) -> None:
        encoder.bytes(MPLS_IPTUNNEL_DST, b"".join(label._pack() for label in self.mpls))

    def _encode(self) -> bytes:
        encoder = AttributeEncoder()
        if self.gateway is not None:
            encoder.ip(RTA_GATEWAY, self.gateway)
        if self.mpls:
            encoder.uint16(RTA_ENCAP_TYPE, LWTUNNEL_ENCAP_MPLS)
            encoder.nested(RTA_ENCAP, self._encode_encap)
        attrs = encoder.encode()
        length = SIZEOF_RTNEXTHOP + len(attrs)
        if length > 0xFFFF:
            raise InvalidAttributeError(f"next hop too large: {length} bytes")
        try:
            header = _RTNEXTHOP.pack(length, self.hop.flags, self.hop.hops, self.hop.if_index)
        except struct.error as exc:
            raise ValueError(f"next hop field out of range: {exc}") from exc
        return header + attrs


def _parse_multipath(data: bytes) -> list[NextHop]:
    nexthops: list[NextHop] = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < SIZEOF_RTNEXTHOP:
            raise InvalidAttributeError(_WRONG_LENGTH)
        length, flags, hops, if_index = _RTNEXTHOP.unpack_from(data, offset)
        if length < SIZEOF_RTNEXTHOP:
            raise InvalidAttributeError(_WRONG_LENGTH)
        offset += SIZEOF_RTNEXTHOP
        attrs_length = length - SIZEOF_RTNEXTHOP
        if len(data) - offset < attrs_length:
            raise InvalidAttributeError(_WRONG_LENGTH)
        attrs = decode_attributes(data[offset : offset + attrs_length])
        offset += attrs_length
        hop = RTNextHop(length=length, flags=flags, hops=hops, if_index=if_index)
        nexthops.append(NextHop._decode(hop, attrs))
    return nexthops


@dataclass
class RouteAttributes:
    """Attributes of a route."""

    dst: Optional[IPAddress] = None
    src: Optional[IPAddress] = None
    gateway: Optional[IPAddress] = None
    out_iface: int = 0
    priority: int = 0
    table: int = 0
    mark: int = 0
    pref: Optional[int] = None
    expires: Optional[int] = None
    metrics: Optional[RouteMetrics] = None
    multipath: list[NextHop] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.dst = _to_ip(self.dst)
        self.src = _to_ip(self.src)
        self.gateway = _to_ip(self.gateway)

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> RouteAttributes:
        result = cls()
        for attr in attrs:
            if attr.type == RTA_DST:
                result.dst = attr.ip()
            elif attr.type == RTA_PREFSRC:
                result.src = attr.ip()
            elif attr.type == RTA_GATEWAY:
                result.gateway = attr.ip()
            elif attr.type == RTA_OIF:
                result.out_iface = attr.uint32()
            elif attr.type == RTA_PRIORITY:
                result.priority = attr.uint32()
            elif attr.type == RTA_TABLE:
                result.table = attr.uint32()
            elif attr.type == RTA_MARK:
                result.mark = attr.uint32()
            elif attr.type == RTA_EXPIRES:
                result.expires = attr.uint32()
            elif attr.type == RTA_METRICS:
                result.metrics = RouteMetrics._decode(attr.nested())
            elif attr.type == RTA_MULTIPATH:
                result.multipath.extend(_parse_multipath(attr.data))
            elif attr.type == RTA_PREF:
                result.pref = attr.uint8()
        return result

    def _encode(self, encoder: AttributeEncoder) -> None:
        if self.dst is not None:
            encoder.ip(RTA_DST, self.dst)
        if self.src is not None:
            encoder.ip(RTA_PREFSRC, self.src)
        if self.gateway is not None:
            encoder.ip(RTA_GATEWAY, self.gateway)
        if self.out_iface:
            encoder.uint32(RTA_OIF, self.out_iface)
        if self.priority:
            encoder.uint32(RTA_PRIORITY, self.priority)
        if self.table:
            encoder.uint32(RTA_TABLE, self.table)
        if self.mark:
            encoder.uint32(RTA_MARK, self.mark)
        if self.pref is not None:
            encoder.uint8(RTA_PREF, self.pref)
        if self.expires is not None:
            encoder.uint32(RTA_EXPIRES, self.expires)
        if self.metrics is not None:
            encoder.nested(RTA_METRICS, self.metrics._encode)
        if self.multipath:
            encoder.bytes(RTA_MULTIPATH, b"".join(nh._encode() for nh in self.multipath))


@dataclass
class RouteMessage:
    """A route netlink route message (struct rtmsg plus attributes)."""

    family: int = 0
    dst_length: int = 0
    src_length: int = 0
    tos: int = 0
    table: int = 0
    protocol: int = 0
    scope: int = 0
    type: int = 0
    flags: int = 0
    attributes: RouteAttributes = field(default_factory=RouteAttributes)

    def marshal(self) -> bytes:
        """Encode the message header followed by its attributes."""
        try:
            header = _HEADER.pack(
                self.family,
                self.dst_length,
                self.src_length,
                self.tos,
                self.table,
                self.protocol,
                self.scope,
                self.type,
                self.flags,
            )
        except struct.error as exc:
            raise ValueError(f"route message header field out of range: {exc}") from exc
        encoder = AttributeEncoder()
        self.attributes._encode(encoder)
        return header + encoder.encode()

    @classmethod
    def unmarshal(cls, data: bytes) -> RouteMessage:
        """Decode a message; raise MessageTooShortError if the header is incomplete."""
        if len(data) < SIZEOF_RTMSG:
            raise MessageTooShortError("rtnetlink RouteMessage is invalid or too short")
        fields = _HEADER.unpack_from(data)
        message = cls(*fields)
        if len(data) > SIZEOF_RTMSG:
            message.attributes = RouteAttributes._decode(decode_attributes(data[SIZEOF_RTMSG:]))
        return message