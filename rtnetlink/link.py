"""Link (network interface) messages: RTM_NEWLINK, RTM_GETLINK and friends."""

from __future__ import annotations

import enum
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from .linkstats import LinkStats, LinkStats64
from .netns import NetNS
from .nlattr import (
    Attribute,
    AttributeEncoder,
    InvalidAttributeError,
    MessageTooShortError,
    RtnetlinkError,
    decode_attributes,
)

SIZEOF_IFINFOMSG = 16
_HEADER = struct.Struct("=HHIII")

IFLA_UNSPEC = 0
IFLA_ADDRESS = 1
IFLA_BROADCAST = 2
IFLA_IFNAME = 3
IFLA_MTU = 4
IFLA_LINK = 5
IFLA_QDISC = 6
IFLA_STATS = 7
IFLA_MASTER = 10
IFLA_TXQLEN = 13
IFLA_OPERSTATE = 16
IFLA_LINKMODE = 17
IFLA_LINKINFO = 18
IFLA_IFALIAS = 20
IFLA_STATS64 = 23
IFLA_GROUP = 27
IFLA_CARRIER = 33
IFLA_PHYS_PORT_ID = 34
IFLA_CARRIER_CHANGES = 35
IFLA_PHYS_SWITCH_ID = 36
IFLA_PHYS_PORT_NAME = 38
IFLA_XDP = 43
IFLA_CARRIER_UP_COUNT = 47
IFLA_CARRIER_DOWN_COUNT = 48

IFLA_INFO_KIND = 1
IFLA_INFO_DATA = 2
IFLA_INFO_SLAVE_KIND = 4
IFLA_INFO_SLAVE_DATA = 5

IFLA_XDP_FD = 1
IFLA_XDP_ATTACHED = 2
IFLA_XDP_FLAGS = 3
IFLA_XDP_PROG_ID = 4
IFLA_XDP_EXPECTED_FD = 8


class OperationalState(enum.IntEnum):
    """RFC 2863 operational state of an interface."""

    UNKNOWN = 0
    NOT_PRESENT = 1
    DOWN = 2
    LOWER_LAYER_DOWN = 3
    TESTING = 4
    DORMANT = 5
    UP = 6


def _operational_state(value: int) -> OperationalState | int:
    try:
        return OperationalState(value)
    except ValueError:
        return value


class LinkDriver(ABC):
    """Encodes and decodes the driver-specific data of a link of one kind.

    A driver with a true ``slave`` attribute handles slave data. A driver may
    also define ``verify(message)``, which is called before the message is
    encoded.
    """

    def new(self) -> LinkDriver:
        """Return a fresh instance of this driver."""
        return type(self)()

    @abstractmethod
    def encode(self, encoder: AttributeEncoder) -> None:
        """Add the driver data to ``encoder``."""

    @abstractmethod
    def decode(self, attribute: Attribute) -> None:
        """Fill in the driver from its data attribute."""

    @abstractmethod
    def kind(self) -> str:
        """The kind name matched against LinkInfo.kind."""


@dataclass
class LinkData(LinkDriver):
    """Raw driver data for kinds with no registered driver."""

    name: str = ""
    data: bytes = b""
    slave: bool = False

    def new(self) -> LinkData:
        return LinkData()

    def encode(self, encoder: AttributeEncoder) -> None:
        if not self.data:
            return
        encoder.bytes(IFLA_INFO_SLAVE_DATA if self.slave else IFLA_INFO_DATA, self.data)

    def decode(self, attribute: Attribute) -> None:
        self.data = attribute.data

    def kind(self) -> str:
        return self.name


_drivers: dict[str, LinkDriver] = {}
_slave_drivers: dict[str, LinkDriver] = {}


def register_driver(driver: LinkDriver) -> None:
    """Register a driver for its kind; raise ValueError if one is already registered."""
    registry = _slave_drivers if getattr(driver, "slave", False) else _drivers
    kind = driver.kind()
    if kind in registry:
        raise ValueError(f"driver {kind} already registered")
    registry[kind] = driver


def get_driver(kind: str, slave: bool) -> tuple[LinkDriver, bool]:
    """Return a new driver for ``kind`` and whether a registered one was found."""
    registry = _slave_drivers if slave else _drivers
    registered = registry.get(kind)
    if registered is not None:
        return registered.new(), True
    return LinkData(name=kind, slave=slave), False


@dataclass
class LinkInfo:
    """Kind and driver-specific configuration of a link."""

    kind: str = ""
    data: LinkDriver | None = None
    slave_kind: str = ""
    slave_data: LinkDriver | None = None

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> LinkInfo:
        info = cls()
        for attr in attrs:
            if attr.type == IFLA_INFO_KIND:
                info.kind = attr.string()
            elif attr.type == IFLA_INFO_SLAVE_KIND:
                info.slave_kind = attr.string()
            elif attr.type == IFLA_INFO_DATA:
                info.data, _ = get_driver(info.kind, False)
                info.data.decode(attr)
            elif attr.type == IFLA_INFO_SLAVE_DATA:
                info.slave_data, _ = get_driver(info.slave_kind, True)
                info.slave_data.decode(attr)
        return info

    def _encode(self, encoder: AttributeEncoder) -> None:
        encoder.string(IFLA_INFO_KIND, self.kind)
        if self.data is not None:
            if self.kind != self.data.kind():
                raise RtnetlinkError(
                    f"driver kind {self.data.kind()} is not equal to info kind {self.kind}"
                )
            _encode_driver(encoder, IFLA_INFO_DATA, self.data)
        if self.slave_data is not None:
            if self.slave_kind != self.slave_data.kind():
                raise RtnetlinkError(
                    f"slave driver kind {self.slave_data.kind()} is not equal to "
                    f"slave info kind {self.slave_kind}"
                )
            encoder.string(IFLA_INFO_SLAVE_KIND, self.slave_kind)
            _encode_driver(encoder, IFLA_INFO_SLAVE_DATA, self.slave_data)


def _encode_driver(encoder: AttributeEncoder, typ: int, driver: LinkDriver) -> None:
    if isinstance(driver, LinkData):
        driver.encode(encoder)
    else:
        encoder.nested(typ, driver.encode)


@dataclass
class LinkXDP:
    """Express Data Path settings of a link."""

    fd: int = 0
    expected_fd: int = 0
    attached: int = 0
    flags: int = 0
    prog_id: int = 0

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> LinkXDP:
        xdp = cls()
        for attr in attrs:
            if attr.type == IFLA_XDP_FD:
                xdp.fd = attr.int32()
            elif attr.type == IFLA_XDP_EXPECTED_FD:
                xdp.expected_fd = attr.int32()
            elif attr.type == IFLA_XDP_ATTACHED:
                xdp.attached = attr.uint8()
            elif attr.type == IFLA_XDP_FLAGS:
                xdp.flags = attr.uint32()
            elif attr.type == IFLA_XDP_PROG_ID:
                xdp.prog_id = attr.uint32()
        return xdp

    def _encode(self, encoder: AttributeEncoder) -> None:
        # Attached state and program id are reported by the kernel only.
        encoder.int32(IFLA_XDP_FD, self.fd)
        encoder.int32(IFLA_XDP_EXPECTED_FD, self.expected_fd)
        encoder.uint32(IFLA_XDP_FLAGS, self.flags)


_SCALARS: dict[int, tuple[str, Callable[[Attribute], object]]] = {
    IFLA_IFALIAS: ("alias", Attribute.string),
    IFLA_CARRIER: ("carrier", Attribute.uint8),
    IFLA_CARRIER_CHANGES: ("carrier_changes", Attribute.uint32),
    IFLA_CARRIER_UP_COUNT: ("carrier_up_count", Attribute.uint32),
    IFLA_CARRIER_DOWN_COUNT: ("carrier_down_count", Attribute.uint32),
    IFLA_GROUP: ("net_dev_group", Attribute.uint32),
    IFLA_MTU: ("mtu", Attribute.uint32),
    IFLA_IFNAME: ("name", Attribute.string),
    IFLA_LINK: ("type", Attribute.uint32),
    IFLA_LINKMODE: ("link_mode", Attribute.uint8),
    IFLA_MASTER: ("master", Attribute.uint32),
    IFLA_PHYS_PORT_ID: ("phys_port_id", Attribute.string),
    IFLA_PHYS_SWITCH_ID: ("phys_switch_id", Attribute.string),
    IFLA_PHYS_PORT_NAME: ("phys_port_name", Attribute.string),
    IFLA_QDISC: ("queue_disc", Attribute.string),
    IFLA_TXQLEN: ("tx_queue_len", Attribute.uint32),
}


def _hardware_addr(attr: Attribute) -> bytes:
    if not 4 <= len(attr.data) <= 32:
        raise InvalidAttributeError("rtnetlink LinkMessage has a wrong attribute data length")
    return attr.data


@dataclass
class LinkAttributes:
    """Attributes of a network interface."""

    address: bytes | None = None
    alias: str | None = None
    broadcast: bytes | None = None
    carrier: int | None = None
    carrier_changes: int | None = None
    carrier_up_count: int | None = None
    carrier_down_count: int | None = None
    index: int | None = None
    info: LinkInfo | None = None
    link_mode: int | None = None
    mtu: int = 0
    name: str = ""
    net_dev_group: int | None = None
    operational_state: OperationalState | int = OperationalState.UNKNOWN
    phys_port_id: str | None = None
    phys_port_name: str | None = None
    phys_switch_id: str | None = None
    queue_disc: str = ""
    master: int | None = None
    stats: LinkStats | None = None
    stats64: LinkStats64 | None = None
    tx_queue_len: int | None = None
    type: int = 0
    xdp: LinkXDP | None = None
    netns: NetNS | None = None

    @classmethod
    def _decode(cls, attrs: list[Attribute]) -> LinkAttributes:
        result = cls()
        for attr in attrs:
            scalar = _SCALARS.get(attr.type)
            if scalar is not None:
                name, read = scalar
                setattr(result, name, read(attr))
            elif attr.type == IFLA_ADDRESS:
                result.address = _hardware_addr(attr)
            elif attr.type == IFLA_BROADCAST:
                result.broadcast = _hardware_addr(attr)
            elif attr.type == IFLA_OPERSTATE:
                result.operational_state = _operational_state(attr.uint8())
            elif attr.type == IFLA_LINKINFO:
                result.info = LinkInfo._decode(attr.nested())
            elif attr.type == IFLA_STATS:
                result.stats = LinkStats.from_bytes(attr.data)
            elif attr.type == IFLA_STATS64:
                result.stats64 = LinkStats64.from_bytes(attr.data)
            elif attr.type == IFLA_XDP:
                result.xdp = LinkXDP._decode(attr.nested())
        return result

    def _encode(self, encoder: AttributeEncoder) -> None:
        if self.name:
            encoder.string(IFLA_IFNAME, self.name)
        if self.type:
            encoder.uint32(IFLA_LINK, self.type)
        if self.queue_disc:
            encoder.string(IFLA_QDISC, self.queue_disc)
        if self.mtu:
            encoder.uint32(IFLA_MTU, self.mtu)
        if self.address:
            encoder.bytes(IFLA_ADDRESS, self.address)
        if self.broadcast:
            encoder.bytes(IFLA_BROADCAST, self.broadcast)
        if self.operational_state != OperationalState.UNKNOWN:
            encoder.uint8(IFLA_OPERSTATE, int(self.operational_state))
        if self.info is not None:
            child = AttributeEncoder()
            self.info._encode(child)
            encoder.bytes(IFLA_LINKINFO, child.encode())
        if self.xdp is not None:
            child = AttributeEncoder()
            self.xdp._encode(child)
            encoder.bytes(IFLA_XDP, child.encode())
        if self.master is not None:
            encoder.uint32(IFLA_MASTER, self.master)
        if self.netns is not None:
            encoder.uint32(*self.netns.value())


@dataclass
class LinkMessage:
    """A route netlink link message (struct ifinfomsg plus attributes)."""

    family: int = 0
    type: int = 0
    index: int = 0
    flags: int = 0
    change: int = 0
    attributes: LinkAttributes | None = field(default=None)

    def marshal(self) -> bytes:
        """Encode the message; the family is always sent as AF_UNSPEC."""
        try:
            header = _HEADER.pack(0, self.type, self.index, self.flags, self.change)
        except struct.error as exc:
            raise ValueError(f"link message header field out of range: {exc}") from exc
        if self.attributes is None:
            return header
        info = self.attributes.info
        if info is not None and info.data is not None:
            verify = getattr(info.data, "verify", None)
            if callable(verify):
                verify(self)
        encoder = AttributeEncoder()
        self.attributes._encode(encoder)
        return header + encoder.encode()

    @classmethod
    def unmarshal(cls, data: bytes) -> LinkMessage:
        """Decode a message; raise MessageTooShortError if the header is incomplete."""
        if len(data) < SIZEOF_IFINFOMSG:
            raise MessageTooShortError("rtnetlink LinkMessage is invalid or too short")
        family, typ, index, flags, change = _HEADER.unpack_from(data)
        message = cls(family=family, type=typ, index=index, flags=flags, change=change)
        if len(data) > SIZEOF_IFINFOMSG:
            attrs = decode_attributes(data[SIZEOF_IFINFOMSG:])
            message.attributes = LinkAttributes._decode(attrs)
        return message