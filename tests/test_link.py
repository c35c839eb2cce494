from dataclasses import dataclass

import pytest

from rtnetlink.link import (
    LinkAttributes,
    LinkData,
    LinkDriver,
    LinkInfo,
    LinkMessage,
    LinkXDP,
    OperationalState,
    get_driver,
    register_driver,
)
from rtnetlink.linkstats import LinkStats
from rtnetlink.netns import NetNS
from rtnetlink.nlattr import (
    AttributeEncoder,
    InvalidAttributeError,
    MessageTooShortError,
    RtnetlinkError,
    decode_attributes,
)

HEADER_ZERO = bytes(16)


def hx(text):
    return bytes.fromhex(text.replace(" ", ""))


ZERO_VALUE_ATTRS = hx(
    "06000000 00000000 0a000100 00000000 00000000 0a000200 00000000 00000000"
)
TAIL_ATTRS = hx("08000400 00000000 08000500 00000000 05000600 00000000")
INFO_ATTR = hx(
    "38001200 09000100 64617461 00000000 0d000200 01020304 05060708 09000000"
    "08000400 666f6f00 0d000500 01020304 05060708 09000000"
)
PAYLOAD = bytes(range(1, 10))


@dataclass
class DummyDriver(LinkDriver):
    value: int = 0

    def encode(self, encoder):
        encoder.uint32(1, self.value)

    def decode(self, attribute):
        for attr in attribute.nested():
            if attr.type == 1:
                self.value = attr.uint32()

    def kind(self):
        return "testdummy"


@dataclass
class VerifiedDriver(LinkDriver):
    def encode(self, encoder):
        encoder.uint8(1, 1)

    def decode(self, attribute):
        pass

    def kind(self):
        return "verified"

    def verify(self, message):
        if message.index == 0:
            raise ValueError("index required")


@pytest.fixture(scope="module")
def dummy_registered():
    register_driver(DummyDriver())
    return True


# Marshal cases


def test_marshal_empty():
    assert LinkMessage().marshal() == HEADER_ZERO


def test_marshal_no_attributes():
    assert LinkMessage(type=1, index=2).marshal() == hx(
        "00000100 02000000 00000000 00000000"
    )


def test_marshal_no_attributes_with_flags():
    assert LinkMessage(type=1, index=2, flags=0x1).marshal() == hx(
        "00000100 02000000 01000000 00000000"
    )


def test_marshal_attributes():
    message = LinkMessage(
        attributes=LinkAttributes(
            address=bytes([0x40, 0x41, 0x42, 0x43, 0x44, 0x45]),
            broadcast=b"\xff" * 6,
            name="lo",
        )
    )
    assert message.marshal() == HEADER_ZERO + hx(
        "07000300 6c6f0000 0a000100 40414243 44450000 0a000200 ffffffff ffff0000"
    )


def test_marshal_attributes_ipip():
    message = LinkMessage(
        attributes=LinkAttributes(
            address=bytes([10, 0, 0, 1]), broadcast=b"\xff" * 4, name="ipip"
        )
    )
    assert message.marshal() == HEADER_ZERO + hx(
        "09000300 69706970 00000000 08000100 0a000001 08000200 ffffffff"
    )


def test_marshal_info():
    message = LinkMessage(
        attributes=LinkAttributes(
            address=bytes(6),
            broadcast=bytes(6),
            name="lo",
            info=LinkInfo(
                kind="data",
                data=LinkData(name="data", data=PAYLOAD),
                slave_kind="foo",
                slave_data=LinkData(name="foo", data=PAYLOAD, slave=True),
            ),
        )
    )
    assert message.marshal() == HEADER_ZERO + hx(
        "07000300 6c6f0000 0a000100 00000000 00000000 0a000200 00000000 00000000"
    ) + INFO_ATTR


def test_marshal_operational_state():
    message = LinkMessage(
        attributes=LinkAttributes(
            address=bytes([10, 0, 0, 1]),
            broadcast=b"\xff" * 4,
            name="ipip",
            operational_state=OperationalState.UP,
        )
    )
    assert message.marshal() == HEADER_ZERO + hx(
        "09000300 69706970 00000000 08000100 0a000001 08000200 ffffffff 05001000 06000000"
    )


def test_marshal_netns_pid():
    message = LinkMessage(attributes=LinkAttributes(netns=NetNS.for_pid(42)))
    assert message.marshal() == HEADER_ZERO + hx("08001300 2a000000")


def test_marshal_master():
    message = LinkMessage(attributes=LinkAttributes(master=3))
    assert message.marshal() == HEADER_ZERO + hx("08000a00 03000000")


def test_marshal_info_kind_mismatch():
    message = LinkMessage(
        attributes=LinkAttributes(info=LinkInfo(kind="a", data=LinkData(name="b")))
    )
    with pytest.raises(RtnetlinkError, match="driver kind b is not equal to info kind a"):
        message.marshal()


def test_marshal_slave_kind_mismatch():
    message = LinkMessage(
        attributes=LinkAttributes(
            info=LinkInfo(kind="a", slave_kind="x", slave_data=LinkData(name="y", slave=True))
        )
    )
    with pytest.raises(RtnetlinkError, match="slave driver kind y"):
        message.marshal()


def test_marshal_calls_verify():
    message = LinkMessage(
        attributes=LinkAttributes(info=LinkInfo(kind="verified", data=VerifiedDriver()))
    )
    with pytest.raises(ValueError, match="index required"):
        message.marshal()
    message.index = 4
    assert message.marshal()[4:8] == b"\x04\x00\x00\x00"


# Unmarshal cases


@pytest.mark.parametrize("data", [b"", bytes(3)])
def test_unmarshal_too_short(data):
    with pytest.raises(MessageTooShortError):
        LinkMessage.unmarshal(data)


def test_unmarshal_invalid_attr():
    data = HEADER_ZERO + hx(
        "06000000 00000000 04000100 04000200 05000300 00000000"
        "08000400 00000000 08000500 00000000 05000600 00000000"
    )
    with pytest.raises(InvalidAttributeError):
        LinkMessage.unmarshal(data)


def test_unmarshal_zero_value():
    data = HEADER_ZERO + ZERO_VALUE_ATTRS + hx("07000000 00000000") + TAIL_ATTRS
    assert LinkMessage.unmarshal(data) == LinkMessage(
        attributes=LinkAttributes(address=bytes(6), broadcast=bytes(6))
    )


def test_unmarshal_no_data():
    data = (
        hx("00000100 02000000 00000000 00000000")
        + ZERO_VALUE_ATTRS
        + hx("07000000 00000000")
        + TAIL_ATTRS
    )
    assert LinkMessage.unmarshal(data) == LinkMessage(
        type=1,
        index=2,
        attributes=LinkAttributes(address=bytes(6), broadcast=bytes(6)),
    )


def test_unmarshal_data():
    data = HEADER_ZERO + ZERO_VALUE_ATTRS + hx("07000300 6c6f0000") + TAIL_ATTRS
    assert LinkMessage.unmarshal(data) == LinkMessage(
        attributes=LinkAttributes(address=bytes(6), broadcast=bytes(6), name="lo")
    )


def test_unmarshal_attributes():
    data = HEADER_ZERO + hx(
        "06000000 00000000"
        "08000100 0a000001"
        "08000200 ffffffff"
        "08000300 72746c00"
        "08001400 72746c00"
        "05002100 01000000"
        "08002300 01000000"
        "08002f00 01000000"
        "08003000 01000000"
        "08001b00 01000000"
        "08000500 01000000"
        "05001100 01000000"
        "08000a00 01000000"
        "08000400 01000000"
        "05001000 06000000"
        "08002200 72746c00"
        "08002400 72746c00"
        "08002600 72746c00"
        "08000600 72746c00"
        "08000d00 01000000"
    )
    assert LinkMessage.unmarshal(data) == LinkMessage(
        attributes=LinkAttributes(
            alias="rtl",
            address=bytes([10, 0, 0, 1]),
            broadcast=b"\xff" * 4,
            name="rtl",
            carrier=1,
            carrier_changes=1,
            carrier_up_count=1,
            carrier_down_count=1,
            master=1,
            link_mode=1,
            mtu=1,
            net_dev_group=1,
            operational_state=OperationalState.UP,
            phys_port_id="rtl",
            phys_switch_id="rtl",
            phys_port_name="rtl",
            queue_disc="rtl",
            tx_queue_len=1,
            type=1,
        )
    )


def test_unmarshal_info():
    data = (
        HEADER_ZERO
        + ZERO_VALUE_ATTRS
        + hx("07000300 6c6f0000")
        + TAIL_ATTRS
        + INFO_ATTR
    )
    assert LinkMessage.unmarshal(data) == LinkMessage(
        attributes=LinkAttributes(
            address=bytes(6),
            broadcast=bytes(6),
            name="lo",
            info=LinkInfo(
                kind="data",
                data=LinkData(name="data", data=PAYLOAD),
                slave_kind="foo",
                slave_data=LinkData(name="foo", data=PAYLOAD, slave=True),
            ),
        )
    )


def test_unmarshal_stats_attribute():
    encoder = AttributeEncoder()
    encoder.bytes(7, bytes(96))
    message = LinkMessage.unmarshal(HEADER_ZERO + encoder.encode())
    assert message.attributes.stats == LinkStats()


def test_unmarshal_stats_wrong_size():
    encoder = AttributeEncoder()
    encoder.bytes(7, bytes(10))
    with pytest.raises(InvalidAttributeError, match="got: 10"):
        LinkMessage.unmarshal(HEADER_ZERO + encoder.encode())


def test_unknown_operational_state_kept_as_int():
    encoder = AttributeEncoder()
    encoder.uint8(16, 9)
    message = LinkMessage.unmarshal(HEADER_ZERO + encoder.encode())
    assert message.attributes.operational_state == 9


# XDP


def test_xdp_encoding_and_round_trip():
    message = LinkMessage(
        attributes=LinkAttributes(xdp=LinkXDP(fd=3, expected_fd=-1, flags=2, attached=1))
    )
    data = message.marshal()
    assert data == HEADER_ZERO + hx(
        "1c002b00 08000100 03000000 08000800 ffffffff 08000300 02000000"
    )
    decoded = LinkMessage.unmarshal(data)
    assert decoded.attributes.xdp == LinkXDP(fd=3, expected_fd=-1, flags=2)


# Drivers


def test_registered_driver_round_trip(dummy_registered):
    message = LinkMessage(
        index=5,
        attributes=LinkAttributes(
            name="dm0", info=LinkInfo(kind="testdummy", data=DummyDriver(value=7))
        ),
    )
    data = message.marshal()
    assert LinkMessage.unmarshal(data) == message


def test_registered_driver_data_is_nested(dummy_registered):
    message = LinkMessage(
        attributes=LinkAttributes(info=LinkInfo(kind="testdummy", data=DummyDriver(value=7)))
    )
    (linkinfo,) = decode_attributes(message.marshal()[16:])
    kinds = {attr.type: attr for attr in linkinfo.nested()}
    assert kinds[2].is_nested
    assert kinds[2].nested()[0].uint32() == 7


def test_get_driver_registered(dummy_registered):
    driver, found = get_driver("testdummy", False)
    assert found is True
    assert driver == DummyDriver()


def test_get_driver_unregistered_slave():
    assert get_driver("nosuchkind", True) == (LinkData(name="nosuchkind", slave=True), False)


def test_get_driver_unregistered():
    assert get_driver("nosuchkind", False) == (LinkData(name="nosuchkind"), False)


def test_register_duplicate_driver():
    @dataclass
    class DupDriver(LinkDriver):
        def encode(self, encoder):
            pass

        def decode(self, attribute):
            pass

        def kind(self):
            return "dupdrv"

    class DupSlaveDriver(DupDriver):
        slave = True

    register_driver(DupDriver())
    with pytest.raises(ValueError, match="driver dupdrv already registered"):
        register_driver(DupDriver())
    register_driver(DupSlaveDriver())
    driver, found = get_driver("dupdrv", True)
    assert found is True
    assert isinstance(driver, DupSlaveDriver)


def test_link_data_encode_empty_and_slave():
    encoder = AttributeEncoder()
    LinkData(name="x").encode(encoder)
    assert encoder.encode() == b""
    LinkData(name="x", data=b"\x01", slave=True).encode(encoder)
    assert encoder.encode() == hx("05000500 01000000")


def test_link_data_new_and_kind():
    assert LinkData(name="a", data=b"x").new() == LinkData()
    assert LinkData(name="veth").kind() == "veth"