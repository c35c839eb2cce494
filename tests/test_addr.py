import ipaddress

import pytest

from rtnetlink.rtnl.addr import (
    AF_INET,
    AF_INET6,
    RT_SCOPE_HOST,
    RT_SCOPE_LINK,
    RT_SCOPE_UNIVERSE,
    AddrError,
    addr_family,
    addr_scope,
    broadcast_addr,
    is_subnet_addr,
    parse_addr,
)


@pytest.mark.parametrize(
    "text, message",
    [
        ("ff00::/64", "address ff00::: attempted to parse a subnet address into a host address"),
        ("10.0.0.0/8", "address 10.0.0.0: attempted to parse a subnet address into a host address"),
    ],
)
def test_parse_addr_rejects_subnet_address(text, message):
    with pytest.raises(AddrError) as info:
        parse_addr(text)
    assert str(info.value) == message


def test_parse_addr_ipv6_host():
    result = parse_addr("ff00::1/64")
    assert result.ip == ipaddress.ip_address("ff00::1")
    assert result.netmask == ipaddress.ip_address("ffff:ffff:ffff:ffff::")


def test_parse_addr_ipv4_host():
    result = parse_addr("10.0.0.1/8")
    assert result.ip == ipaddress.ip_address("10.0.0.1")
    assert result.netmask == ipaddress.ip_address("255.0.0.0")


@pytest.mark.parametrize("text", ["10.0.0.1", "garbage/8", "10.0.0.1/33"])
def test_parse_addr_invalid_cidr(text):
    with pytest.raises(ValueError):
        parse_addr(text)


@pytest.mark.parametrize(
    "ip, family",
    [
        (ipaddress.ip_address("10.0.0.1"), AF_INET),
        (ipaddress.ip_address("::ffff:10.0.0.1"), AF_INET),
        (ipaddress.ip_address("2001:db8::1"), AF_INET6),
        (b"\x0a\x00\x00\x01", AF_INET),
        ("fe80::1", AF_INET6),
    ],
)
def test_addr_family(ip, family):
    assert addr_family(ip) == family


def test_addr_family_rejects_bad_length():
    with pytest.raises(AddrError) as info:
        addr_family(b"\x01\x02\x03")
    assert info.value.err == "invalid IP address"


@pytest.mark.parametrize(
    "ip, scope",
    [
        ("8.8.8.8", RT_SCOPE_UNIVERSE),
        ("10.0.0.1", RT_SCOPE_UNIVERSE),
        ("2001:db8::1", RT_SCOPE_UNIVERSE),
        ("127.0.0.1", RT_SCOPE_HOST),
        ("::1", RT_SCOPE_HOST),
        ("::ffff:127.0.0.1", RT_SCOPE_HOST),
        ("fe80::1", RT_SCOPE_LINK),
        ("169.254.1.1", RT_SCOPE_LINK),
        ("224.0.0.1", RT_SCOPE_LINK),
        ("255.255.255.255", RT_SCOPE_LINK),
    ],
)
def test_addr_scope(ip, scope):
    assert addr_scope(ipaddress.ip_address(ip)) == scope


def test_broadcast_addr_ipv4():
    assert broadcast_addr(parse_addr("10.0.0.1/8")) == ipaddress.ip_address("10.255.255.255")
    assert broadcast_addr(parse_addr("192.168.1.10/24")) == ipaddress.ip_address("192.168.1.255")


def test_broadcast_addr_host_route_is_itself():
    interface = ipaddress.ip_interface("127.0.0.99/32")
    assert broadcast_addr(interface) == interface.ip


def test_broadcast_addr_ipv6_is_none():
    assert broadcast_addr(parse_addr("ff00::1/64")) is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10.0.0.0/8", True),
        ("10.0.0.1/8", False),
        ("10.0.0.0/32", False),
        ("::/128", False),
        ("2001:db8::/64", True),
    ],
)
def test_is_subnet_addr(text, expected):
    assert is_subnet_addr(ipaddress.ip_interface(text)) is expected