import pytest

from rtnetlink.netns import IFLA_NET_NS_FD, IFLA_NET_NS_PID, NetNS


def test_for_pid_value():
    ns = NetNS.for_pid(1234)
    assert ns.value() == (IFLA_NET_NS_PID, 1234)
    assert ns.fd is None


def test_for_fd_value():
    ns = NetNS.for_fd(7)
    assert ns.value() == (28, 7)
    assert ns.pid is None


def test_fd_takes_precedence():
    ns = NetNS(fd=3, pid=99)
    assert ns.value() == (IFLA_NET_NS_FD, 3)


def test_unset_handle_gives_zero():
    assert NetNS().value() == (0, 0)


@pytest.mark.parametrize("bad", [-1, 2**32])
def test_out_of_range_pid_raises(bad):
    with pytest.raises(ValueError):
        NetNS.for_pid(bad)


@pytest.mark.parametrize("bad", [-1, 2**32])
def test_out_of_range_fd_raises(bad):
    with pytest.raises(ValueError):
        NetNS.for_fd(bad)


def test_handles_compare_by_value():
    assert NetNS.for_pid(42) == NetNS.for_pid(42)
    assert NetNS.for_pid(42) != NetNS.for_fd(42)