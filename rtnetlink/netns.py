"""Network namespace handles for link attributes."""

from __future__ import annotations

from dataclasses import dataclass

IFLA_NET_NS_PID = 19
IFLA_NET_NS_FD = 28

_UINT32_MAX = 0xFFFFFFFF


def _check_uint32(name: str, value: int) -> int:
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"{name} {value} out of range for uint32")
    return value


@dataclass(frozen=True)
class NetNS:
    """A handle to a network namespace, given by a file descriptor or a process id.

    Neither handle is owned: the descriptor is not duplicated or closed, and a
    process handle becomes invalid when the process exits.
    """

    fd: int | None = None
    pid: int | None = None

    @classmethod
    def for_pid(cls, pid: int) -> NetNS:
        """Handle to the namespace of a running process."""
        return cls(pid=_check_uint32("pid", pid))

    @classmethod
    def for_fd(cls, fd: int) -> NetNS:
        """Handle to a namespace opened elsewhere as a file descriptor."""
        return cls(fd=_check_uint32("fd", fd))

    def value(self) -> tuple[int, int]:
        """Return the attribute type and value to send, or (0, 0) if unset."""
        if self.fd is not None:
            return IFLA_NET_NS_FD, self.fd
        if self.pid is not None:
            return IFLA_NET_NS_PID, self.pid
        return 0, 0