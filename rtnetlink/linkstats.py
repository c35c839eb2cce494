"""Interface packet counters carried in IFLA_STATS and IFLA_STATS64."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .nlattr import InvalidAttributeError

_STATS32_BASE = struct.Struct("=23I")
_STATS64_BASE = struct.Struct("=23Q")
_U32 = struct.Struct("=I")
_U64 = struct.Struct("=Q")


@dataclass
class LinkStats:
    """32-bit interface statistics (struct rtnl_link_stats)."""

    rx_packets: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_errors: int = 0
    tx_errors: int = 0
    rx_dropped: int = 0
    tx_dropped: int = 0
    multicast: int = 0
    collisions: int = 0
    rx_length_errors: int = 0
    rx_over_errors: int = 0
    rx_crc_errors: int = 0
    rx_frame_errors: int = 0
    rx_fifo_errors: int = 0
    rx_missed_errors: int = 0
    tx_aborted_errors: int = 0
    tx_carrier_errors: int = 0
    tx_fifo_errors: int = 0
    tx_heartbeat_errors: int = 0
    tx_window_errors: int = 0
    rx_compressed: int = 0
    tx_compressed: int = 0
    rx_nohandler: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> LinkStats:
        """Parse 92 bytes, or 96 bytes when rx_nohandler is present."""
        if len(data) not in (92, 96):
            raise InvalidAttributeError(
                f"incorrect LinkMessage size, want: 92 or 96, got: {len(data)}"
            )
        stats = cls(*_STATS32_BASE.unpack_from(data))
        if len(data) == 96:
            stats.rx_nohandler = _U32.unpack_from(data, 92)[0]
        return stats


@dataclass
class LinkStats64:
    """64-bit interface statistics (struct rtnl_link_stats64)."""

    rx_packets: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_errors: int = 0
    tx_errors: int = 0
    rx_dropped: int = 0
    tx_dropped: int = 0
    multicast: int = 0
    collisions: int = 0
    rx_length_errors: int = 0
    rx_over_errors: int = 0
    rx_crc_errors: int = 0
    rx_frame_errors: int = 0
    rx_fifo_errors: int = 0
    rx_missed_errors: int = 0
    tx_aborted_errors: int = 0
    tx_carrier_errors: int = 0
    tx_fifo_errors: int = 0
    tx_heartbeat_errors: int = 0
    tx_window_errors: int = 0
    rx_compressed: int = 0
    tx_compressed: int = 0
    rx_nohandler: int = 0
    rx_otherhost_dropped: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> LinkStats64:
        """Parse 184, 192 or 200 bytes depending on the kernel's structure size."""
        if len(data) not in (184, 192, 200):
            raise InvalidAttributeError("incorrect size, want: 184 or 192 or 200")
        stats = cls(*_STATS64_BASE.unpack_from(data))
        if len(data) >= 192:
            stats.rx_nohandler = _U64.unpack_from(data, 184)[0]
        if len(data) >= 200:
            stats.rx_otherhost_dropped = _U64.unpack_from(data, 192)[0]
        return stats