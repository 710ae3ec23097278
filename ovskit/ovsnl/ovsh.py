"""Constants and binary structures of the Open vSwitch generic netlink interface.

Structures use the host's byte order and the layouts of the kernel's
``openvswitch.h`` header.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import ClassVar

DATAPATH_FAMILY = "ovs_datapath"
DATAPATH_MCGROUP = "ovs_datapath"
DATAPATH_VERSION = 2
DP_VER_FEATURES = 2

PACKET_FAMILY = "ovs_packet"
PACKET_VERSION = 0x1

VPORT_FAMILY = "ovs_vport"
VPORT_MCGROUP = "ovs_vport"
VPORT_VERSION = 0x1

FLOW_FAMILY = "ovs_flow"
FLOW_MCGROUP = "ovs_flow"
FLOW_VERSION = 0x1

METER_FAMILY = "ovs_meter"
METER_MCGROUP = "ovs_meter"
METER_VERSION = 0x1

DP_F_UNALIGNED = 1 << 0
DP_F_VPORT_PIDS = 1 << 1

CT_LABELS_LEN32 = 4

CS_F_NEW = 0x01
CS_F_ESTABLISHED = 0x02
CS_F_RELATED = 0x04
CS_F_REPLY_DIR = 0x08
CS_F_INVALID = 0x10
CS_F_TRACKED = 0x20
CS_F_SRC_NAT = 0x40
CS_F_DST_NAT = 0x80
CS_F_NAT_MASK = CS_F_SRC_NAT | CS_F_DST_NAT

UFID_F_OMIT_KEY = 1 << 0
UFID_F_OMIT_MASK = 1 << 1
UFID_F_OMIT_ACTIONS = 1 << 2


class DatapathCommand(IntEnum):
    """Commands of the ``ovs_datapath`` family."""

    UNSPEC = 0
    NEW = 1
    DEL = 2
    GET = 3
    SET = 4


class DatapathAttr(IntEnum):
    """Attribute types of ``ovs_datapath`` messages."""

    UNSPEC = 0
    NAME = 1
    UPCALL_PID = 2
    STATS = 3
    MEGAFLOW_STATS = 4
    USER_FEATURES = 5
    PAD = 6


DP_ATTR_MAX = max(DatapathAttr)


def _check_exact(name: str, data: bytes, size: int) -> None:
    if len(data) != size:
        raise ValueError(
            f"unexpected {name} structure size, want {size}, got {len(data)}"
        )


@dataclass(frozen=True)
class Header:
    """The header that starts every OVS generic netlink message."""

    ifindex: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("=i")
    SIZE: ClassVar[int] = _FORMAT.size

    def to_bytes(self) -> bytes:
        """Return the header in wire form."""
        return self._FORMAT.pack(self.ifindex)

    @classmethod
    def from_bytes(cls, data: bytes) -> Header:
        """Read a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise ValueError(
                f"not enough data for OVS message header: {len(data)} bytes"
            )
        (ifindex,) = cls._FORMAT.unpack_from(data)
        return cls(ifindex=ifindex)


@dataclass(frozen=True)
class DPStats:
    """Packet counters of a datapath."""

    hit: int = 0
    missed: int = 0
    lost: int = 0
    flows: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("=4Q")
    SIZE: ClassVar[int] = _FORMAT.size

    def to_bytes(self) -> bytes:
        """Return the structure in wire form."""
        return self._FORMAT.pack(self.hit, self.missed, self.lost, self.flows)

    @classmethod
    def from_bytes(cls, data: bytes) -> DPStats:
        """Read the structure from exactly ``SIZE`` bytes."""
        _check_exact("datapath stats", data, cls.SIZE)
        hit, missed, lost, flows = cls._FORMAT.unpack(data)
        return cls(hit=hit, missed=missed, lost=lost, flows=flows)


@dataclass(frozen=True)
class DPMegaflowStats:
    """Megaflow mask counters of a datapath; padding is written as zeros."""

    mask_hit: int = 0
    masks: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("=QIIQQ")
    SIZE: ClassVar[int] = _FORMAT.size

    def to_bytes(self) -> bytes:
        """Return the structure in wire form."""
        return self._FORMAT.pack(self.mask_hit, self.masks, 0, 0, 0)

    @classmethod
    def from_bytes(cls, data: bytes) -> DPMegaflowStats:
        """Read the structure from exactly ``SIZE`` bytes."""
        _check_exact("datapath megaflow stats", data, cls.SIZE)
        mask_hit, masks, _, _, _ = cls._FORMAT.unpack(data)
        return cls(mask_hit=mask_hit, masks=masks)


@dataclass(frozen=True)
class VportStats:
    """Packet counters of a virtual port."""

    rx_packets: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_errors: int = 0
    tx_errors: int = 0
    rx_dropped: int = 0
    tx_dropped: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("=8Q")
    SIZE: ClassVar[int] = _FORMAT.size

    def to_bytes(self) -> bytes:
        """Return the structure in wire form."""
        return self._FORMAT.pack(
            self.rx_packets,
            self.tx_packets,
            self.rx_bytes,
            self.tx_bytes,
            self.rx_errors,
            self.tx_errors,
            self.rx_dropped,
            self.tx_dropped,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> VportStats:
        """Read the structure from exactly ``SIZE`` bytes."""
        _check_exact("vport stats", data, cls.SIZE)
        return cls(*cls._FORMAT.unpack(data))


@dataclass(frozen=True)
class FlowStats:
    """Packet and byte counters of a flow."""

    packets: int = 0
    bytes: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("=2Q")
    SIZE: ClassVar[int] = _FORMAT.size

    def to_bytes(self) -> bytes:
        """Return the structure in wire form."""
        return self._FORMAT.pack(self.packets, self.bytes)

    @classmethod
    def from_bytes(cls, data: bytes) -> FlowStats:
        """Read the structure from exactly ``SIZE`` bytes."""
        _check_exact("flow stats", data, cls.SIZE)
        packets, count = cls._FORMAT.unpack(data)
        return cls(packets=packets, bytes=count)


class _Features(IntFlag):
    UNALIGNED = DP_F_UNALIGNED
    VPORT_PIDS = DP_F_VPORT_PIDS