"""Access to the ``ovs_datapath`` generic netlink family."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntFlag
from typing import TYPE_CHECKING, Iterable, Protocol

from .ovsh import DatapathAttr, DatapathCommand, DPMegaflowStats, DPStats, Header

if TYPE_CHECKING:
    from .nlclient import Family

NLM_F_REQUEST = 0x1
NLM_F_DUMP = 0x300

_ATTR_HEADER = struct.Struct("=HH")
_ATTR_ALIGN = 4
# Flags carried in the attribute type field (nested, network byte order).
_ATTR_TYPE_MASK = 0x3FFF


@dataclass
class Message:
    """A generic netlink message: command, family version and payload."""

    command: int = 0
    version: int = 0
    data: bytes = b""


class GenericNetlinkConn(Protocol):
    """The parts of a generic netlink connection that the services use."""

    def list_families(self) -> list[Family]: ...

    def execute(self, message: Message, family_id: int, flags: int) -> list[Message]: ...

    def close(self) -> None: ...


class DatapathFeatures(IntFlag):
    """Bit flags that specify features of a datapath."""

    UNALIGNED = 1 << 0
    VPORT_PIDS = 1 << 1

    def __str__(self) -> str:
        names = ("unaligned", "vportpids")
        value = int(self)
        parts = [name for bit, name in enumerate(names) if value & (1 << bit)]
        return "|".join(parts) if parts else "0"


@dataclass
class DatapathStats:
    """Statistics about packets that have passed through a datapath."""

    hit: int = 0
    missed: int = 0
    lost: int = 0
    flows: int = 0


@dataclass
class DatapathMegaflowStats:
    """Statistics about megaflow mask usage of a datapath."""

    mask_hits: int = 0
    masks: int = 0


@dataclass
class Datapath:
    """An Open vSwitch in-kernel datapath."""

    index: int = 0
    name: str = ""
    features: DatapathFeatures = DatapathFeatures(0)
    stats: DatapathStats = field(default_factory=DatapathStats)
    megaflow_stats: DatapathMegaflowStats = field(default_factory=DatapathMegaflowStats)


def _align(length: int) -> int:
    return (length + _ATTR_ALIGN - 1) & ~(_ATTR_ALIGN - 1)


def marshal_attributes(attrs: Iterable[tuple[int, bytes]]) -> bytes:
    """Encode ``(type, data)`` pairs as netlink attributes."""
    out = bytearray()
    for attr_type, data in attrs:
        length = _ATTR_HEADER.size + len(data)
        if length > 0xFFFF:
            raise ValueError(f"netlink attribute {attr_type} is too long: {len(data)} bytes")
        out += _ATTR_HEADER.pack(length, attr_type)
        out += data
        out += bytes(_align(length) - length)
    return bytes(out)


def unmarshal_attributes(data: bytes) -> list[tuple[int, bytes]]:
    """Decode netlink attributes into ``(type, data)`` pairs."""
    attrs: list[tuple[int, bytes]] = []
    rest = bytes(data)
    while rest:
        if len(rest) < _ATTR_HEADER.size:
            raise ValueError(f"not enough data for netlink attribute: {len(rest)} bytes")
        length, attr_type = _ATTR_HEADER.unpack_from(rest)
        if length < _ATTR_HEADER.size:
            raise ValueError(f"invalid netlink attribute length: {length}")
        if length > len(rest):
            raise ValueError(
                f"netlink attribute length {length} exceeds remaining {len(rest)} bytes"
            )
        attrs.append((attr_type & _ATTR_TYPE_MASK, rest[_ATTR_HEADER.size : length]))
        rest = rest[_align(length) :]
    return attrs


def _decode_string(data: bytes) -> str:
    return data.removesuffix(b"\x00").decode()


def _decode_uint32(data: bytes) -> int:
    if len(data) != 4:
        raise ValueError(f"unexpected uint32 attribute size: {len(data)} bytes")
    (value,) = struct.unpack("=I", data)
    return value


def parse_dp_stats(data: bytes) -> DatapathStats:
    """Decode a datapath stats structure."""
    raw = DPStats.from_bytes(data)
    return DatapathStats(hit=raw.hit, missed=raw.missed, lost=raw.lost, flows=raw.flows)


def parse_dp_megaflow_stats(data: bytes) -> DatapathMegaflowStats:
    """Decode a datapath megaflow stats structure."""
    raw = DPMegaflowStats.from_bytes(data)
    return DatapathMegaflowStats(mask_hits=raw.mask_hit, masks=raw.masks)


def parse_datapaths(messages: Iterable[Message]) -> list[Datapath]:
    """Decode datapaths from ``ovs_datapath`` reply messages."""
    datapaths: list[Datapath] = []
    for message in messages:
        header = Header.from_bytes(message.data)
        datapath = Datapath(index=header.ifindex)

        for attr_type, payload in unmarshal_attributes(message.data[Header.SIZE :]):
            if attr_type == DatapathAttr.NAME:
                datapath.name = _decode_string(payload)
            elif attr_type == DatapathAttr.USER_FEATURES:
                datapath.features = DatapathFeatures(_decode_uint32(payload))
            elif attr_type == DatapathAttr.STATS:
                datapath.stats = parse_dp_stats(payload)
            elif attr_type == DatapathAttr.MEGAFLOW_STATS:
                datapath.megaflow_stats = parse_dp_megaflow_stats(payload)

        datapaths.append(datapath)
    return datapaths


class DatapathService:
    """Methods of the ``ovs_datapath`` generic netlink family."""

    def __init__(self, conn: GenericNetlinkConn, family: Family) -> None:
        self._conn = conn
        self.family = family

    def list(self) -> list[Datapath]:
        """List all datapaths in the kernel."""
        request = Message(
            command=DatapathCommand.GET,
            version=self.family.version,
            # An ifindex of zero queries every datapath.
            data=Header(ifindex=0).to_bytes(),
        )
        replies = self._conn.execute(request, self.family.id, NLM_F_REQUEST | NLM_F_DUMP)
        return parse_datapaths(replies)