"""Parsing of port statistics as printed by ``ovs-ofctl dump-ports``."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

PORT_LOCAL = 65534
"""Port number that Open vSwitch reports as ``LOCAL``."""

_LOCAL_NAME = "LOCAL"
_EXPECTED_FIELDS = 16
_RX = "rx"
_TX = "tx"

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1


class InvalidPortStatsError(ValueError):
    """Port statistics do not match the expected output format."""

    def __init__(self, message: str = "invalid port statistics") -> None:
        super().__init__(message)


def _parse_int(text: str) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(f"parsing {text!r}: invalid syntax")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"parsing {text!r}: value out of range")
    return value


def _parse_uint(text: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise ValueError(f"parsing {text!r}: invalid syntax")
    value = int(text)
    if value > _UINT64_MAX:
        raise ValueError(f"parsing {text!r}: value out of range")
    return value


@dataclass
class PortStatsReceive:
    """Counters for packets received on a port."""

    packets: int = 0
    bytes: int = 0
    dropped: int = 0
    errors: int = 0
    frame: int = 0
    over: int = 0
    crc: int = 0


@dataclass
class PortStatsTransmit:
    """Counters for packets transmitted on a port."""

    packets: int = 0
    bytes: int = 0
    dropped: int = 0
    errors: int = 0
    collisions: int = 0


@dataclass
class PortStats:
    """Statistics about one Open vSwitch port."""

    port_id: int = 0
    received: PortStatsReceive = field(default_factory=PortStatsReceive)
    transmitted: PortStatsTransmit = field(default_factory=PortStatsTransmit)


def parse_port_stats(text: str | bytes) -> PortStats:
    """Parse one port entry of ``ovs-ofctl dump-ports`` output.

    The expected form is::

        port  1: rx pkts=0, bytes=0, drop=0, errs=0, frame=0, over=0, crc=0
                 tx pkts=0, bytes=0, drop=0, errs=0, coll=0

    Raises InvalidPortStatsError for a malformed layout and ValueError for
    numbers that cannot be parsed.
    """
    if isinstance(text, bytes):
        text = text.decode()

    fields = text.split()
    if len(fields) != _EXPECTED_FIELDS:
        raise InvalidPortStatsError()
    if fields[0] != "port" or fields[2] != _RX or fields[10] != _TX:
        raise InvalidPortStatsError()

    port_name = fields[1].removesuffix(":")
    port_id = PORT_LOCAL if port_name == _LOCAL_NAME else _parse_int(port_name)

    counters: dict[str, dict[str, int]] = {_RX: {}, _TX: {}}
    prefix = _RX
    for word in fields[2:]:
        word = word.removesuffix(",")
        if word in (_RX, _TX):
            prefix = word
            continue

        pair = word.split("=")
        if len(pair) != 2:
            raise InvalidPortStatsError()
        name, raw = pair

        # Tunnel interfaces report some counters as '?'.
        counters[prefix][name] = 0 if raw == "?" else _parse_uint(raw)

    rx = counters[_RX]
    tx = counters[_TX]
    return PortStats(
        port_id=port_id,
        received=PortStatsReceive(
            packets=rx.get("pkts", 0),
            bytes=rx.get("bytes", 0),
            dropped=rx.get("drop", 0),
            errors=rx.get("errs", 0),
            frame=rx.get("frame", 0),
            over=rx.get("over", 0),
            crc=rx.get("crc", 0),
        ),
        transmitted=PortStatsTransmit(
            packets=tx.get("pkts", 0),
            bytes=tx.get("bytes", 0),
            dropped=tx.get("drop", 0),
            errors=tx.get("errs", 0),
            collisions=tx.get("coll", 0),
        ),
    )