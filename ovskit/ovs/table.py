"""Parsing of OpenFlow tables as printed by ``ovs-ofctl dump-tables``."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1


class InvalidTableError(ValueError):
    """Table text does not match the expected output format."""

    def __init__(self, message: str = "invalid openflow table") -> None:
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
class Table:
    """An Open vSwitch flow table."""

    id: int = 0
    name: str = ""
    wild: str = ""
    max: int = 0
    active: int = 0
    lookup: int = 0
    matched: int = 0


def parse_table(text: str | bytes) -> Table:
    """Parse one table entry of ``ovs-ofctl dump-tables`` output.

    The expected form is::

        0: classifier: wild=0x3fffff, max=1000000, active=0
                       lookup=0, matched=0

    Raises InvalidTableError for a malformed layout and ValueError for
    numbers that cannot be parsed.
    """
    if isinstance(text, bytes):
        text = text.decode()

    fields = text.split()
    if len(fields) not in (7, 8):
        raise InvalidTableError()

    table_id = _parse_int(fields[0].removesuffix(":"))

    # Tables other than "classifier" print their name without a trailing
    # colon, followed by a lone ":" field.
    start = 2 if fields[1].endswith(":") else 3
    name = fields[1].removesuffix(":")

    wild = ""
    numbers: list[int] = []
    for position, token in enumerate(fields[start:]):
        pair = token.removesuffix(",").split("=")
        if len(pair) != 2:
            raise InvalidTableError()
        if position == 0:
            wild = pair[1]
            continue
        numbers.append(_parse_uint(pair[1]))

    if len(numbers) < 4:
        raise InvalidTableError()

    max_entries, active, lookup, matched = numbers[:4]
    return Table(
        id=table_id,
        name=name,
        wild=wild,
        max=max_entries,
        active=active,
        lookup=lookup,
        matched=matched,
    )