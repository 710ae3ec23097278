"""A client for the Linux Open vSwitch generic netlink interface."""

from __future__ import annotations

import errno
from dataclasses import dataclass

from .datapath import DatapathService, GenericNetlinkConn
from .ovsh import DATAPATH_FAMILY

_OVS_PREFIX = "ovs_"


@dataclass(frozen=True)
class Family:
    """A generic netlink family."""

    id: int = 0
    version: int = 0
    name: str = ""


class Client:
    """An Open vSwitch generic netlink client over an open connection.

    The connection is closed if the client cannot be set up.  When no known
    OVS families are available, FileNotFoundError is raised.
    """

    def __init__(self, conn: GenericNetlinkConn) -> None:
        self._conn = conn
        self.datapath: DatapathService | None = None
        try:
            families = conn.list_families()
            self._init(families)
        except BaseException:
            conn.close()
            raise

    def _init(self, families: list[Family]) -> None:
        known = 0
        for family in families:
            if not family.name.startswith(_OVS_PREFIX):
                continue
            if self._init_family(family):
                known += 1
        if known == 0:
            raise FileNotFoundError(
                errno.ENOENT, "no Open vSwitch generic netlink families found"
            )

    def _init_family(self, family: Family) -> bool:
        if family.name == DATAPATH_FAMILY:
            self.datapath = DatapathService(self._conn, family)
            return True
        return False

    def close(self) -> None:
        """Close the generic netlink connection."""
        self._conn.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()