"""Wrappers around ``ovs-vsctl`` subcommands."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, Union

DEFAULT_INGRESS_RATE_POLICING = -1
"""Disables ingress policing, which is the default behaviour."""

DEFAULT_INGRESS_BURST_POLICING = -1
"""Resets the ingress policing burst to its default size of 1000 kb."""

Executor = Callable[..., Union[bytes, str, None]]
"""Called as ``execute(command, *args)``; returns the command's output."""

_COMMAND = "ovs-vsctl"


def _text(value: object) -> str:
    return str(getattr(value, "value", value))


@dataclass
class BridgeOptions:
    """Configuration of a bridge."""

    protocols: list[str] = field(default_factory=list)

    def args(self) -> list[str]:
        """Return the non-empty options in ``ovs-vsctl`` form."""
        out: list[str] = []
        if self.protocols:
            out.append("protocols=" + ",".join(_text(p) for p in self.protocols))
        return out


@dataclass
class InterfaceOptions:
    """Configuration of an interface."""

    type: str = ""
    peer: str = ""
    mtu_request: int = 0
    ingress_rate_policing: int = 0
    ingress_burst_policing: int = 0
    remote_ip: str = ""
    key: str = ""

    def args(self) -> list[str]:
        """Return the non-empty options in ``ovs-vsctl`` form."""
        out: list[str] = []
        if self.type:
            out.append(f"type={_text(self.type)}")
        if self.peer:
            out.append(f"options:peer={self.peer}")
        if self.mtu_request > 0:
            out.append(f"mtu_request={self.mtu_request}")

        if self.ingress_rate_policing == DEFAULT_INGRESS_RATE_POLICING:
            out.append("ingress_policing_rate=0")
        elif self.ingress_rate_policing > 0:
            out.append(f"ingress_policing_rate={self.ingress_rate_policing}")

        if self.ingress_burst_policing == DEFAULT_INGRESS_BURST_POLICING:
            out.append("ingress_policing_burst=0")
        elif self.ingress_burst_policing > 0:
            out.append(f"ingress_policing_burst={self.ingress_burst_policing}")

        if self.remote_ip:
            out.append(f"options:remote_ip={self.remote_ip}")
        if self.key:
            out.append(f"options:key={self.key}")
        return out


class VSwitchService:
    """Runs ``ovs-vsctl`` commands through an executor callable.

    Output returned by the executor has surrounding whitespace removed;
    exceptions raised by it propagate unchanged.
    """

    def __init__(self, execute: Executor) -> None:
        self._execute = execute
        self.get = VSwitchGetService(self)
        self.set = VSwitchSetService(self)

    def _exec(self, *args: str) -> str:
        output = self._execute(_COMMAND, *args)
        if output is None:
            return ""
        if isinstance(output, bytes):
            output = output.decode()
        return output.strip()

    def add_bridge(self, bridge: str) -> None:
        """Attach a bridge; it may already exist."""
        self._exec("--may-exist", "add-br", bridge)

    def add_port(self, bridge: str, port: str) -> None:
        """Attach a port to a bridge; it may already exist."""
        self._exec("--may-exist", "add-port", bridge, port)

    def delete_bridge(self, bridge: str) -> None:
        """Detach a bridge; it need not exist."""
        self._exec("--if-exists", "del-br", bridge)

    def delete_port(self, bridge: str, port: str) -> None:
        """Detach a port from a bridge; it need not exist."""
        self._exec("--if-exists", "del-port", bridge, port)

    def list_ports(self, bridge: str) -> list[str]:
        """List the ports attached to a bridge."""
        output = self._exec("list-ports", bridge)
        return output.split("\n") if output else []

    def list_bridges(self) -> list[str]:
        """List all bridges."""
        output = self._exec("list-br")
        return output.split("\n") if output else []

    def port_to_bridge(self, port: str) -> str:
        """Return the name of the bridge a port is attached to."""
        return self._exec("port-to-br", port)

    def get_fail_mode(self, bridge: str) -> str:
        """Return the fail mode of a bridge."""
        return self._exec("get-fail-mode", bridge)

    def set_fail_mode(self, bridge: str, mode: str) -> None:
        """Set the fail mode of a bridge."""
        self._exec("set-fail-mode", bridge, _text(mode))

    def set_controller(self, bridge: str, address: str) -> None:
        """Set the controller address of a bridge."""
        self._exec("set-controller", bridge, address)

    def get_controller(self, bridge: str) -> str:
        """Return the controller address of a bridge."""
        return self._exec("get-controller", bridge)


class VSwitchGetService:
    """Runs ``ovs-vsctl get`` subcommands."""

    def __init__(self, vswitch: VSwitchService) -> None:
        self._vswitch = vswitch

    def bridge(self, bridge: str) -> BridgeOptions:
        """Read the configuration of a bridge (protocols only)."""
        output = self._vswitch._exec(
            "--format=json", "get", "bridge", bridge, "protocols"
        )
        protocols = json.loads(output)
        if protocols is None:
            protocols = []
        if not isinstance(protocols, list) or not all(
            isinstance(p, str) for p in protocols
        ):
            raise ValueError(f"unexpected bridge protocols value: {output!r}")
        return BridgeOptions(protocols=protocols)


class VSwitchSetService:
    """Runs ``ovs-vsctl set`` subcommands."""

    def __init__(self, vswitch: VSwitchService) -> None:
        self._vswitch = vswitch

    def bridge(self, bridge: str, options: BridgeOptions) -> None:
        """Apply configuration to a bridge."""
        self._vswitch._exec("set", "bridge", bridge, *options.args())

    def interface(self, ifi: str, options: InterfaceOptions) -> None:
        """Apply configuration to an interface."""
        self._vswitch._exec("set", "interface", ifi, *options.args())