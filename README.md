# ovskit

Tools for working with Open vSwitch from Python, using nothing beyond the
standard library.

The package has three parts:

- `ovskit.ovs` parses the text printed by `ovs-ofctl dump-ports` and
  `ovs-ofctl dump-tables`, and wraps `ovs-vsctl` subcommands behind an
  executor callable that you supply.
- `ovskit.ovsdb` is a client for an OVSDB server (RFC 7047) speaking
  JSON-RPC over a stream socket. It answers the server's echo requests, can
  send its own echoes at a fixed interval, and supports `list_dbs`, `echo`
  and `transact` with `select` operations.
- `ovskit.ovsnl` decodes the Linux Open vSwitch generic netlink datapath
  family: datapath names, feature flags, hit/miss statistics and megaflow
  statistics.

## Installing

```
pip install ovskit
```

To run the test suite:

```
pip install "ovskit[test]"
pytest
```

## Parsing ovs-ofctl output

```python
from ovskit.ovs.portstats import parse_port_stats, PORT_LOCAL
from ovskit.ovs.table import parse_table

stats = parse_port_stats(
    "port  1: rx pkts=10, bytes=20, drop=0, errs=0, frame=0, over=0, crc=0\n"
    "         tx pkts=5, bytes=7, drop=0, errs=0, coll=0"
)
print(stats.port_id, stats.received.packets, stats.transmitted.bytes)

table = parse_table(
    "0: classifier: wild=0x3fffff, max=1000000, active=1\n"
    "               lookup=2, matched=3"
)
print(table.name, table.active, table.matched)
```

Both functions accept `str` or `bytes`. A port shown as `LOCAL` gets the id
`PORT_LOCAL` (65534). Counters reported as `?` (as tunnel ports do) come back
as `0`. Text that does not have the expected shape raises
`InvalidPortStatsError` or `InvalidTableError`; numbers that cannot be parsed
raise `ValueError` (both error classes are subclasses of it).

## Wrapping ovs-vsctl

`BridgeOptions` and `InterfaceOptions` turn settings into the `key=value`
arguments that `ovs-vsctl set` expects; only the fields that are set are
emitted.

```python
from ovskit.ovs.vswitch import (
    DEFAULT_INGRESS_RATE_POLICING,
    BridgeOptions,
    InterfaceOptions,
)

BridgeOptions(protocols=["OpenFlow13", "OpenFlow14"]).args()
# ['protocols=OpenFlow13,OpenFlow14']

InterfaceOptions(type="stt", remote_ip="flow", key="flow").args()
# ['type=stt', 'options:remote_ip=flow', 'options:key=flow']

InterfaceOptions(ingress_rate_policing=DEFAULT_INGRESS_RATE_POLICING).args()
# ['ingress_policing_rate=0']
```

`VSwitchService` is built from an executor: a callable invoked as
`execute("ovs-vsctl", *args)` that returns the command's output as `bytes`,
`str` or `None`. Output has surrounding whitespace stripped, and any
exception the executor raises propagates unchanged.

```python
from ovskit.ovs.vswitch import VSwitchService, InterfaceOptions

def execute(command, *args):
    print(command, *args)
    return "br0\nbr1\n" if args == ("list-br",) else ""

vswitch = VSwitchService(execute)
vswitch.add_bridge("br0")           # ovs-vsctl --may-exist add-br br0
print(vswitch.list_bridges())       # ['br0', 'br1']
vswitch.set.interface("tap0", InterfaceOptions(mtu_request=9000))
```

The service offers `add_bridge`, `add_port`, `delete_bridge`, `delete_port`,
`list_ports`, `list_bridges`, `port_to_bridge`, `get_fail_mode`,
`set_fail_mode`, `set_controller` and `get_controller`, plus `get.bridge`
(reads a bridge's protocols through `--format=json`) and `set.bridge` /
`set.interface`.

## Talking to an OVSDB server

```python
from ovskit.ovsdb.client import dial
from ovskit.ovsdb.transact import Select, equal

with dial("unix", "/var/run/openvswitch/db.sock") as client:
    print(client.list_databases(timeout=2.0))
    client.echo(timeout=2.0)

    rows = client.transact(
        "Open_vSwitch",
        [Select(table="Bridge", where=[equal("name", "ovsbr0")])],
        timeout=2.0,
    )
    for row in rows:
        print(row)

    print(client.stats())
```

`dial` accepts the networks `unix` (a socket path) and `tcp`, `tcp4` or
`tcp6` (`host:port`), and optionally a `logger` that receives all traffic at
debug level and an `echo_interval` in seconds. A `Client` can also be built
directly around any connected stream socket.

Errors sent back by the server are raised as `OvsdbError`, with its `error`,
`details` and `syntax` fields. A top-level JSON-RPC error is raised as
`JsonRpcError`. A request that runs past its timeout raises `TimeoutError`
and leaves no pending callback behind; requests on a closed connection raise
`ConnectionError`. `stats()` returns a `ClientStats` with the number of
pending callbacks and the successful and failed background echoes.

The lower layers are usable on their own: `ovskit.ovsdb.jsonrpc.Conn` sends
`Request` objects and receives `Response` objects, `ovskit.ovsdb.result.parse_result`
decodes a result and raises `OvsdbError`, and
`ovskit.ovsdb.transact.transact_params` builds `transact` parameters.

## Decoding datapath messages

`ovskit.ovsnl.datapath` turns generic netlink messages from the
`ovs_datapath` family into `Datapath` records. `parse_datapaths`,
`parse_dp_stats`, `parse_dp_megaflow_stats`, `marshal_attributes` and
`unmarshal_attributes` work on raw bytes. The fixed-layout kernel structures
(`Header`, `DPStats`, `DPMegaflowStats`, `VportStats`, `FlowStats`) and the
family constants live in `ovskit.ovsnl.ovsh`. `DatapathFeatures` prints as
`unaligned|vportpids`, or `0` when no flag is set.

`ovskit.ovsnl.nlclient.Client` takes a connection object that provides
`list_families()`, `execute(message, family_id, flags)` and `close()`. It
sets up `client.datapath` (a `DatapathService` whose `list()` queries every
datapath) when the `ovs_datapath` family is present, and raises
`FileNotFoundError` when no known Open vSwitch family is found.

## What the package does not do

- It does not run `ovs-vsctl` or any other program: `VSwitchService` only
  builds argument lists and hands them to your executor.
- It has no generic netlink socket of its own. To query a live kernel you
  supply the connection object that `nlclient.Client` uses.
- The OVSDB client supports only `select` operations in `transact`, and does
  not act on server notifications other than `echo`.