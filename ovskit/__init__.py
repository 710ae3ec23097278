"""Open vSwitch tooling: ovs-ofctl parsers, ovs-vsctl wrappers, an OVSDB client and netlink datapath decoding."""

__version__ = "0.1.0"