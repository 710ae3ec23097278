"""Parsers for ovs-ofctl output and executor-based wrappers for ovs-vsctl subcommands."""