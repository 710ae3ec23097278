"""Structures and decoding for the Linux Open vSwitch generic netlink datapath family."""