[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ovskit"
version = "0.1.0"
description = "Open vSwitch tooling: parsers for ovs-ofctl output, ovs-vsctl argument builders, an OVSDB JSON-RPC client and generic netlink datapath decoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["openvswitch", "ovs", "ovsdb", "json-rpc", "netlink", "sdn", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ovskit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
