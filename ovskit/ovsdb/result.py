"""Decoding of OVSDB RPC results and server errors."""

from __future__ import annotations

import json
from typing import Any

_ERROR_PREFIX = '{"error":'


class OvsdbError(Exception):
    """An error returned by an OVSDB server."""

    def __init__(self, error: str = "", details: str = "", syntax: str = "") -> None:
        super().__init__(error, details, syntax)
        self.error = error
        self.details = details
        self.syntax = syntax

    def __str__(self) -> str:
        return f"{self.error}: {self.details}: {self.syntax}"


def _field(obj: dict[str, Any], name: str) -> str:
    value = obj.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"OVSDB error field {name!r} must be a string, got {value!r}")
    return value


def _to_error(obj: dict[str, Any]) -> OvsdbError:
    return OvsdbError(
        error=_field(obj, "error"),
        details=_field(obj, "details"),
        syntax=_field(obj, "syntax"),
    )


def parse_result(raw: Any) -> Any:
    """Decode an RPC result and raise OvsdbError if it carries a server error.

    ``raw`` is either JSON text (str or bytes) or an already decoded value.
    JSON text counts as an error when it starts with ``{"error":``; a decoded
    object counts as one when its first key is ``error``.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode()
    if isinstance(raw, str):
        value = json.loads(raw)
        if raw.startswith(_ERROR_PREFIX) and isinstance(value, dict):
            raise _to_error(value)
        return value

    if isinstance(raw, dict) and next(iter(raw), None) == "error":
        raise _to_error(raw)
    return raw