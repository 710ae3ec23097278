"""A minimal JSON-RPC 1.0 connection over a stream socket."""

from __future__ import annotations

import codecs
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

_CHUNK_SIZE = 4096
_JSON_WHITESPACE = " \t\r\n"


class JsonRpcError(Exception):
    """A JSON-RPC request could not be sent, or a response could not be read."""


class Transport(Protocol):
    """The parts of a stream socket that a Conn uses."""

    def recv(self, bufsize: int) -> bytes: ...

    def sendall(self, data: bytes) -> Any: ...

    def close(self) -> None: ...


@dataclass
class Request:
    """A JSON-RPC request."""

    id: str = ""
    method: str = ""
    params: Any = None

    def _payload(self) -> dict[str, Any]:
        # ovsdb-server only replies when params is an array.
        params = [] if self.params is None else self.params
        return {"id": self.id, "method": self.method, "params": params}


@dataclass
class Response:
    """A JSON-RPC response, or a request notification when ``id`` is None."""

    id: str | None = None
    result: Any = None
    error: Any = None
    method: str = ""
    params: Any = None

    def check(self) -> None:
        """Raise JsonRpcError if the response carries an error."""
        if self.error is not None:
            raise JsonRpcError(f"received JSON-RPC error: {self.error!r}")

    @classmethod
    def _from_json(cls, obj: Any) -> Response:
        if not isinstance(obj, dict):
            raise JsonRpcError(
                f"failed to decode JSON-RPC response: expected an object, "
                f"got {type(obj).__name__}"
            )
        response_id = obj.get("id")
        if response_id is not None and not isinstance(response_id, str):
            raise JsonRpcError(
                f"failed to decode JSON-RPC response: id must be a string, "
                f"got {response_id!r}"
            )
        method = obj.get("method") or ""
        if not isinstance(method, str):
            raise JsonRpcError(
                f"failed to decode JSON-RPC response: method must be a string, "
                f"got {method!r}"
            )
        return cls(
            id=response_id,
            result=obj.get("result"),
            error=obj.get("error"),
            method=method,
            params=obj.get("params"),
        )


class _Splitter:
    """Cuts a character stream into complete top-level JSON values."""

    def __init__(self) -> None:
        self._buffer = ""
        self._pos = 0
        self._depth = 0
        self._in_string = False
        self._escape = False

    def feed(self, text: str) -> None:
        self._buffer += text

    def pending(self) -> bool:
        return bool(self._buffer.strip(_JSON_WHITESPACE))

    def next_value(self) -> str | None:
        if self._pos == 0:
            self._buffer = self._buffer.lstrip(_JSON_WHITESPACE)
            if not self._buffer:
                return None
            if self._buffer[0] not in "{[":
                bad = self._buffer[0]
                self._buffer = ""
                raise JsonRpcError(
                    f"failed to decode JSON-RPC response: unexpected character {bad!r}"
                )

        buffer = self._buffer
        while self._pos < len(buffer):
            ch = buffer[self._pos]
            self._pos += 1
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch in "{[":
                self._depth += 1
            elif ch in "}]":
                self._depth -= 1
                if self._depth == 0:
                    value = buffer[: self._pos]
                    self._buffer = buffer[self._pos :]
                    self._pos = 0
                    return value
        return None


class Conn:
    """A JSON-RPC connection.

    Sending and receiving may happen from different threads at once.  When
    a logger is given, all traffic is logged at debug level.  Transport
    failures raise OSError; a clean end of stream raises EOFError.
    """

    def __init__(self, sock: Transport, logger: logging.Logger | None = None) -> None:
        self._sock = sock
        self._logger = logger
        self._send_lock = threading.Lock()
        self._recv_lock = threading.Lock()
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._splitter = _Splitter()

    def send(self, request: Request) -> None:
        """Send a single request."""
        if not request.id:
            raise JsonRpcError("JSON-RPC request ID must not be empty")
        try:
            text = json.dumps(request._payload(), separators=(",", ":")) + "\n"
        except (TypeError, ValueError) as exc:
            raise JsonRpcError(f"failed to encode JSON-RPC request: {exc}") from exc

        data = text.encode()
        with self._send_lock:
            self._sock.sendall(data)
        if self._logger is not None:
            self._logger.debug("write: %s", text)

    def receive(self) -> Response:
        """Receive a single response or notification."""
        with self._recv_lock:
            while True:
                raw = self._splitter.next_value()
                if raw is not None:
                    break
                chunk = self._sock.recv(_CHUNK_SIZE)
                if not chunk:
                    if self._splitter.pending():
                        raise JsonRpcError(
                            "failed to decode JSON-RPC response: unexpected EOF"
                        )
                    raise EOFError("end of JSON-RPC stream")
                if self._logger is not None:
                    self._logger.debug(" read: %s", chunk.decode(errors="replace"))
                try:
                    self._splitter.feed(self._decoder.decode(chunk))
                except UnicodeDecodeError as exc:
                    raise JsonRpcError(
                        f"failed to decode JSON-RPC response: {exc}"
                    ) from exc

        try:
            obj = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise JsonRpcError(f"failed to decode JSON-RPC response: {exc}") from exc
        return Response._from_json(obj)

    def close(self) -> None:
        """Close the underlying connection."""
        error: OSError | None = None
        try:
            self._sock.close()
        except OSError as exc:
            error = exc
        if self._logger is not None:
            self._logger.debug("close: %s", error)
        if error is not None:
            raise error