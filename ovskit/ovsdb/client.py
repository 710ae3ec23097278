"""An OVSDB client, as described in RFC 7047."""

from __future__ import annotations

import itertools
import logging
import queue
import socket
import threading
from dataclasses import dataclass
from typing import Any, Iterable

from .jsonrpc import Conn, JsonRpcError, Request, Transport
from .result import parse_result
from .transact import TransactOp, transact_params

Row = dict[str, Any]
"""A database row: column names mapped to column values."""

_ECHO_PAYLOAD = "ovskit.ovsdb"
_STOP = object()


@dataclass(frozen=True)
class ClientStats:
    """Statistics about a Client.

    ``callbacks`` is the number of RPCs currently waiting for a response;
    ``echo_success`` and ``echo_failure`` count the background echo RPCs.
    """

    callbacks: int = 0
    echo_success: int = 0
    echo_failure: int = 0


class Client:
    """An OVSDB client over an established stream connection.

    Responses are read by a background thread.  The client answers echo
    requests from the server by sending echo RPCs of its own, and when
    ``echo_interval`` (seconds) is set it also sends them at that interval.

    RPC methods accept a ``timeout`` in seconds; ``None`` waits for as long
    as the connection stays open.  A timeout raises TimeoutError, and RPCs
    on a closed connection raise ConnectionError.
    """

    def __init__(
        self,
        sock: Transport,
        *,
        logger: logging.Logger | None = None,
        echo_interval: float | None = None,
    ) -> None:
        self._sock = sock
        self._conn = Conn(sock, logger)
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

        self._cb_lock = threading.Lock()
        self._callbacks: dict[str, queue.Queue[tuple[Any, BaseException | None]]] = {}
        self._closed = False

        self._stats_lock = threading.Lock()
        self._echo_ok = 0
        self._echo_fail = 0

        self._echo_interval = echo_interval or None
        self._echo_requests: queue.Queue[object] = queue.Queue()
        self._stopping = threading.Event()

        self._threads = [
            threading.Thread(target=self._listen, name="ovsdb-listen", daemon=True),
            threading.Thread(target=self._echo_loop, name="ovsdb-echo", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection and stop the background threads."""
        self._stopping.set()
        shutdown = getattr(self._sock, "shutdown", None)
        if shutdown is not None:
            try:
                shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

        error: OSError | None = None
        try:
            self._conn.close()
        except OSError as exc:
            error = exc

        self._echo_requests.put(_STOP)
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()
        if error is not None:
            raise error

    def stats(self) -> ClientStats:
        """Return the current statistics."""
        with self._cb_lock:
            callbacks = len(self._callbacks)
        with self._stats_lock:
            return ClientStats(
                callbacks=callbacks,
                echo_success=self._echo_ok,
                echo_failure=self._echo_fail,
            )

    def list_databases(self, timeout: float | None = None) -> list[str]:
        """Return the names of all databases known to the server."""
        result = self._rpc("list_dbs", None, timeout)
        if result is None:
            return []
        if not isinstance(result, list) or not all(isinstance(d, str) for d in result):
            raise ValueError(f"unexpected list_dbs result: {result!r}")
        return result

    def echo(self, timeout: float | None = None) -> None:
        """Check that the connection is alive."""
        result = self._rpc("echo", [_ECHO_PAYLOAD], timeout)
        got = result[0] if isinstance(result, list) and result else ""
        if got != _ECHO_PAYLOAD:
            raise ValueError(f"invalid echo response: {got!r}")

    def transact(
        self,
        database: str,
        ops: Iterable[TransactOp],
        timeout: float | None = None,
    ) -> list[Row]:
        """Run operations in one transaction and return all selected rows."""
        result = self._rpc("transact", transact_params(database, ops), timeout)
        if result is None:
            return []
        if not isinstance(result, list):
            raise ValueError(f"unexpected transact result: {result!r}")

        rows: list[Row] = []
        for outcome in result:
            if not isinstance(outcome, dict):
                raise ValueError(f"unexpected transact outcome: {outcome!r}")
            found = outcome.get("rows") or []
            if not isinstance(found, list) or not all(isinstance(r, dict) for r in found):
                raise ValueError(f"unexpected transact rows: {found!r}")
            rows.extend(found)
        return rows

    def _next_id(self) -> str:
        with self._id_lock:
            return str(next(self._ids))

    def _rpc(self, method: str, params: Any, timeout: float | None) -> Any:
        if timeout is not None and timeout <= 0:
            raise TimeoutError(f"OVSDB {method} RPC timed out")

        request_id = self._next_id()
        slot: queue.Queue[tuple[Any, BaseException | None]] = queue.Queue(maxsize=1)
        with self._cb_lock:
            if self._closed:
                raise ConnectionError("OVSDB connection is closed")
            if request_id in self._callbacks:
                raise RuntimeError(f"OVSDB callback with ID {request_id!r} already registered")
            self._callbacks[request_id] = slot

        try:
            self._conn.send(Request(id=request_id, method=method, params=params))
            try:
                result, error = slot.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(f"OVSDB {method} RPC timed out") from None
        finally:
            with self._cb_lock:
                self._callbacks.pop(request_id, None)

        if error is not None:
            raise error
        return parse_result(result)

    def _deliver(self, request_id: str, result: Any, error: BaseException | None) -> None:
        with self._cb_lock:
            slot = self._callbacks.pop(request_id, None)
        if slot is not None:
            slot.put_nowait((result, error))

    def _listen(self) -> None:
        try:
            while True:
                try:
                    response = self._conn.receive()
                except (EOFError, OSError):
                    return
                except JsonRpcError as exc:
                    if self._stopping.is_set() or "unexpected EOF" in str(exc):
                        return
                    continue

                if response.method == "echo":
                    # The echo worker sends the reply so that this thread
                    # stays free to receive its response.
                    self._echo_requests.put(None)
                    continue

                if response.id is None:
                    continue

                try:
                    response.check()
                except JsonRpcError as exc:
                    self._deliver(response.id, None, exc)
                    continue
                self._deliver(response.id, response.result, None)
        finally:
            with self._cb_lock:
                self._closed = True
                pending = list(self._callbacks.values())
                self._callbacks.clear()
            for slot in pending:
                slot.put_nowait((None, ConnectionError("OVSDB connection closed")))

    def _echo_loop(self) -> None:
        while True:
            try:
                trigger = self._echo_requests.get(timeout=self._echo_interval)
            except queue.Empty:
                trigger = None
            if trigger is _STOP or self._stopping.is_set():
                return

            try:
                self.echo()
            except (OSError, EOFError):
                # The connection is gone; close() will stop this loop.
                continue
            except Exception:
                with self._stats_lock:
                    self._echo_fail += 1
                continue
            with self._stats_lock:
                self._echo_ok += 1


def dial(
    network: str,
    address: str,
    logger: logging.Logger | None = None,
    echo_interval: float | None = None,
) -> Client:
    """Connect to an OVSDB server and return a Client.

    ``network`` is ``unix`` (``address`` is a socket path) or ``tcp``,
    ``tcp4`` or ``tcp6`` (``address`` is ``host:port``).
    """
    if network == "unix":
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(address)
        except OSError:
            sock.close()
            raise
    elif network in ("tcp", "tcp4", "tcp6"):
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
        host = host.strip("[]") or "localhost"
        sock = socket.create_connection((host, int(port)))
    else:
        raise ValueError(f"unsupported network {network!r}")

    try:
        return Client(sock, logger=logger, echo_interval=echo_interval)
    except BaseException:
        sock.close()
        raise