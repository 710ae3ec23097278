import json
import logging
import socket
import threading
import time

import pytest

from ovskit.ovsdb.client import Client, ClientStats, dial
from ovskit.ovsdb.jsonrpc import Conn, JsonRpcError
from ovskit.ovsdb.result import OvsdbError
from ovskit.ovsdb.transact import Select, equal


class _Server:
    """Answers client requests over a socket pair using a handler."""

    def __init__(self, handler):
        self.client_sock, self.server_sock = socket.socketpair()
        self.requests = []
        self._handler = handler
        self._conn = Conn(self.server_sock)
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while True:
            try:
                request = self._conn.receive()
            except (EOFError, OSError, JsonRpcError):
                return
            self.requests.append(request)
            reply = self._handler(request)
            if reply is not None:
                self.push(reply)

    def push(self, message):
        data = (json.dumps(message) + "\n").encode()
        with self._lock:
            try:
                self.server_sock.sendall(data)
            except OSError:
                pass

    def close(self):
        try:
            self.server_sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.server_sock.close()
        self._thread.join(timeout=5)


@pytest.fixture
def make_client():
    created = []

    def factory(handler, **kwargs):
        server = _Server(handler)
        client = Client(server.client_sock, **kwargs)
        created.append((client, server))
        return client, server

    yield factory
    for client, server in created:
        client.close()
        server.close()


def _reply(result, request_id="1", error=None):
    return {"id": request_id, "result": result, "error": error}


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_jsonrpc_error(make_client):
    client, _ = make_client(lambda req: _reply(None, error="some error"))
    with pytest.raises(JsonRpcError):
        client.list_databases()


def test_ovsdb_error(make_client):
    error = {"error": "some error", "details": "malformed", "syntax": "{}"}
    client, _ = make_client(lambda req: _reply(error))
    with pytest.raises(OvsdbError) as info:
        client.list_databases()
    assert info.value.error == "some error"
    assert info.value.details == "malformed"


def test_unknown_callback_is_ignored(make_client):
    client, server = make_client(lambda req: _reply(["foo"]))
    server.push({"id": "foo", "method": "crash"})
    assert client.list_databases(timeout=5) == ["foo"]


def test_timeout_before_rpc(make_client):
    client, server = make_client(lambda req: _reply(["foo"]))
    with pytest.raises(TimeoutError):
        client.list_databases(timeout=0)
    assert server.requests == []
    assert client.stats().callbacks == 0


def test_timeout_during_rpc(make_client):
    release = threading.Event()

    def handler(req):
        release.wait(2)
        return _reply(["foo"])

    client, _ = make_client(handler)
    try:
        with pytest.raises(TimeoutError):
            client.list_databases(timeout=0.1)
        assert client.stats().callbacks == 0
    finally:
        release.set()


def test_no_leaked_callbacks(make_client):
    client, _ = make_client(lambda req: _reply(["foo"], request_id="foo"))
    assert client.stats() == ClientStats()
    for _ in range(5):
        with pytest.raises(TimeoutError):
            client.list_databases(timeout=0.05)
    assert client.stats() == ClientStats()


def test_echo_loop(make_client):
    def handler(req):
        return _reply(req.params, request_id=req.id)

    client, server = make_client(handler, echo_interval=0.05)
    assert _wait_for(lambda: client.stats().echo_success > 5)
    assert client.stats().echo_failure == 0
    assert all(req.method == "echo" for req in server.requests)


def test_echo_notification(make_client):
    def handler(req):
        return _reply(req.params, request_id=req.id)

    client, server = make_client(handler)
    server.push({"id": "echo", "method": "echo", "params": []})
    assert _wait_for(lambda: client.stats().echo_success > 0)
    assert client.stats().echo_failure == 0
    assert server.requests[0].method == "echo"


def test_list_databases(make_client):
    want = ["Open_vSwitch", "test"]
    client, server = make_client(lambda req: _reply(want, request_id=req.id))
    assert client.list_databases(timeout=5) == want
    assert server.requests[0].method == "list_dbs"
    assert server.requests[0].params == []


def test_echo_error(make_client):
    client, _ = make_client(lambda req: _reply(["foo"]))
    with pytest.raises(ValueError):
        client.echo(timeout=5)


def test_echo_ok(make_client):
    client, server = make_client(lambda req: _reply(req.params, request_id=req.id))
    assert client.echo(timeout=5) is None
    request = server.requests[0]
    assert request.method == "echo"
    assert isinstance(request.params, list) and len(request.params) == 1


def test_transact_select(make_client):
    db = "Open_vSwitch"
    client, server = make_client(
        lambda req: _reply([{"rows": [{"name": "ovsbr0"}]}], request_id=req.id)
    )
    ops = [Select(table="Bridge", where=[equal("name", "ovsbr0")])]
    rows = client.transact(db, ops, timeout=5)
    assert rows == [{"name": "ovsbr0"}]

    request = server.requests[0]
    assert request.method == "transact"
    assert request.params == [
        db,
        {"op": "select", "table": "Bridge", "where": [["name", "==", "ovsbr0"]]},
    ]


def test_transact_flattens_results(make_client):
    result = [{"rows": [{"a": 1}]}, {}, {"rows": [{"b": 2}, {"c": 3}]}]
    client, _ = make_client(lambda req: _reply(result, request_id=req.id))
    rows = client.transact("db", [Select(table="T"), Select(table="U")], timeout=5)
    assert rows == [{"a": 1}, {"b": 2}, {"c": 3}]


def test_rpc_after_close_raises(make_client):
    client, _ = make_client(lambda req: _reply(["foo"], request_id=req.id))
    client.close()
    with pytest.raises(ConnectionError):
        client.list_databases(timeout=1)
    assert client.stats().callbacks == 0


def test_context_manager_closes(make_client):
    client, _ = make_client(lambda req: _reply(["db"], request_id=req.id))
    with client as entered:
        assert entered.list_databases(timeout=5) == ["db"]
    with pytest.raises(ConnectionError):
        client.list_databases(timeout=1)


def test_pending_rpc_fails_when_server_closes(make_client):
    client, server = make_client(lambda req: None)
    timer = threading.Timer(0.1, server.close)
    timer.start()
    try:
        with pytest.raises(ConnectionError):
            client.list_databases()
    finally:
        timer.join()
    assert client.stats().callbacks == 0


def test_debug_logging(make_client, caplog):
    logger = logging.getLogger("ovskit-test-client")
    client, _ = make_client(
        lambda req: _reply(["db"], request_id=req.id), logger=logger
    )
    with caplog.at_level(logging.DEBUG, logger="ovskit-test-client"):
        assert client.list_databases(timeout=5) == ["db"]
    assert any("list_dbs" in record.getMessage() for record in caplog.records)


def test_dial_unsupported_network():
    with pytest.raises(ValueError):
        dial("udp", "127.0.0.1:6640")


def test_dial_missing_port():
    with pytest.raises(ValueError):
        dial("tcp", "localhost")


def test_dial_tcp():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]

    def serve():
        conn_sock, _ = listener.accept()
        conn = Conn(conn_sock)
        try:
            while True:
                request = conn.receive()
                reply = _reply(["Open_vSwitch", "_Server"], request_id=request.id)
                conn_sock.sendall((json.dumps(reply) + "\n").encode())
        except (EOFError, OSError, JsonRpcError):
            pass
        finally:
            conn_sock.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        with dial("tcp", f"127.0.0.1:{port}") as client:
            assert client.list_databases(timeout=5) == ["Open_vSwitch", "_Server"]
    finally:
        thread.join(timeout=5)
        listener.close()