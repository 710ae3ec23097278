import json
import logging
import socket

import pytest

from ovskit.ovsdb.jsonrpc import Conn, JsonRpcError, Request, Response


@pytest.fixture
def pair():
    client, server = socket.socketpair()
    client.settimeout(5)
    server.settimeout(5)
    conn = Conn(client)
    reader = server.makefile("rb")
    yield conn, server, reader
    reader.close()
    conn.close()
    server.close()


def read_request(reader):
    return json.loads(reader.readline())


def write(server, obj):
    server.sendall(json.dumps(obj).encode() + b"\n")


def test_send_no_request_id(pair):
    conn, _, _ = pair
    with pytest.raises(JsonRpcError, match="must not be empty"):
        conn.send(Request())


def test_receive_eof(pair):
    conn, server, _ = pair
    server.shutdown(socket.SHUT_WR)
    with pytest.raises(EOFError):
        conn.receive()


def test_send_receive_error(pair):
    conn, server, reader = pair
    conn.send(Request(id="10"))
    got = read_request(reader)
    assert got["id"] == "10"

    write(server, {"id": "10", "error": {"Details": "some error"}})
    res = conn.receive()
    assert res.error == {"Details": "some error"}
    with pytest.raises(JsonRpcError, match="some error"):
        res.check()


def test_send_receive_ok(pair):
    conn, server, reader = pair
    req = Request(id="1", method="hello", params=["world"])
    conn.send(req)
    assert read_request(reader) == {"id": "1", "method": "hello", "params": ["world"]}

    want = {"message": "hello world"}
    write(server, {"id": "1", "result": want, "error": None})
    res = conn.receive()
    res.check()
    assert res.id == "1"
    assert res.result == want


def test_send_receive_notifications(pair):
    conn, server, reader = pair
    req = Request(id="10", method="monitor", params=["Open_vSwitch"])
    note = {"id": None, "method": "notify"}
    write(server, note)
    write(server, note)

    conn.send(req)
    assert read_request(reader) == {
        "id": "10",
        "method": "monitor",
        "params": ["Open_vSwitch"],
    }
    write(server, {"id": "10", "result": "some bytes"})

    responses = notes = 0
    for _ in range(3):
        res = conn.receive()
        if res.id is not None:
            responses += 1
            assert res.id == req.id
            continue
        notes += 1
        assert res.method == "notify"

    assert responses == 1
    assert notes == 2


def test_send_null_params_becomes_empty_array(pair):
    conn, _, reader = pair
    conn.send(Request(id="3", method="list_dbs"))
    assert read_request(reader)["params"] == []


def test_send_unencodable_params(pair):
    conn, _, _ = pair
    with pytest.raises(JsonRpcError, match="failed to encode"):
        conn.send(Request(id="1", method="x", params=[object()]))


def test_receive_value_split_across_writes(pair):
    conn, server, _ = pair
    server.sendall(b'{"id": "7", "res')
    server.sendall(b'ult": "a}b\\"{"}')
    res = conn.receive()
    assert res.id == "7"
    assert res.result == 'a}b"{'


def test_receive_two_values_in_one_write(pair):
    conn, server, _ = pair
    server.sendall(b'{"id":"1","result":1}{"id":"2","result":2}')
    first = conn.receive()
    second = conn.receive()
    assert (first.id, first.result) == ("1", 1)
    assert (second.id, second.result) == ("2", 2)


def test_receive_split_multibyte_character(pair):
    conn, server, _ = pair
    text = '{"id":"1","result":"\u00e9"}'.encode()
    cut = text.index(b"\xc3") + 1
    server.sendall(text[:cut])
    server.sendall(text[cut:])
    assert conn.receive().result == "\u00e9"


def test_receive_non_object(pair):
    conn, server, _ = pair
    server.sendall(b"[1, 2]")
    with pytest.raises(JsonRpcError, match="expected an object"):
        conn.receive()


def test_receive_invalid_json(pair):
    conn, server, _ = pair
    server.sendall(b'{"id": }')
    with pytest.raises(JsonRpcError, match="failed to decode"):
        conn.receive()


def test_receive_non_string_id(pair):
    conn, server, _ = pair
    server.sendall(b'{"id": 5, "result": null}')
    with pytest.raises(JsonRpcError, match="id must be a string"):
        conn.receive()


def test_receive_truncated_then_eof(pair):
    conn, server, _ = pair
    server.sendall(b'{"id":')
    server.shutdown(socket.SHUT_WR)
    with pytest.raises(JsonRpcError, match="unexpected EOF"):
        conn.receive()


def test_response_check_without_error():
    res = Response(id="1", result=["a"])
    assert res.check() is None
    assert res.result == ["a"]


def test_debug_logging(caplog):
    client, server = socket.socketpair()
    client.settimeout(5)
    server.settimeout(5)
    logger = logging.getLogger("tests.jsonrpc")
    conn = Conn(client, logger)
    try:
        with caplog.at_level(logging.DEBUG, logger="tests.jsonrpc"):
            conn.send(Request(id="1", method="echo"))
            write(server, {"id": "1", "result": []})
            conn.receive()
            conn.close()
    finally:
        server.close()

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("write: ") and '"echo"' in m for m in messages)
    assert any(m.startswith(" read: ") for m in messages)
    assert "close: None" in messages