"""Tests for JSON-RPC messages and the transports."""

import json
import signal
import sys
import time

import pytest

import kube_mcp.transport
from kube_mcp.client import Client
from kube_mcp.config import ServerConfig
from kube_mcp.errors import TransportError
from kube_mcp.transport import (
    JsonRpcRequest,
    JsonRpcResponse,
    ProcessTransport,
    in_memory_transports,
    new_transport,
    parse_message,
)


def test_request_to_json():
    payload = json.loads(JsonRpcRequest("tools/list", {}, id=3).to_json())
    assert payload == {"jsonrpc": "2.0", "method": "tools/list", "params": {}, "id": 3}


def test_notification_has_no_id():
    request = JsonRpcRequest("notifications/initialized")
    assert request.is_notification
    assert json.loads(request.to_json()) == {
        "jsonrpc": "2.0",
        "method": "notifications/initialized",
    }


def test_response_round_trip_through_parse():
    line = JsonRpcResponse(id=7, error={"code": -32601, "message": "nope"}).to_json()
    message = parse_message(line)
    assert isinstance(message, JsonRpcResponse)
    assert message.id == 7
    assert message.is_error


def test_parse_request():
    message = parse_message('{"jsonrpc":"2.0","method":"ping","id":1}')
    assert isinstance(message, JsonRpcRequest)
    assert message.method == "ping"
    assert not message.is_notification


@pytest.mark.parametrize("line", ["not json", "[1, 2]"])
def test_parse_rejects_non_objects(line):
    with pytest.raises(ValueError):
        parse_message(line)


def test_in_memory_pair_is_linked():
    client_side, server_side = in_memory_transports()
    client_conn = client_side.open()
    server_conn = server_side.open()

    client_conn.send("hello")
    assert server_conn.receive() == "hello"
    server_conn.send("world")
    assert client_conn.receive() == "world"


def test_in_memory_close_signals_end_of_stream():
    client_side, server_side = in_memory_transports()
    client_conn = client_side.open()
    server_conn = server_side.open()

    client_conn.close()
    assert server_conn.receive() is None
    assert client_conn.receive() is None
    with pytest.raises(TransportError):
        client_conn.send("late")


def test_transport_opens_only_once():
    client_side, _ = in_memory_transports()
    client_side.open()
    with pytest.raises(TransportError):
        client_side.open()


def test_new_transport_spawns_process():
    transport = new_transport(ServerConfig.default())
    assert isinstance(transport, ProcessTransport)
    assert transport.config == ServerConfig.default()


def test_process_transport_spawn_error_propagates():
    transport = new_transport(ServerConfig("kube-mcp-no-such-binary-4f1c"))
    with pytest.raises(FileNotFoundError):
        transport.open()


def test_process_connection_lines_and_teardown():
    # A child that echoes each line back until stdin closes
    script = "import sys\nfor line in sys.stdin:\n    sys.stdout.write(line)\n    sys.stdout.flush()\n"
    transport = new_transport(ServerConfig(sys.executable, ("-c", script)))
    connection = transport.open()

    connection.send('{"jsonrpc":"2.0","method":"ping","id":1}')
    assert connection.receive() == '{"jsonrpc":"2.0","method":"ping","id":1}'

    connection.close()
    assert not connection.is_alive()
    connection.close()


def test_process_transport_passes_explicit_environment():
    script = "import os\nprint(os.environ.get('KUBECONFIG', '<unset>'), flush=True)\n"
    cfg = ServerConfig(sys.executable, ("-c", script)).with_kubeconfig_env("/tmp/kubeconfig")
    connection = new_transport(cfg).open()
    try:
        assert connection.receive() == "/tmp/kubeconfig"
    finally:
        connection.close()


# Answers initialize, then emits a line with invalid UTF-8 before answering tools/list
BAD_BYTES_SERVER = r'''
import json, sys
out = sys.stdout.buffer

def reply(request, result):
    out.write(json.dumps({"jsonrpc": "2.0", "id": request["id"], "result": result}).encode() + b"\n")
    out.flush()

for line in sys.stdin:
    request = json.loads(line)
    if request.get("method") == "initialize":
        reply(request, {"protocolVersion": "2025-06-18", "capabilities": {}, "serverInfo": {"name": "bytes"}})
    elif request.get("method") == "tools/list":
        out.write(b'{"jsonrpc": "2.0", "method": "notifications/message", "params": {"data": "\xff\xfe"}}\n')
        reply(request, {"tools": [{"name": "namespaces_list"}]})
'''


def test_invalid_utf8_from_server_is_not_end_of_stream():
    client = Client(ServerConfig(sys.executable, ("-c", BAD_BYTES_SERVER)))
    client.connect(timeout=30)
    try:
        tools = client.list_tools(timeout=10)
        assert [t.name for t in tools] == ["namespaces_list"]
    finally:
        client.close()


# Ignores both stdin EOF and SIGTERM, so only kill() stops it
STUBBORN_CHILD = r'''
import signal, sys, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("ready", flush=True)
time.sleep(60)
'''


@pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM cannot be ignored on Windows")
def test_process_close_escalates_to_kill(monkeypatch):
    monkeypatch.setattr(kube_mcp.transport, "PROCESS_EXIT_TIMEOUT", 0.2)
    connection = new_transport(ServerConfig(sys.executable, ("-c", STUBBORN_CHILD))).open()
    assert connection.receive() == "ready"
    process = connection._process

    started = time.monotonic()
    connection.close()
    assert time.monotonic() - started < 10
    assert not connection.is_alive()
    assert process.returncode == -signal.SIGKILL
