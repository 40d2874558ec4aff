"""Shared fixtures: an in-memory mock Kubernetes MCP server and a client wired to it."""

import threading

import pytest

from kube_mcp.client import Client
from kube_mcp.config import ServerConfig
from kube_mcp.server import ToolHandler, ToolServer
from kube_mcp.transport import in_memory_transports


class NamespacesList(ToolHandler):
    name = "namespaces_list"
    description = "List namespaces (mock)"

    def handle(self, params: dict) -> list:
        return ["default", "kube-system"]


class MixedContent(ToolHandler):
    name = "mixed_content"
    description = "Text around an image"

    def handle(self, params: dict) -> list:
        return [
            {"type": "text", "text": "before"},
            {"type": "image", "data": "iVBORw0KGgo=", "mimeType": "image/png"},
            {"type": "text", "text": "after"},
        ]


class Boom(ToolHandler):
    name = "boom"
    description = "Always fails"

    def handle(self, params: dict):
        raise RuntimeError("kaboom")


class Echo(ToolHandler):
    name = "echo"
    description = "Echo the message argument"
    parameters = {"message": {"type": "string"}}
    required = ["message"]

    def handle(self, params: dict) -> str:
        return params["message"]


class Slow(ToolHandler):
    """Blocks until release is set."""
    name = "slow"
    description = "Waits for the test to release it"

    def __init__(self):
        self.release = threading.Event()

    def handle(self, params: dict) -> str:
        self.release.wait(timeout=10)
        return "slow done"


@pytest.fixture
def slow_tool():
    tool = Slow()
    yield tool
    tool.release.set()


@pytest.fixture
def mock_server(slow_tool):
    server = ToolServer("test-k8s-mock")
    server.register(NamespacesList())
    server.register(MixedContent())
    server.register(Boom())
    server.register(Echo())
    server.register(slow_tool)
    return server


@pytest.fixture
def client_transport(mock_server):
    """Client side of an in-memory pair whose other end is served by mock_server."""
    client_side, server_side = in_memory_transports()
    mock_server.serve_in_background(server_side.open())
    return client_side


@pytest.fixture
def connected_client(client_transport):
    client = Client.with_transport(ServerConfig.default(), client_transport)
    client.connect(timeout=5)
    yield client
    client.close()
