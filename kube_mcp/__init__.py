"""
Kubernetes MCP client: talk to kubernetes-mcp-server from Python.

Architecture:
    ┌──────────────┐     stdio      ┌───────────────────────┐
    │    Client    │ ──────────── │ kubernetes-mcp-server │
    │  (session)   │  JSON-RPC    │     (subprocess)      │
    └──────────────┘     pipes     └───────────────────────┘

ServerConfig describes how to launch the server. A Transport opens the
channel: a subprocess in production, an in-memory pair in tests. The
Client runs the session on top (initialize, tools/list, tools/call) and
text_from_result turns a tool result into plain text.

KubeToolset (kube_mcp.bridge) exposes the same tools to LangChain agents.
"""

__version__ = "0.1.0"

from kube_mcp.config import ServerConfig, default_k8s_config
from kube_mcp.errors import (
    ConnectionClosedError,
    HandshakeError,
    NotConnectedError,
    RemoteError,
    RequestTimeoutError,
    ToolClientError,
    TransportError,
)
from kube_mcp.transport import Transport, in_memory_transports, new_transport
from kube_mcp.types import CallToolResult, Content, TextContent, Tool
from kube_mcp.client import Client
from kube_mcp.result import print_result, text_from_result


# Bridge requires langchain; lazy import to keep the client standalone
def new_toolset(*args, **kwargs):
    from kube_mcp.bridge import new_toolset as _impl
    return _impl(*args, **kwargs)


__all__ = [
    "CallToolResult",
    "Client",
    "ConnectionClosedError",
    "Content",
    "HandshakeError",
    "NotConnectedError",
    "RemoteError",
    "RequestTimeoutError",
    "ServerConfig",
    "TextContent",
    "Tool",
    "ToolClientError",
    "Transport",
    "TransportError",
    "default_k8s_config",
    "in_memory_transports",
    "new_toolset",
    "new_transport",
    "print_result",
    "text_from_result",
]
