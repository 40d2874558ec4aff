"""
Tool-session client for the Kubernetes MCP server.

The client owns one transport and, once connected, one session. It is the
standalone counterpart of the toolset in kube_mcp.bridge.

Usage:
    client = Client(ServerConfig.default().with_read_only())
    client.connect(timeout=30)
    try:
        tools = client.list_tools()
        result = client.call_tool("namespaces_list", {})
        print(text_from_result(result))
    finally:
        client.close()

Lifecycle: unconnected -> connected -> closed. close() is safe in any state.
One logical caller per client; separate clients are fully independent.
"""

from __future__ import annotations

import logging
from typing import Any

from kube_mcp import __version__
from kube_mcp.config import ServerConfig
from kube_mcp.errors import NotConnectedError
from kube_mcp.session import ClientSession
from kube_mcp.transport import Transport, new_transport
from kube_mcp.types import CallToolResult, Tool

logger = logging.getLogger(__name__)

CLIENT_NAME = "kube-mcp"


class Client:
    """
    Connects to a tool server, lists its tools and calls them.

    Every blocking method takes an optional timeout in seconds; when it
    expires the call raises RequestTimeoutError.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._transport: Transport | None = None
        self._session: ClientSession | None = None

    @classmethod
    def with_transport(cls, config: ServerConfig, transport: Transport) -> Client:
        """A client that connects over transport instead of spawning the server."""
        client = cls(config)
        client._transport = transport
        return client

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ClientSession | None:
        return self._session

    def connect(self, timeout: float | None = None) -> None:
        """
        Open the transport and initialize a session.

        Raises:
            OSError: the server process could not be started.
            HandshakeError: the server rejected initialization.
            RequestTimeoutError: initialization did not finish in time.
        """
        if self._session is not None:
            logger.warning("connect() called on a connected client; previous session is not closed")

        transport = self._transport or new_transport(self.config)
        connection = transport.open()
        session = ClientSession(
            connection,
            client_info={"name": CLIENT_NAME, "version": __version__},
        )
        try:
            session.initialize(timeout=timeout)
        except BaseException:
            session.close()
            raise

        self._session = session
        tool_server = session.server_info.get("name", "tool server")
        logger.info(f"Connected to {tool_server}")

    def list_tools(self, timeout: float | None = None) -> list[Tool]:
        """Tools offered by the server, in the server's order."""
        session = self._require_session()
        return [Tool.from_dict(t) for t in session.list_tools(timeout=timeout)]

    def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> CallToolResult:
        """
        Invoke a tool by name.

        The server validates arguments. A failed execution reported by the
        server comes back with is_error=True; protocol-level failures raise
        RemoteError.
        """
        session = self._require_session()
        return CallToolResult.from_dict(session.call_tool(name, arguments, timeout=timeout))

    def ping(self, timeout: float | None = None) -> None:
        self._require_session().ping(timeout=timeout)

    def close(self) -> None:
        """Close the session and the server process. No-op if not connected."""
        if self._session is None:
            return
        session, self._session = self._session, None
        session.close()
        logger.info("Client closed")

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise NotConnectedError()
        return self._session

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
