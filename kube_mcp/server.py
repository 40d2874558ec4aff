"""
MCP tool server.

Serves registered ToolHandlers over any Connection: stdin/stdout when run
as a subprocess, or one end of an in-memory pair inside a test.

To create a tool server:

    from kube_mcp.server import ToolServer, ToolHandler

    class NamespacesList(ToolHandler):
        name = "namespaces_list"
        description = "List namespaces"

        def handle(self, params: dict):
            return ["default", "kube-system"]

    if __name__ == "__main__":
        server = ToolServer("my-server")
        server.register(NamespacesList())
        server.run()
"""

from __future__ import annotations

import logging
import sys
import threading
from abc import ABC, abstractmethod
from typing import Any

from kube_mcp.errors import TransportError
from kube_mcp.session import LATEST_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS
from kube_mcp.transport import (
    Connection,
    JsonRpcRequest,
    JsonRpcResponse,
    StreamConnection,
    parse_message,
)

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


class ToolHandler(ABC):
    """
    Base class for a tool implementation.

    Subclasses define what a tool does. The server handles transport.
    """

    # Subclasses must set these
    name: str = ""
    description: str = ""
    parameters: dict[str, dict] = {}
    required: list[str] = []

    @abstractmethod
    def handle(self, params: dict[str, Any]) -> Any:
        """
        Execute the tool with the given parameters.

        Returns:
            A string (one text part), a list of strings (one text part each),
            a list of content dicts, or a full result dict with "content".
        """
        ...

    def get_schema(self) -> dict:
        """Return the tool descriptor for tools/list."""
        schema: dict[str, Any] = {"type": "object", "properties": self.parameters}
        if self.required:
            schema["required"] = list(self.required)
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": schema,
        }


def to_call_result(value: Any) -> dict:
    """Normalize a handler's return value into a tools/call result."""
    if isinstance(value, dict) and "content" in value:
        return value
    if isinstance(value, str):
        return {"content": [{"type": "text", "text": value}], "isError": False}
    if isinstance(value, list):
        content = [
            {"type": "text", "text": item} if isinstance(item, str) else item
            for item in value
        ]
        return {"content": content, "isError": False}
    raise TypeError(f"Unsupported tool result type: {type(value).__name__}")


class ToolServer:
    """
    JSON-RPC tool server.

    Protocol:
    - One JSON-RPC message per line
    - Supports methods:
        - "initialize" → protocol version, capabilities, server info
        - "tools/list" → registered tool descriptors
        - "tools/call" → calls a tool by name with arguments
        - "ping"       → empty result
    - Notifications are accepted and ignored
    """

    def __init__(self, name: str = "kube-mcp-server", version: str = "0.0.1"):
        self.name = name
        self.version = version
        self._handlers: dict[str, ToolHandler] = {}

    def register(self, handler: ToolHandler) -> None:
        """Register a tool handler. A later handler with the same name wins."""
        if not handler.name:
            raise ValueError(f"ToolHandler {handler.__class__.__name__} has no name")
        self._handlers[handler.name] = handler
        logger.info(f"Registered tool: {handler.name}")

    def run(self) -> None:
        """
        Serve on stdin/stdout.

        This blocks until stdin is closed (parent process terminates).
        """
        self.serve(StreamConnection(sys.stdin, sys.stdout))

    def serve(self, connection: Connection) -> None:
        """Main loop: read requests, dispatch, write responses. Returns at end of stream."""
        logger.info(f"Tool server {self.name} starting with {len(self._handlers)} tools: "
                    f"{list(self._handlers.keys())}")

        while True:
            line = connection.receive()
            if line is None:
                break
            line = line.strip()
            if not line:
                continue

            try:
                message = parse_message(line)
            except ValueError as e:
                connection.send(self._error(None, PARSE_ERROR, f"Parse error: {e}"))
                continue

            if isinstance(message, JsonRpcResponse):
                continue
            if message.is_notification:
                logger.debug(f"Notification: {message.method}")
                continue

            try:
                connection.send(self._handle_request(message))
            except TransportError as e:
                logger.warning(f"Client went away: {e}")
                break

        logger.info(f"Tool server {self.name} stopped")

    def serve_in_background(self, connection: Connection) -> threading.Thread:
        """Run serve() on a daemon thread."""
        thread = threading.Thread(
            target=self.serve,
            args=(connection,),
            name=f"tool-server-{self.name}",
            daemon=True,
        )
        thread.start()
        return thread

    def _handle_request(self, request: JsonRpcRequest) -> str:
        params = request.params or {}
        method = request.method

        if method == "initialize":
            return self._result(request.id, self._initialize(params))
        if method == "ping":
            return self._result(request.id, {})
        if method == "tools/list":
            return self._result(
                request.id,
                {"tools": [h.get_schema() for h in self._handlers.values()]},
            )
        if method == "tools/call":
            tool_name = params.get("name", "")
            handler = self._handlers.get(tool_name)
            if not handler:
                return self._error(
                    request.id,
                    INVALID_PARAMS,
                    f"Unknown tool: '{tool_name}'. Available: {list(self._handlers.keys())}",
                )
            return self._result(request.id, self._call(handler, params.get("arguments") or {}))

        return self._error(request.id, METHOD_NOT_FOUND, f"Unknown method: '{method}'")

    def _initialize(self, params: dict) -> dict:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        client = (params.get("clientInfo") or {}).get("name", "unknown")
        logger.info(f"Initialize from {client} (protocol {version})")
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _call(self, handler: ToolHandler, arguments: dict) -> dict:
        # Tool failures are reported in the result, not as protocol errors
        try:
            return to_call_result(handler.handle(arguments))
        except Exception as e:
            logger.error(f"Tool {handler.name} failed: {e}")
            return {"content": [{"type": "text", "text": str(e)}], "isError": True}

    @staticmethod
    def _result(request_id: Any, result: Any) -> str:
        return JsonRpcResponse(id=request_id, result=result).to_json()

    @staticmethod
    def _error(request_id: Any, code: int, message: str) -> str:
        return JsonRpcResponse(id=request_id, error={"code": code, "message": message}).to_json()
