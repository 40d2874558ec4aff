"""
A live MCP session over an open Connection.

The session owns the connection. A background reader thread receives
messages and hands each response to the request waiting on its id, so a
response can never be delivered to the wrong caller. Requests that time out
are forgotten; if their response shows up later it is dropped.

Protocol (one JSON-RPC message per line):
    -> initialize                 (clientInfo, protocolVersion)
    <- result                     (serverInfo, protocolVersion, capabilities)
    -> notifications/initialized
    -> tools/list, tools/call, ping ...
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from kube_mcp.errors import (
    ConnectionClosedError,
    HandshakeError,
    RemoteError,
    RequestTimeoutError,
    TransportError,
)
from kube_mcp.transport import (
    Connection,
    JsonRpcRequest,
    JsonRpcResponse,
    parse_message,
)

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = (
    "2025-06-18",
    "2025-03-26",
    "2024-11-05",
)

METHOD_NOT_FOUND = -32601

# How long close() waits for the reader thread after the connection is closed.
READER_JOIN_TIMEOUT = 5.0


class ClientSession:
    """
    Request/response routing over a single Connection.

    One logical caller per session: writes are serialized, and responses
    are matched by id, but ordering between concurrent callers is not
    defined.
    """

    def __init__(self, connection: Connection, client_info: dict[str, str]):
        self._connection = connection
        self.client_info = client_info
        self.server_info: dict[str, Any] = {}
        self.server_capabilities: dict[str, Any] = {}
        self.protocol_version: str | None = None

        self._ids = itertools.count(1)
        self._pending: dict[int, Future] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._eof = False
        self._reader = threading.Thread(
            target=self._read_loop,
            name=f"mcp-session-{client_info.get('name', 'client')}",
            daemon=True,
        )
        self._reader.start()

    @property
    def closed(self) -> bool:
        return self._closed

    # ── handshake ─────────────────────────────────────────

    def initialize(self, timeout: float | None = None) -> dict:
        """
        Negotiate the session. Raises HandshakeError if the server refuses
        or answers with a protocol version we do not speak.
        """
        params = {
            "protocolVersion": LATEST_PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": self.client_info,
        }
        try:
            result = self.request("initialize", params, timeout=timeout)
        except (RemoteError, TransportError) as e:
            raise HandshakeError(f"initialize failed: {e}") from e

        result = result or {}
        version = result.get("protocolVersion")
        if version not in SUPPORTED_PROTOCOL_VERSIONS:
            raise HandshakeError(f"unsupported protocol version from server: {version!r}")

        self.protocol_version = version
        self.server_info = result.get("serverInfo") or {}
        self.server_capabilities = result.get("capabilities") or {}
        self.notify("notifications/initialized")
        logger.info(
            f"Session initialized with {self.server_info.get('name', 'unknown server')} "
            f"(protocol {version})"
        )
        return result

    # ── round trips ───────────────────────────────────────

    def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send a request and block until its response arrives.

        Raises:
            RemoteError: the server answered with a JSON-RPC error.
            RequestTimeoutError: no answer within timeout seconds.
            ConnectionClosedError: the channel closed first.
        """
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise ConnectionClosedError("session is closed")
            if self._eof:
                raise ConnectionClosedError("server closed the connection")
            request_id = next(self._ids)
            self._pending[request_id] = future

        request = JsonRpcRequest(method=method, params=params, id=request_id)
        logger.debug(f"-> {method} (id={request_id})")
        try:
            self._connection.send(request.to_json())
        except TransportError:
            self._forget(request_id)
            raise

        try:
            response: JsonRpcResponse = future.result(timeout=timeout)
        except FutureTimeoutError:
            self._forget(request_id)
            self._cancel(request_id, f"timed out after {timeout}s")
            raise RequestTimeoutError(
                f"{method} (id={request_id}) timed out after {timeout}s"
            ) from None

        if response.is_error:
            raise RemoteError.from_dict(response.error)
        return response.result

    def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification (no response expected)."""
        logger.debug(f"-> {method} (notification)")
        self._connection.send(JsonRpcRequest(method=method, params=params).to_json())

    def list_tools(self, timeout: float | None = None) -> list[dict]:
        """
        All tool descriptors, following pagination cursors.

        timeout bounds the whole listing, not each page.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        tools: list[dict] = []
        cursor = None
        while True:
            params = {"cursor": cursor} if cursor else None
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            result = self.request("tools/list", params, timeout=remaining) or {}
            tools.extend(result.get("tools") or [])
            cursor = result.get("nextCursor")
            if not cursor:
                return tools

    def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict:
        params = {"name": name, "arguments": arguments or {}}
        return self.request("tools/call", params, timeout=timeout) or {}

    def ping(self, timeout: float | None = None) -> None:
        self.request("ping", timeout=timeout)

    # ── teardown ──────────────────────────────────────────

    def close(self) -> None:
        """Close the connection (and any process behind it), then stop the reader."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._connection.close()
        if self._reader is not threading.current_thread():
            self._reader.join(timeout=READER_JOIN_TIMEOUT)
            if self._reader.is_alive():
                logger.warning("Session reader thread did not stop; leaving it detached")
        self._fail_pending(ConnectionClosedError("session closed"))

    # ── internals ─────────────────────────────────────────

    def _forget(self, request_id: int) -> None:
        with self._lock:
            self._pending.pop(request_id, None)

    def _cancel(self, request_id: int, reason: str) -> None:
        try:
            self.notify(
                "notifications/cancelled",
                {"requestId": request_id, "reason": reason},
            )
        except TransportError as e:
            logger.debug(f"Could not send cancellation for id={request_id}: {e}")

    def _fail_pending(self, error: Exception) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    def _read_loop(self) -> None:
        try:
            while True:
                line = self._connection.receive()
                if line is None:
                    break
                if not line.strip():
                    continue
                try:
                    self._handle_line(line)
                except Exception:
                    # One bad message must not take the session down
                    logger.exception(f"Ignoring message the session could not handle: {line[:200]!r}")
        finally:
            logger.debug("Session reader reached end of stream")
            with self._lock:
                self._eof = True
            self._fail_pending(ConnectionClosedError("server closed the connection"))

    def _handle_line(self, line: str) -> None:
        try:
            message = parse_message(line)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Ignoring malformed message from server: {e}")
            return

        if isinstance(message, JsonRpcResponse):
            self._dispatch_response(message)
        elif message.is_notification:
            logger.debug(f"<- {message.method} (notification)")
        else:
            self._answer_server_request(message)

    def _dispatch_response(self, response: JsonRpcResponse) -> None:
        if not isinstance(response.id, (int, str)):
            logger.warning(f"Discarding response with invalid id={response.id!r}")
            return
        with self._lock:
            future = self._pending.pop(response.id, None)
        if future is None:
            logger.warning(f"Discarding response for unknown or cancelled request id={response.id}")
            return
        logger.debug(f"<- response (id={response.id})")
        future.set_result(response)

    def _answer_server_request(self, request: JsonRpcRequest) -> None:
        if request.method == "ping":
            response = JsonRpcResponse(id=request.id, result={})
        else:
            response = JsonRpcResponse(
                id=request.id,
                error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {request.method}"},
            )
        try:
            self._connection.send(response.to_json())
        except TransportError as e:
            logger.debug(f"Could not answer server request {request.method}: {e}")
