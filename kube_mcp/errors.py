"""Errors raised by the tool-session client."""

from __future__ import annotations

from typing import Any


class ToolClientError(RuntimeError):
    """Base class for client-side failures."""


class NotConnectedError(ToolClientError):
    """Raised when discovery or invocation is attempted before connect()."""

    def __init__(self, message: str = "mcp client: not connected (call connect first)"):
        super().__init__(message)


class TransportError(ToolClientError):
    """The channel to the server could not be used."""


class ConnectionClosedError(TransportError):
    """The server side of the channel went away before a response arrived."""


class HandshakeError(ToolClientError):
    """The channel opened but session initialization failed."""


class RemoteError(ToolClientError):
    """A JSON-RPC error returned by the server."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_dict(cls, error: dict) -> RemoteError:
        return cls(
            code=error.get("code", -32603),
            message=error.get("message", "unknown error"),
            data=error.get("data"),
        )


class RequestTimeoutError(ToolClientError, TimeoutError):
    """The caller's timeout expired before the server answered."""
