"""
Transport layer abstraction for MCP tool communication.

A Transport knows how to open a Connection: a bidirectional channel that
carries one JSON-RPC message per line.

Implements:
  - ProcessTransport: spawns the tool server and talks over its stdin/stdout
  - InMemoryTransport: one end of a linked pair, no process (tests)
"""

from __future__ import annotations

import json
import logging
import queue
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, TextIO

from kube_mcp.config import ServerConfig
from kube_mcp.errors import TransportError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# Seconds to wait for the server to exit after its stdin is closed,
# and again after terminate().
PROCESS_EXIT_TIMEOUT = 5.0


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request. A request without an id is a notification."""
    method: str
    params: dict[str, Any] | None = None
    id: int | str | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_json(self) -> str:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        if self.id is not None:
            message["id"] = self.id
        return json.dumps(message)


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int | str | None
    result: Any = None
    error: dict | None = None

    @classmethod
    def from_json(cls, data: str) -> JsonRpcResponse:
        return cls.from_dict(json.loads(data))

    @classmethod
    def from_dict(cls, parsed: dict) -> JsonRpcResponse:
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_json(self) -> str:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return json.dumps(message)


def parse_message(line: str) -> JsonRpcRequest | JsonRpcResponse:
    """
    Decode one line into a request/notification or a response.

    Raises:
        ValueError: the line is not a JSON-RPC object.
    """
    parsed = json.loads(line)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    if "method" in parsed:
        return JsonRpcRequest(
            method=parsed["method"],
            params=parsed.get("params"),
            id=parsed.get("id"),
        )
    return JsonRpcResponse.from_dict(parsed)


class Connection(ABC):
    """An open, line-oriented channel to the peer."""

    @abstractmethod
    def send(self, line: str) -> None:
        """Write one message. Raises TransportError if the channel is gone."""
        ...

    @abstractmethod
    def receive(self) -> str | None:
        """Block for the next message. Returns None at end of stream."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the channel. Safe to call more than once."""
        ...


class StreamConnection(Connection):
    """Newline-delimited messages over a pair of text streams."""

    def __init__(self, reader: TextIO, writer: TextIO):
        self._reader = reader
        self._writer = writer
        self._write_lock = threading.Lock()

    def send(self, line: str) -> None:
        with self._write_lock:
            try:
                self._writer.write(line + "\n")
                self._writer.flush()
            except (OSError, ValueError) as e:
                # ValueError: write to a closed file
                raise TransportError(f"write failed: {e}") from e

    def receive(self) -> str | None:
        try:
            line = self._reader.readline()
        except UnicodeDecodeError as e:
            # Only reachable on strict streams; skip the bad line
            logger.warning(f"Ignoring undecodable line from peer: {e}")
            return ""
        except (OSError, ValueError):
            return None
        if not line:
            return None
        return line.rstrip("\r\n")

    def close(self) -> None:
        with self._write_lock:
            try:
                self._writer.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing writer: {e}")


class ProcessConnection(StreamConnection):
    """
    Channel to a child process. The connection owns the process:
    close() waits for it to exit, escalating to terminate and kill.
    """

    def __init__(self, process: subprocess.Popen):
        super().__init__(process.stdout, process.stdin)
        self._process: subprocess.Popen | None = process
        self.pid = process.pid

    def is_alive(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def close(self) -> None:
        if self._process is None:
            return
        process, self._process = self._process, None

        # Closing stdin is the MCP stdio shutdown signal
        super().close()
        try:
            process.wait(timeout=PROCESS_EXIT_TIMEOUT)
        except subprocess.TimeoutExpired:
            process.terminate()
            try:
                process.wait(timeout=PROCESS_EXIT_TIMEOUT)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        if process.stdout:
            process.stdout.close()
        logger.info(f"Tool server process {process.pid} exited with {process.returncode}")


_EOF = object()


class MemoryConnection(Connection):
    """One end of an in-process channel built from two queues."""

    def __init__(self, inbox: queue.Queue, outbox: queue.Queue):
        self._inbox = inbox
        self._outbox = outbox
        self._closed = False

    def send(self, line: str) -> None:
        if self._closed:
            raise TransportError("write failed: connection closed")
        self._outbox.put(line)

    def receive(self) -> str | None:
        item = self._inbox.get()
        if item is _EOF:
            # Leave the marker for any other reader
            self._inbox.put(_EOF)
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._outbox.put(_EOF)
        self._inbox.put(_EOF)


class Transport(ABC):
    """
    Something that can open a Connection to a tool server.

    A transport is good for a single open(): opening takes ownership of the
    process or channel behind it.
    """

    def __init__(self):
        self._opened = False

    def open(self) -> Connection:
        if self._opened:
            raise TransportError(f"{type(self).__name__} has already been opened")
        connection = self._open()
        self._opened = True
        return connection

    @abstractmethod
    def _open(self) -> Connection:
        ...


class ProcessTransport(Transport):
    """
    JSON-RPC over stdin/stdout pipes to a subprocess.

    This is MCP's native local transport. The tool server runs as a child
    process; stderr is left attached to ours for diagnostics.
    """

    def __init__(self, config: ServerConfig):
        super().__init__()
        self.config = config

    def _open(self) -> Connection:
        spec = self.config.to_exec()
        logger.info(f"Starting stdio transport: {' '.join(spec.argv)}")
        # Spawn failures (missing binary, permissions) propagate unchanged
        process = subprocess.Popen(
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",  # undecodable bytes become U+FFFD
            bufsize=1,  # Line-buffered
            **spec.popen_kwargs(),
        )
        return ProcessConnection(process)


class InMemoryTransport(Transport):
    """A transport over an already-linked in-process channel."""

    def __init__(self, connection: MemoryConnection):
        super().__init__()
        self._connection = connection

    def _open(self) -> Connection:
        return self._connection


def new_transport(config: ServerConfig) -> Transport:
    """Transport that spawns the server described by config on open()."""
    return ProcessTransport(config)


def in_memory_transports() -> tuple[InMemoryTransport, InMemoryTransport]:
    """
    Two linked transports with no process behind them.

    Returns:
        (client_side, server_side): whatever one side sends, the other receives.
    """
    a_to_b: queue.Queue = queue.Queue()
    b_to_a: queue.Queue = queue.Queue()
    client_side = InMemoryTransport(MemoryConnection(inbox=b_to_a, outbox=a_to_b))
    server_side = InMemoryTransport(MemoryConnection(inbox=a_to_b, outbox=b_to_a))
    return client_side, server_side
