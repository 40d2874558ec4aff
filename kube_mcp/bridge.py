"""
Bridge between the Kubernetes MCP server and LangChain agents.

A KubeToolset exposes every tool the server advertises as a LangChain
StructuredTool. It is built from a Transport alone; the server is started
on first use.

Usage:
    from kube_mcp.bridge import new_toolset

    toolset = new_toolset(ServerConfig.default().with_read_only())
    tools = toolset.get_tools()        # spawns the server, lists its tools
    agent = create_react_agent(model, tools)
    ...
    toolset.close()
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.tools import StructuredTool

from kube_mcp.client import Client
from kube_mcp.config import ServerConfig
from kube_mcp.errors import ToolClientError
from kube_mcp.result import text_from_result
from kube_mcp.transport import Transport, new_transport
from kube_mcp.types import Tool

logger = logging.getLogger(__name__)


def mcp_to_langchain_tool(
    client: Client,
    tool: Tool,
    description_override: str | None = None,
    timeout: float | None = None,
) -> StructuredTool:
    """
    Create a LangChain StructuredTool that wraps an MCP tool call.

    The returned tool sends tools/call over the client's session and returns
    the text parts of the result. Failures are returned as text so the agent
    can see them.

    Args:
        client: A connected Client
        tool: The tool descriptor (from list_tools)
        description_override: Optional override for the tool description
        timeout: Per-call timeout in seconds

    Returns:
        A LangChain StructuredTool that proxies calls to the MCP server.
    """
    description = description_override or tool.description or f"MCP tool: {tool.name}"

    def _call_mcp(**kwargs: Any) -> str:
        """Proxy call to MCP tool server."""
        try:
            result = client.call_tool(tool.name, kwargs, timeout=timeout)
        except (ToolClientError, OSError) as e:
            return f"Error calling {tool.name}: {e}"
        text = text_from_result(result)
        if result.is_error:
            return f"Error calling {tool.name}: {text}"
        return text

    return StructuredTool.from_function(
        func=_call_mcp,
        name=tool.name,
        description=description,
        args_schema=tool.input_schema,
    )


class KubeToolset:
    """
    The server's tools as LangChain tools.

    Connects lazily; the first get_tools() starts the session. The transport
    can only be opened once, so a closed toolset cannot be reused.
    """

    def __init__(
        self,
        transport: Transport,
        config: ServerConfig | None = None,
        timeout: float | None = None,
    ):
        self._client = Client.with_transport(config or ServerConfig.default(), transport)
        self._timeout = timeout
        self._tools: list[StructuredTool] | None = None

    @property
    def client(self) -> Client:
        return self._client

    def get_tools(self) -> list[StructuredTool]:
        if self._tools is None:
            if not self._client.connected:
                self._client.connect(timeout=self._timeout)
            discovered = self._client.list_tools(timeout=self._timeout)
            self._tools = [
                mcp_to_langchain_tool(self._client, t, timeout=self._timeout)
                for t in discovered
            ]
            logger.info(f"Toolset ready: {[t.name for t in self._tools]}")
        return list(self._tools)

    def close(self) -> None:
        self._client.close()
        self._tools = None


def new_toolset(config: ServerConfig, timeout: float | None = None) -> KubeToolset:
    """Toolset that spawns the server described by config on first use."""
    return KubeToolset(new_transport(config), config, timeout=timeout)
