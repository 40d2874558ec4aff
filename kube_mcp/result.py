"""Helpers for turning tool-call results into text."""

from __future__ import annotations

from typing import Callable

from kube_mcp.types import CallToolResult, TextContent


def text_from_result(result: CallToolResult | None) -> str:
    """
    Concatenate the text parts of a result, one per line.

    Non-text parts are skipped. Returns "" for None or a result without text.
    """
    if result is None:
        return ""
    return "\n".join(item.text for item in result.content if isinstance(item, TextContent))


def print_result(result: CallToolResult | None, fn: Callable[[str], None] | None) -> None:
    """Call fn once per text part, in order. Does nothing if either is None."""
    if result is None or fn is None:
        return
    for item in result.content:
        if isinstance(item, TextContent):
            fn(item.text)
