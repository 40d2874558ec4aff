"""
Value types exchanged with the tool server: the tool catalog and
tool-call results.

Result content is a tagged variant keyed by ``type``. Only text is
interpreted on this side; every other kind (image, audio, resource, ...)
is kept as an opaque Content in its original position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TEXT = "text"


@dataclass
class Tool:
    """One entry of a server's tool catalog."""
    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @classmethod
    def from_dict(cls, data: dict) -> Tool:
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=data.get("inputSchema") or {"type": "object", "properties": {}},
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class Content:
    """A content item of any kind, kept as received."""
    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {**self.data, "type": self.type}


@dataclass
class TextContent(Content):
    type: str = TEXT
    text: str = ""

    def to_dict(self) -> dict:
        return {**self.data, "type": TEXT, "text": self.text}


def content_from_dict(item: dict) -> Content:
    kind = item.get("type", "")
    data = {k: v for k, v in item.items() if k != "type"}
    if kind == TEXT:
        text = data.pop("text", "")
        return TextContent(data=data, text=text)
    return Content(type=kind, data=data)


@dataclass
class CallToolResult:
    """
    Outcome of a tool call.

    is_error is the server's own verdict on the tool execution; the client
    hands it back untouched.
    """
    content: list[Content] = field(default_factory=list)
    is_error: bool = False
    structured_content: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CallToolResult:
        return cls(
            content=[content_from_dict(item) for item in data.get("content") or []],
            is_error=bool(data.get("isError", False)),
            structured_content=data.get("structuredContent"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "content": [item.to_dict() for item in self.content],
            "isError": self.is_error,
        }
        if self.structured_content is not None:
            out["structuredContent"] = self.structured_content
        return out
