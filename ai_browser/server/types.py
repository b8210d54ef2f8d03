"""
Tool results returned across the dispatch boundary.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import InvalidArgumentError

if TYPE_CHECKING:
    from ..context import BrowserContext
    from ..errors import BrowserContextError


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str  # "text" or "image"
    text: str | None = None
    data: str | None = None  # base64 for images
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.type == "image":
            return {"type": "image", "data": self.data, "mimeType": self.mime_type}
        return {"type": "text", "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False
    # Raw payload for in-process callers; not part of the wire format.
    data: Any | None = None

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls(content=[ToolContent(type="text", text=text or "")])

    @classmethod
    def json(cls, data: Any) -> ToolResult:
        """Create result with JSON-serialized text content."""
        return cls(content=[ToolContent(type="text", text=json.dumps(data, ensure_ascii=False, default=str))], data=data)

    @classmethod
    def error(
        cls,
        message: str,
        *,
        kind: str = "error",
        tool: str | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ToolResult:
        payload: dict[str, Any] = {"ok": False, "kind": kind, "error": message}
        if tool:
            payload["tool"] = tool
        if suggestion:
            payload["suggestion"] = suggestion
        if details:
            payload["details"] = details
        return cls(
            content=[ToolContent(type="text", text=json.dumps(payload, ensure_ascii=False, default=str))],
            is_error=True,
            data=payload,
        )

    @classmethod
    def from_exception(cls, exc: BrowserContextError, *, tool: str | None = None) -> ToolResult:
        return cls.error(
            exc.message,
            kind=exc.kind,
            tool=tool,
            suggestion=exc.suggestion or None,
            details=exc.details or None,
        )

    @classmethod
    def image(cls, data_b64: str, mime_type: str = "image/png") -> ToolResult:
        """Create result with single image content. Falls back to an error if data is empty."""
        if not data_b64:
            return cls.error("Screenshot data is empty")
        return cls(content=[ToolContent(type="image", data=data_b64, mime_type=mime_type)])

    @classmethod
    def with_image(cls, text: str, data_b64: str, mime_type: str = "image/png", data: Any | None = None) -> ToolResult:
        return cls(
            content=[
                ToolContent(type="text", text=text),
                ToolContent(type="image", data=data_b64, mime_type=mime_type),
            ],
            data=data,
        )

    def to_content_list(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.content]


HandlerFunc = Callable[["BrowserContext", dict[str, Any]], Awaitable[ToolResult]]


def required_str(args: dict[str, Any], name: str) -> str:
    """Read a required argument as a string; missing or null is an invalid argument."""
    value = args.get(name)
    if value is None:
        raise InvalidArgumentError(f"Missing required argument: '{name}'", details={"argument": name})
    return str(value)


__all__ = ["HandlerFunc", "ToolContent", "ToolResult", "required_str"]
