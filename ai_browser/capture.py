"""
Screenshots and script evaluation.

Screenshot payloads stay base64 (the form CDP returns and tool results carry);
Pillow is only used when a caller asks for pixel dimensions or a file.
"""

from __future__ import annotations

import base64
import io
import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from PIL import Image

from .errors import CommandFailedError, InvalidArgumentError, ScriptEvaluationError
from .input.dom import exception_description

if TYPE_CHECKING:
    from .input.mouse import BoundingBox
    from .session import ProtocolSession

SCREENSHOT_FORMATS: dict[str, str] = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

DEFAULT_QUALITY = 80


@dataclass(frozen=True)
class Screenshot:
    data: str
    mime_type: str

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def dimensions(self) -> tuple[int, int]:
        with Image.open(io.BytesIO(self.to_bytes())) as img:
            return img.size

    def save(self, path: str | Path) -> Path:
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.to_bytes())
        return target

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "mimeType": self.mime_type}


def screenshot_params(fmt: str = "png", quality: int | None = None, *, default_quality: int = DEFAULT_QUALITY) -> dict[str, Any]:
    """Validated Page.captureScreenshot params (quality is omitted for png)."""
    fmt = (fmt or "png").lower()
    if fmt not in SCREENSHOT_FORMATS:
        raise InvalidArgumentError(f"Unsupported screenshot format {fmt!r} (expected png, jpeg or webp)")

    params: dict[str, Any] = {"format": fmt}
    if fmt == "png":
        return params

    if quality is None:
        quality = default_quality
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 100:
        raise InvalidArgumentError(f"Screenshot quality must be an integer 0-100, got {quality!r}")
    params["quality"] = quality
    return params


async def full_page_clip(session: ProtocolSession) -> dict[str, float]:
    metrics = await session.send_command("Page.getLayoutMetrics")
    size = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
    width = float(size.get("width") or 0)
    height = float(size.get("height") or 0)
    if width <= 0 or height <= 0:
        raise CommandFailedError("Page.getLayoutMetrics", "page reported no content size")
    return {"x": 0, "y": 0, "width": width, "height": height, "scale": 1}


async def take_screenshot(
    session: ProtocolSession,
    params: dict[str, Any],
    *,
    clip: dict[str, float] | BoundingBox | None = None,
    beyond_viewport: bool = False,
) -> Screenshot:
    method = "Page.captureScreenshot"
    request = dict(params)
    if clip is not None:
        request["clip"] = clip if isinstance(clip, dict) else clip.to_clip()
    if beyond_viewport:
        request["captureBeyondViewport"] = True

    response = await session.send_command(method, request)
    data = response.get("data")
    if not isinstance(data, str) or not data:
        raise CommandFailedError(method, "no image data returned")
    return Screenshot(data=data, mime_type=SCREENSHOT_FORMATS[request["format"]])


def build_expression(script: str, args: list[Any] | None = None) -> str:
    """Inline JSON-encoded args as a call of ``script``."""
    if not args:
        return script
    try:
        encoded = ", ".join(json.dumps(arg, allow_nan=False) for arg in args)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"Script arguments must be JSON-serializable: {exc}") from exc
    return f"({script})({encoded})"


async def evaluate(session: ProtocolSession, script: str, args: list[Any] | None = None) -> Any:
    """Evaluate in the page; promises are awaited, results returned by value."""
    method = "Runtime.evaluate"
    expression = build_expression(script, args)
    response = await session.send_command(
        method,
        {"expression": expression, "returnByValue": True, "awaitPromise": True},
    )

    details = response.get("exceptionDetails")
    if isinstance(details, dict):
        raise ScriptEvaluationError(exception_description(details), method=method)

    result = response.get("result")
    if not isinstance(result, dict):
        return None
    if result.get("type") == "undefined" or result.get("subtype") == "null":
        return None
    if "value" in result:
        return result["value"]
    # Non-serializable results (DOM nodes, functions) come back by description only.
    return result.get("unserializableValue") or result.get("description")


__all__ = [
    "DEFAULT_QUALITY",
    "SCREENSHOT_FORMATS",
    "Screenshot",
    "build_expression",
    "evaluate",
    "full_page_clip",
    "screenshot_params",
    "take_screenshot",
]
