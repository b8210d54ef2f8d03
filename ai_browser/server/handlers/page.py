"""
Page tool handlers - snapshot, screenshot, script evaluation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...errors import InvalidArgumentError
from ..types import ToolResult

if TYPE_CHECKING:
    from ...context import BrowserContext


async def handle_browser_snapshot(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    snapshot = await context.create_snapshot(verbose=bool(args.get("verbose", False)))
    text = snapshot.format(verbose=bool(args.get("verbose", False)))

    file_path = args.get("file_path")
    if file_path:
        target = Path(str(file_path)).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        return ToolResult.text(f"Saved snapshot ({len(snapshot)} nodes) to {target}")
    return ToolResult.text(text)


async def handle_browser_screenshot(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = args.get("uid")
    full_page = bool(args.get("full_page", False))
    if uid and full_page:
        raise InvalidArgumentError("Providing both 'uid' and 'full_page' is not allowed")

    screenshot = await context.capture_screenshot(
        format=str(args.get("format", "png")),
        quality=args.get("quality"),
        full_page=full_page,
        element_uid=str(uid) if uid else None,
    )

    if uid:
        what = f"element {uid}"
    elif full_page:
        what = "full page"
    else:
        what = "current viewport"

    file_path = args.get("file_path")
    if file_path:
        saved = screenshot.save(str(file_path))
        width, height = screenshot.dimensions()
        return ToolResult.text(f"Saved screenshot of the {what} ({width}x{height}) to {saved}")
    return ToolResult.with_image(f"Screenshot of the {what}.", screenshot.data, screenshot.mime_type)


async def handle_browser_evaluate(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    script = args.get("function") or args.get("script")
    if not script:
        raise InvalidArgumentError("'function' is required")
    call_args = args.get("args")
    if call_args is not None and not isinstance(call_args, list):
        raise InvalidArgumentError("'args' must be a list")

    result = await context.evaluate_script(str(script), call_args)
    return ToolResult.json({"result": result})


PAGE_HANDLERS: dict[str, tuple] = {
    "browser_snapshot": (handle_browser_snapshot, True),
    "browser_screenshot": (handle_browser_screenshot, True),
    "browser_evaluate": (handle_browser_evaluate, True),
}
