"""
Input tool handlers - click, hover, fill, forms, select, drag, upload, keyboard.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...errors import InvalidArgumentError
from ..types import ToolResult, required_str

if TYPE_CHECKING:
    from ...context import BrowserContext


async def handle_browser_click(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = required_str(args, "uid")
    dbl_click = bool(args.get("dbl_click", False))
    await context.click(uid, dbl_click=dbl_click)
    action = "double clicked" if dbl_click else "clicked"
    return ToolResult.text(f"Successfully {action} on the element {uid}")


async def handle_browser_hover(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = required_str(args, "uid")
    await context.hover(uid)
    return ToolResult.text(f"Successfully hovered over the element {uid}")


async def handle_browser_fill(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = required_str(args, "uid")
    await context.fill_form_element(uid, required_str(args, "value"))
    return ToolResult.text(f"Successfully filled out the element {uid}")


async def handle_browser_fill_form(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    elements = args.get("elements")
    if not isinstance(elements, list) or not elements:
        raise InvalidArgumentError("'elements' must be a non-empty list of {uid, value}")
    pairs = []
    for item in elements:
        if not isinstance(item, dict):
            raise InvalidArgumentError("Each element must be an object with 'uid' and 'value'")
        pairs.append((required_str(item, "uid"), required_str(item, "value")))

    failures = await context.fill_form(pairs)
    if not failures:
        return ToolResult.text("Successfully filled out the form")

    errors = {uid: exc.message for uid, exc in failures.items()}
    if len(failures) == len(pairs):
        return ToolResult.error(
            "Failed to fill out the form",
            kind=next(iter(failures.values())).kind,
            tool="browser_fill_form",
            details={"errors": errors},
        )
    lines = "\n".join(f"{uid}: {message}" for uid, message in errors.items())
    result = ToolResult.text(f"Partially filled out the form.\n\nErrors:\n{lines}")
    result.data = {"filled": [uid for uid, _ in pairs if uid not in failures], "errors": errors}
    return result


async def handle_browser_select_option(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = required_str(args, "uid")
    value = required_str(args, "value")
    selected = await context.select_option(uid, value)
    return ToolResult.json({"uid": uid, "option": value, "value": selected})


async def handle_browser_drag(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    from_uid = required_str(args, "from_uid")
    to_uid = required_str(args, "to_uid")
    await context.drag(from_uid, to_uid)
    return ToolResult.text(f"Successfully dragged {from_uid} onto {to_uid}")


async def handle_browser_upload_file(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    uid = required_str(args, "uid")
    file_paths = args.get("file_paths")
    if file_paths is None:
        file_paths = [required_str(args, "file_path")]
    elif isinstance(file_paths, str):
        file_paths = [file_paths]
    elif not isinstance(file_paths, list):
        raise InvalidArgumentError("'file_paths' must be a list of paths")

    uploaded = await context.upload_file(uid, [str(p) for p in file_paths])
    result = ToolResult.text(f"Uploaded {len(uploaded)} file(s) to the element {uid}")
    result.data = {"uid": uid, "uploaded": uploaded}
    return result


async def handle_browser_press_key(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    key = required_str(args, "key")
    await context.press_key(key)
    return ToolResult.text(f"Successfully pressed key: {key}")


async def handle_browser_type(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    text = required_str(args, "text")
    await context.type_text(text)
    return ToolResult.text(f"Typed {len(text)} character(s)")


INPUT_HANDLERS: dict[str, tuple] = {
    "browser_click": (handle_browser_click, True),
    "browser_hover": (handle_browser_hover, True),
    "browser_fill": (handle_browser_fill, True),
    "browser_fill_form": (handle_browser_fill_form, True),
    "browser_select_option": (handle_browser_select_option, True),
    "browser_drag": (handle_browser_drag, True),
    "browser_upload_file": (handle_browser_upload_file, True),
    "browser_press_key": (handle_browser_press_key, True),
    "browser_type": (handle_browser_type, True),
}
