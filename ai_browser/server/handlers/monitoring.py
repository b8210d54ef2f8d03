"""
Monitoring tool handlers - network requests, console messages, dialogs.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from ...errors import ElementNotFoundError, InvalidArgumentError
from ..types import ToolResult, required_str

if TYPE_CHECKING:
    from ...context import BrowserContext


def paginate(items: list[Any], page_size: Any = None, page_idx: Any = None) -> tuple[list[Any], str | None]:
    """Slice ``items`` into a page; the hint tells how to fetch the next one."""
    if page_size is None:
        return items, None
    try:
        size = int(page_size)
        idx = int(page_idx or 0)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"Invalid pagination: {exc}") from exc
    if size <= 0 or idx < 0:
        raise InvalidArgumentError("page_size must be positive and page_idx non-negative")

    start = idx * size
    page = items[start : start + size]
    hint = f"Use page_idx={idx + 1} to see more." if start + len(page) < len(items) else None
    return page, hint


def _type_filter(values: Any) -> set[str] | None:
    if not values:
        return None
    if isinstance(values, str):
        values = [values]
    return {str(v).lower() for v in values}


async def handle_browser_network_requests(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    requests = context.get_network_requests()
    types = _type_filter(args.get("resource_types"))
    if types is not None:
        requests = [r for r in requests if r.resource_type.lower() in types]

    total = len(requests)
    page, hint = paginate(requests, args.get("page_size"), args.get("page_idx"))
    lines = [f"# Network requests ({total})"]
    for req in page:
        if req.error:
            status = f"FAILED ({req.error})"
        elif req.pending:
            status = "pending"
        else:
            status = str(req.status)
        lines.append(f"[reqid={req.id}] {req.method} {status} {req.resource_type}")
        lines.append(f"  {req.url}")
    if not page:
        lines.append("No requests found.")
    if hint:
        lines.append(hint)
    result = ToolResult.text("\n".join(lines))
    result.data = {"total": total, "requests": [r.to_dict() for r in page]}
    return result


async def handle_browser_network_request(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    reqid = required_str(args, "reqid")
    request = context.get_network_request(reqid)
    if request is None:
        raise ElementNotFoundError(f"Network request not found: {reqid}", details={"reqid": reqid})
    return ToolResult.json(request.to_dict())


async def handle_browser_console(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    messages = context.get_console_messages()
    types = _type_filter(args.get("types"))
    if types is not None:
        messages = [m for m in messages if m.type.lower() in types]

    total = len(messages)
    page, hint = paginate(messages, args.get("page_size"), args.get("page_idx"))
    lines = [f"# Console messages ({total})"]
    for msg in page:
        stamp = time.strftime("%H:%M:%S", time.localtime(msg.timestamp / 1000))
        lines.append(f"[msgid={msg.id}] {msg.type.upper()} ({stamp})")
        lines.append(f"  {msg.text}")
    if not page:
        lines.append("No console messages found.")
    if hint:
        lines.append(hint)
    result = ToolResult.text("\n".join(lines))
    result.data = {"total": total, "messages": [m.to_dict() for m in page]}
    return result


async def handle_browser_console_message(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    msgid = required_str(args, "msgid")
    message = context.get_console_message(msgid)
    if message is None:
        raise ElementNotFoundError(f"Console message not found: {msgid}", details={"msgid": msgid})
    return ToolResult.json(message.to_dict())


async def handle_browser_handle_dialog(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    action = str(args.get("action", "accept")).lower()
    if action not in ("accept", "dismiss"):
        raise InvalidArgumentError("action must be 'accept' or 'dismiss'")

    dialog = await context.handle_dialog(action == "accept", args.get("prompt_text"))
    if dialog is None:
        return ToolResult.text(f"No pending dialog was recorded; sent {action} anyway.")
    return ToolResult.json({"action": action, "dialog": dialog.to_dict()})


MONITORING_HANDLERS: dict[str, tuple] = {
    "browser_network_requests": (handle_browser_network_requests, True),
    "browser_network_request": (handle_browser_network_request, True),
    "browser_console": (handle_browser_console, True),
    "browser_console_message": (handle_browser_console_message, True),
    "browser_handle_dialog": (handle_browser_handle_dialog, True),
}
