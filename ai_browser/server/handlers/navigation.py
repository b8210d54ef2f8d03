"""
Navigation tool handlers - page selection, navigation, history and waits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...errors import InvalidArgumentError, NoActiveViewError
from ..types import ToolResult, required_str

if TYPE_CHECKING:
    from ...context import BrowserContext


def _timeout_ms(args: dict[str, Any]) -> int | None:
    value = args.get("timeout_ms", args.get("timeout"))
    return None if value is None else int(value)


async def handle_browser_list_pages(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    views = await context.views.list_views()
    active = context.active_view_id
    pages = [{**view.to_dict(), "selected": view.view_id == active} for view in views]
    return ToolResult.json({"pages": pages, "activeViewId": active})


async def handle_browser_select_page(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    view_id = required_str(args, "page_id")
    metadata = await context.set_active_view(view_id)
    if metadata is None:
        raise NoActiveViewError(f"View {view_id!r} disappeared while selecting it")
    return ToolResult.json({"selected": metadata.to_dict()})


async def handle_browser_navigate(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    result = await context.navigate(
        required_str(args, "url"),
        wait_load=bool(args.get("wait_load", True)),
        timeout_ms=_timeout_ms(args),
    )
    return ToolResult.json(result)


async def handle_browser_reload(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    result = await context.reload(bool(args.get("ignore_cache", False)), timeout_ms=_timeout_ms(args))
    return ToolResult.json(result)


async def handle_browser_back(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(await context.go_back(timeout_ms=_timeout_ms(args)))


async def handle_browser_forward(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(await context.go_forward(timeout_ms=_timeout_ms(args)))


async def handle_browser_wait_for(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    text = args.get("text")
    selector = args.get("selector")
    if bool(text) == bool(selector):
        raise InvalidArgumentError("Provide exactly one of 'text' or 'selector'")

    timeout_ms = _timeout_ms(args)
    if text:
        await context.wait_for_text(str(text), timeout_ms)
        return ToolResult.text(f'Element with text "{text}" found.')
    await context.wait_for_element(str(selector), timeout_ms)
    return ToolResult.text(f'Element matching "{selector}" found.')


NAVIGATION_HANDLERS: dict[str, tuple] = {
    "browser_list_pages": (handle_browser_list_pages, False),
    "browser_select_page": (handle_browser_select_page, False),
    "browser_navigate": (handle_browser_navigate, True),
    "browser_reload": (handle_browser_reload, True),
    "browser_back": (handle_browser_back, True),
    "browser_forward": (handle_browser_forward, True),
    "browser_wait_for": (handle_browser_wait_for, True),
}
