"""
Tool registry: async dispatch from tool name to handler.

Every dispatch returns a ToolResult. Context errors become structured
failures; anything unexpected is logged with its traceback and reported as
an ``internal`` failure instead of escaping to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import BrowserContextError, NoActiveViewError
from .types import HandlerFunc, ToolResult

if TYPE_CHECKING:
    from ..context import BrowserContext

logger = logging.getLogger("ai_browser.server.registry")


class ToolRegistry:
    """Registry for tool handlers."""

    def __init__(self) -> None:
        # name -> (handler, requires_view)
        self._handlers: dict[str, tuple[HandlerFunc, bool]] = {}

    def register(self, name: str, handler: HandlerFunc, requires_view: bool = True) -> None:
        self._handlers[name] = (handler, requires_view)

    def register_many(self, handlers: dict[str, tuple[HandlerFunc, bool]]) -> None:
        self._handlers.update(handlers)

    def get(self, name: str) -> tuple[HandlerFunc, bool] | None:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers

    async def dispatch(self, name: str, context: BrowserContext, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Dispatch a tool call; never raises."""
        handler_info = self._handlers.get(name)
        if handler_info is None:
            return ToolResult.error(
                f"Unknown tool: {name}",
                kind="unknown_tool",
                tool=name,
                details={"available": sorted(self._handlers)},
            )

        handler, requires_view = handler_info
        try:
            if requires_view and context.active_view_id is None:
                raise NoActiveViewError()
            return await handler(context, dict(arguments or {}))
        except BrowserContextError as exc:
            logger.debug("Tool %s failed (%s): %s", name, exc.kind, exc.message)
            return ToolResult.from_exception(exc, tool=name)
        except Exception as exc:
            logger.exception("Tool %s raised unexpectedly", name)
            return ToolResult.error(f"{type(exc).__name__}: {exc}", kind="internal", tool=name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers.keys())

    def __len__(self) -> int:
        return len(self._handlers)


def create_default_registry() -> ToolRegistry:
    """Create registry with all default handlers."""
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    logger.info("Registered %d tool handlers", len(registry))
    return registry


__all__ = ["ToolRegistry", "create_default_registry"]
