"""
Tool handlers organized by domain.

All handlers follow the signature: async (context, arguments) -> ToolResult
"""

from .input import INPUT_HANDLERS
from .monitoring import MONITORING_HANDLERS
from .navigation import NAVIGATION_HANDLERS
from .page import PAGE_HANDLERS

# Aggregate all handlers
ALL_HANDLERS: dict[str, tuple] = {
    **NAVIGATION_HANDLERS,
    **PAGE_HANDLERS,
    **INPUT_HANDLERS,
    **MONITORING_HANDLERS,
}

__all__ = [
    "ALL_HANDLERS",
    "INPUT_HANDLERS",
    "MONITORING_HANDLERS",
    "NAVIGATION_HANDLERS",
    "PAGE_HANDLERS",
]
