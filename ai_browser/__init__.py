"""
AI browser automation context over the Chrome DevTools Protocol.

Snapshot-driven element interaction, network/console monitoring, dialog
handling, screenshots, script evaluation and waits for one active view.
"""

from .capture import Screenshot
from .config import BrowserContextConfig
from .context import BrowserContext
from .errors import (
    BrowserContextError,
    CommandFailedError,
    ElementNotFoundError,
    InvalidArgumentError,
    NoActiveViewError,
    OptionNotFoundError,
    ScriptEvaluationError,
    WaitTimeoutError,
)
from .monitors import ConsoleMessage, DialogInfo, NetworkRequest
from .session import ProtocolSession
from .snapshot import AccessibilityNode, AccessibilitySnapshot
from .views import DevToolsViewManager, ViewManager, ViewMetadata

__version__ = "0.1.0"

__all__ = [
    "AccessibilityNode",
    "AccessibilitySnapshot",
    "BrowserContext",
    "BrowserContextConfig",
    "BrowserContextError",
    "CommandFailedError",
    "ConsoleMessage",
    "DevToolsViewManager",
    "DialogInfo",
    "ElementNotFoundError",
    "InvalidArgumentError",
    "NetworkRequest",
    "NoActiveViewError",
    "OptionNotFoundError",
    "ProtocolSession",
    "Screenshot",
    "ScriptEvaluationError",
    "ViewManager",
    "ViewMetadata",
    "WaitTimeoutError",
]
