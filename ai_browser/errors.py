"""
Error taxonomy for the browser automation context.

Every failure that crosses the context boundary is a BrowserContextError
subclass with a stable ``kind`` so the tool dispatch layer can turn it into a
structured result without inspecting messages.
"""

from __future__ import annotations

from typing import Any


class BrowserContextError(Exception):
    """Base class for structured context failures."""

    kind = "error"
    suggestion = ""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": True, "kind": self.kind, "message": self.message}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        if self.details:
            payload["details"] = self.details
        return payload


class NoActiveViewError(BrowserContextError):
    kind = "no_active_view"
    suggestion = "Select a page first (browser_list_pages / browser_select_page)"

    def __init__(self, message: str = "No active browser view", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ElementNotFoundError(BrowserContextError):
    kind = "element_not_found"
    suggestion = "Take a fresh snapshot and retry with a uid from it"


class OptionNotFoundError(ElementNotFoundError):
    suggestion = "Check the option texts listed under the combobox in the latest snapshot"


class CommandFailedError(BrowserContextError):
    """A CDP round-trip was rejected, errored or could not be sent."""

    kind = "command_failed"

    def __init__(self, method: str, message: str, **kwargs: Any) -> None:
        super().__init__(f"{method} failed: {message}", **kwargs)
        self.method = method
        self.reason = message


class ScriptEvaluationError(CommandFailedError):
    """The page threw (or rejected) while evaluating a script.

    The message is the page's own exception description, not a generic one.
    """

    def __init__(self, description: str, *, method: str = "Runtime.evaluate", **kwargs: Any) -> None:
        BrowserContextError.__init__(self, description, **kwargs)
        self.method = method
        self.reason = description


class WaitTimeoutError(BrowserContextError):
    kind = "timeout"
    suggestion = "Increase the timeout or check the condition against a fresh snapshot"


class InvalidArgumentError(BrowserContextError):
    kind = "invalid_argument"


__all__ = [
    "BrowserContextError",
    "CommandFailedError",
    "ElementNotFoundError",
    "InvalidArgumentError",
    "NoActiveViewError",
    "OptionNotFoundError",
    "ScriptEvaluationError",
    "WaitTimeoutError",
]
