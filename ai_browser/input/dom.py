"""
DOM helpers keyed by backend node id.

Provides:
- get_box: element box from DOM.getBoxModel
- scroll_into_view: center the element in the viewport
- focus_node: DOM.focus
- resolve_object / call_function_on: run a function with ``this`` bound to a node
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import CommandFailedError, ScriptEvaluationError
from .mouse import BoundingBox

if TYPE_CHECKING:
    from ..session import ProtocolSession

SCROLL_INTO_VIEW_JS = """function() {
  this.scrollIntoView({ behavior: 'instant', block: 'center', inline: 'center' });
}"""


async def get_box(session: ProtocolSession, backend_node_id: int) -> BoundingBox:
    method = "DOM.getBoxModel"
    response = await session.send_command(method, {"backendNodeId": backend_node_id})
    model = response.get("model")
    quad = model.get("content") if isinstance(model, dict) else None
    if not isinstance(quad, list) or len(quad) < 8:
        raise CommandFailedError(method, f"no box model for node {backend_node_id} (element not rendered?)")
    return BoundingBox.from_quad(quad)


async def resolve_object(session: ProtocolSession, backend_node_id: int) -> str:
    method = "DOM.resolveNode"
    response = await session.send_command(method, {"backendNodeId": backend_node_id})
    remote = response.get("object")
    object_id = remote.get("objectId") if isinstance(remote, dict) else None
    if not isinstance(object_id, str) or not object_id:
        raise CommandFailedError(method, f"node {backend_node_id} could not be resolved")
    return object_id


async def call_function_on(
    session: ProtocolSession,
    object_id: str,
    declaration: str,
    *args: Any,
    return_by_value: bool = True,
) -> Any:
    """Call ``declaration`` with ``this`` bound to the remote object."""
    method = "Runtime.callFunctionOn"
    params: dict[str, Any] = {
        "objectId": object_id,
        "functionDeclaration": declaration,
        "returnByValue": return_by_value,
        "awaitPromise": True,
    }
    if args:
        params["arguments"] = [{"value": arg} for arg in args]
    response = await session.send_command(method, params)

    details = response.get("exceptionDetails")
    if isinstance(details, dict):
        raise ScriptEvaluationError(exception_description(details), method=method)

    result = response.get("result")
    if not isinstance(result, dict):
        return None
    return result.get("value")


async def scroll_into_view(session: ProtocolSession, backend_node_id: int) -> None:
    object_id = await resolve_object(session, backend_node_id)
    await call_function_on(session, object_id, SCROLL_INTO_VIEW_JS, return_by_value=False)


async def focus_node(session: ProtocolSession, backend_node_id: int) -> None:
    await session.send_command("DOM.focus", {"backendNodeId": backend_node_id})


def exception_description(details: dict[str, Any]) -> str:
    """Best description the page gave for a thrown/rejected evaluation."""
    exception = details.get("exception")
    if isinstance(exception, dict):
        description = exception.get("description")
        if description:
            return str(description)
        if "value" in exception and exception["value"] is not None:
            return str(exception["value"])
    text = details.get("text")
    if text:
        return str(text)
    return "Script execution failed"


__all__ = [
    "SCROLL_INTO_VIEW_JS",
    "call_function_on",
    "exception_description",
    "focus_node",
    "get_box",
    "resolve_object",
    "scroll_into_view",
]
