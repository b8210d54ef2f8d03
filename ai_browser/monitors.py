"""
Network, console and dialog monitors.

Each monitor owns a bounded, queryable history fed by typed events from
``events.py``. Monitors never talk to the protocol themselves; the context
enables domains and routes events to them.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .events import ConsoleApiCalled, DialogOpening, LoadingFailed, RequestWillBeSent, ResponseReceived

DEFAULT_CONSOLE_LIMIT = 1000


@dataclass
class RequestTiming:
    request_time: float
    response_time: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"requestTime": self.request_time, "responseTime": self.response_time, "duration": self.duration}


@dataclass
class NetworkRequest:
    id: str
    url: str
    method: str
    resource_type: str
    request_headers: dict[str, str] = field(default_factory=dict)
    request_body: str | None = None
    status: int | None = None
    status_text: str | None = None
    response_headers: dict[str, str] | None = None
    mime_type: str | None = None
    timing: RequestTiming | None = None
    error: str | None = None

    @property
    def pending(self) -> bool:
        return self.status is None and self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "method": self.method,
            "resourceType": self.resource_type,
            "requestHeaders": dict(self.request_headers),
        }
        if self.request_body is not None:
            out["requestBody"] = self.request_body
        if self.status is not None:
            out["status"] = self.status
            out["statusText"] = self.status_text or ""
        if self.response_headers is not None:
            out["responseHeaders"] = dict(self.response_headers)
        if self.mime_type is not None:
            out["mimeType"] = self.mime_type
        if self.timing is not None:
            out["timing"] = self.timing.to_dict()
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class ConsoleMessage:
    id: str
    type: str
    text: str
    timestamp: float
    args: list[Any] = field(default_factory=list)
    url: str | None = None
    line_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "timestamp": self.timestamp,
            "args": list(self.args),
        }
        if self.url:
            out["url"] = self.url
        if self.line_number is not None:
            out["lineNumber"] = self.line_number
        return out


@dataclass(frozen=True)
class DialogInfo:
    type: str
    message: str
    default_prompt: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.default_prompt is not None:
            out["defaultPrompt"] = self.default_prompt
        return out


class NetworkMonitor:
    """Request history keyed by CDP request id, exposed by ``req_<n>`` ids."""

    domain = "Network"

    def __init__(self) -> None:
        self.enabled = False
        self._requests: dict[str, NetworkRequest] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._requests)

    def on_request(self, event: RequestWillBeSent) -> NetworkRequest:
        self._counter += 1
        record = NetworkRequest(
            id=f"req_{self._counter}",
            url=event.url,
            method=event.method,
            resource_type=event.resource_type,
            request_headers=dict(event.headers),
            request_body=event.post_data,
            timing=RequestTiming(request_time=event.received_at),
        )
        # Redirects reuse the CDP request id; the newest hop replaces the older record.
        self._requests[event.request_id] = record
        return record

    def on_response(self, event: ResponseReceived) -> NetworkRequest | None:
        record = self._requests.get(event.request_id)
        if record is None:
            return None
        record.status = event.status
        record.status_text = event.status_text
        record.response_headers = dict(event.headers)
        record.mime_type = event.mime_type
        if record.timing is not None:
            record.timing.response_time = event.received_at
            record.timing.duration = max(0.0, event.received_at - record.timing.request_time)
        return record

    def on_failure(self, event: LoadingFailed) -> NetworkRequest | None:
        record = self._requests.get(event.request_id)
        if record is None:
            return None
        record.error = event.error_text
        return record

    def requests(self) -> list[NetworkRequest]:
        return list(self._requests.values())

    def get(self, request_id: str) -> NetworkRequest | None:
        key = request_id if request_id.startswith("req_") else f"req_{request_id}"
        for record in self._requests.values():
            if record.id == key:
                return record
        return None

    def clear(self) -> None:
        # The sequence keeps counting so ids stay unique for the binding.
        self._requests.clear()

    def reset(self) -> None:
        self._requests.clear()
        self._counter = 0
        self.enabled = False


def render_console_arg(arg: dict[str, Any]) -> str:
    """Render a Runtime.RemoteObject the way console text shows it."""
    if "value" in arg:
        value = arg["value"]
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return str(value)
    if arg.get("unserializableValue"):
        return str(arg["unserializableValue"])
    if arg.get("description"):
        return str(arg["description"])
    if arg.get("type") == "undefined":
        return "undefined"
    return "[Object]"


class ConsoleMonitor:
    """Ring buffer of console messages (oldest evicted first)."""

    domain = "Runtime"

    def __init__(self, limit: int = DEFAULT_CONSOLE_LIMIT) -> None:
        self.enabled = False
        self.limit = max(1, int(limit))
        self._messages: deque[ConsoleMessage] = deque(maxlen=self.limit)
        self._counter = 0

    def __len__(self) -> int:
        return len(self._messages)

    def on_console(self, event: ConsoleApiCalled) -> ConsoleMessage:
        self._counter += 1
        message = ConsoleMessage(
            id=f"msg_{self._counter}",
            type=event.type,
            text=" ".join(render_console_arg(arg) for arg in event.args),
            timestamp=event.received_at,
            args=[arg.get("value") for arg in event.args],
            url=event.url,
            line_number=event.line_number,
        )
        self._messages.append(message)
        return message

    def messages(self) -> list[ConsoleMessage]:
        return list(self._messages)

    def get(self, message_id: str) -> ConsoleMessage | None:
        key = message_id if message_id.startswith("msg_") else f"msg_{message_id}"
        for message in self._messages:
            if message.id == key:
                return message
        return None

    def clear(self) -> None:
        self._messages.clear()

    def reset(self) -> None:
        self._messages.clear()
        self._counter = 0
        self.enabled = False


class DialogMonitor:
    """Single pending-dialog slot; a newer dialog overwrites the older record."""

    domain = "Page"

    def __init__(self) -> None:
        self.enabled = False
        self.pending: DialogInfo | None = None

    def on_dialog(self, event: DialogOpening) -> DialogInfo:
        self.pending = DialogInfo(type=event.type, message=event.message, default_prompt=event.default_prompt)
        return self.pending

    def clear(self) -> None:
        self.pending = None

    def reset(self) -> None:
        self.pending = None
        self.enabled = False


__all__ = [
    "ConsoleMessage",
    "ConsoleMonitor",
    "DEFAULT_CONSOLE_LIMIT",
    "DialogInfo",
    "DialogMonitor",
    "NetworkMonitor",
    "NetworkRequest",
    "RequestTiming",
    "render_console_arg",
]
