"""
Typed CDP events consumed by the monitors.

Raw ``(method, params)`` pairs are decoded exactly once, at the protocol
boundary, into one of a closed set of frozen dataclasses. Everything past
``decode_event`` works with these types instead of method-name strings.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union


def _now_ms() -> float:
    return time.time() * 1000


def _str_dict(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in raw.items()}


@dataclass(frozen=True, slots=True)
class RequestWillBeSent:
    request_id: str
    url: str
    method: str
    resource_type: str
    headers: dict[str, str] = field(default_factory=dict)
    post_data: str | None = None
    received_at: float = field(default_factory=_now_ms)


@dataclass(frozen=True, slots=True)
class ResponseReceived:
    request_id: str
    status: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    mime_type: str | None = None
    received_at: float = field(default_factory=_now_ms)


@dataclass(frozen=True, slots=True)
class LoadingFailed:
    request_id: str
    error_text: str


@dataclass(frozen=True, slots=True)
class ConsoleApiCalled:
    type: str
    args: tuple[dict[str, Any], ...]
    url: str | None = None
    line_number: int | None = None
    received_at: float = field(default_factory=_now_ms)


@dataclass(frozen=True, slots=True)
class DialogOpening:
    type: str
    message: str
    default_prompt: str | None = None


CdpEvent = Union[RequestWillBeSent, ResponseReceived, LoadingFailed, ConsoleApiCalled, DialogOpening]


def _decode_request(params: dict[str, Any]) -> RequestWillBeSent:
    request = params.get("request") if isinstance(params.get("request"), dict) else {}
    post_data = request.get("postData")
    return RequestWillBeSent(
        request_id=str(params.get("requestId") or ""),
        url=str(request.get("url") or ""),
        method=str(request.get("method") or "GET"),
        resource_type=str(params.get("type") or "Other"),
        headers=_str_dict(request.get("headers")),
        post_data=post_data if isinstance(post_data, str) else None,
    )


def _decode_response(params: dict[str, Any]) -> ResponseReceived:
    response = params.get("response") if isinstance(params.get("response"), dict) else {}
    try:
        status = int(response.get("status") or 0)
    except (TypeError, ValueError):
        status = 0
    mime_type = response.get("mimeType")
    return ResponseReceived(
        request_id=str(params.get("requestId") or ""),
        status=status,
        status_text=str(response.get("statusText") or ""),
        headers=_str_dict(response.get("headers")),
        mime_type=mime_type if isinstance(mime_type, str) else None,
    )


def _decode_failure(params: dict[str, Any]) -> LoadingFailed:
    return LoadingFailed(
        request_id=str(params.get("requestId") or ""),
        error_text=str(params.get("errorText") or "unknown error"),
    )


def _decode_console(params: dict[str, Any]) -> ConsoleApiCalled:
    raw_args = params.get("args")
    args = tuple(a for a in raw_args if isinstance(a, dict)) if isinstance(raw_args, list) else ()

    url: str | None = None
    line_number: int | None = None
    stack = params.get("stackTrace")
    frames = stack.get("callFrames") if isinstance(stack, dict) else None
    if isinstance(frames, list) and frames and isinstance(frames[0], dict):
        top = frames[0]
        url = str(top.get("url") or "") or None
        if isinstance(top.get("lineNumber"), int):
            line_number = top["lineNumber"]

    return ConsoleApiCalled(type=str(params.get("type") or "log"), args=args, url=url, line_number=line_number)


def _decode_dialog(params: dict[str, Any]) -> DialogOpening:
    default_prompt = params.get("defaultPrompt")
    return DialogOpening(
        type=str(params.get("type") or "alert"),
        message=str(params.get("message") or ""),
        default_prompt=default_prompt if isinstance(default_prompt, str) else None,
    )


_DECODERS: dict[str, Callable[[dict[str, Any]], CdpEvent]] = {
    "Network.requestWillBeSent": _decode_request,
    "Network.responseReceived": _decode_response,
    "Network.loadingFailed": _decode_failure,
    "Runtime.consoleAPICalled": _decode_console,
    "Page.javascriptDialogOpening": _decode_dialog,
}

MONITORED_EVENTS = frozenset(_DECODERS)


def decode_event(method: str, params: dict[str, Any] | None) -> CdpEvent | None:
    """Decode a raw CDP event; events nobody monitors decode to None."""
    decoder = _DECODERS.get(method)
    if decoder is None:
        return None
    return decoder(params if isinstance(params, dict) else {})


__all__ = [
    "CdpEvent",
    "ConsoleApiCalled",
    "DialogOpening",
    "LoadingFailed",
    "MONITORED_EVENTS",
    "RequestWillBeSent",
    "ResponseReceived",
    "decode_event",
]
