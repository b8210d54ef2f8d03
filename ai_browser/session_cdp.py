"""Raw CDP transport.

- CdpConnection: async WebSocket connection to one DevTools page target.
- DevToolsTarget: debuggable-target handle (attach/detach/send/listeners) built on it.

The context only depends on the debuggable-target surface, so any other CDP
transport (pipe, embedded debugger bridge) can stand in for DevToolsTarget.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import suppress
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import CommandFailedError

logger = logging.getLogger("ai_browser.cdp")

EventSink = Callable[[str, dict[str, Any]], None]


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        message = str(error.get("message") or "unknown CDP error")
        data = error.get("data")
        if data:
            message = f"{message} ({data})"
        return message
    return str(error)


class CdpConnection:
    """Low-level CDP WebSocket connection.

    A single reader task demultiplexes incoming frames: responses resolve the
    future registered under their id, events go to the event sink in arrival
    order.
    """

    def __init__(self, ws_url: str, timeout: float = 10.0):
        self.ws_url = ws_url
        self.timeout = timeout
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._next_id = 1
        self._pending: dict[int, tuple[str, asyncio.Future[dict[str, Any]]]] = {}
        self._event_sink: EventSink | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._reader is not None and not self._reader.done()

    def set_event_sink(self, sink: EventSink | None) -> None:
        """Attach the callback that receives every CDP event (method, params)."""
        self._event_sink = sink

    async def open(self) -> None:
        if self.is_open:
            return
        try:
            self._ws = await connect(
                self.ws_url,
                max_size=None,
                ping_interval=None,
                open_timeout=self.timeout,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise CommandFailedError("connect", f"cannot open {self.ws_url}: {exc}") from exc
        self._reader = asyncio.get_running_loop().create_task(self._read_loop(self._ws))
        logger.debug("CDP connection opened: %s", self.ws_url)

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for its response."""
        ws = self._ws
        if ws is None or not self.is_open:
            raise CommandFailedError(method, "CDP connection is not open")

        msg_id = self._next_id
        self._next_id += 1
        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = (method, future)
        try:
            await ws.send(json.dumps(msg))
            data = await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            raise CommandFailedError(method, "CDP response timed out") from None
        except ConnectionClosed as exc:
            raise CommandFailedError(method, f"connection closed ({exc})") from exc
        finally:
            self._pending.pop(msg_id, None)

        if "error" in data:
            raise CommandFailedError(method, _error_message(data["error"]))
        result = data.get("result")
        return result if isinstance(result, dict) else {}

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if ws is not None:
            with suppress(WebSocketException, OSError):
                await ws.close()
        if reader is not None and not reader.done():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
        self._fail_pending("CDP connection closed")

    async def _read_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if not isinstance(data, dict):
                    continue

                msg_id = data.get("id")
                if isinstance(msg_id, int):
                    entry = self._pending.get(msg_id)
                    if entry is not None and not entry[1].done():
                        entry[1].set_result(data)
                    continue

                method = data.get("method")
                if isinstance(method, str):
                    params = data.get("params")
                    self._emit(method, params if isinstance(params, dict) else {})
        except ConnectionClosed as exc:
            logger.debug("CDP connection closed by peer: %s (%s)", self.ws_url, exc)
        finally:
            self._fail_pending("CDP connection closed")

    def _emit(self, method: str, params: dict[str, Any]) -> None:
        sink = self._event_sink
        if sink is None:
            return
        try:
            sink(method, params)
        except Exception:
            # A broken consumer must not take the reader task down with it.
            logger.exception("CDP event sink failed for %s", method)

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for method, future in pending.values():
            if not future.done():
                future.set_exception(CommandFailedError(method, reason))


class DevToolsTarget:
    """Debuggable target for a DevTools page (``webSocketDebuggerUrl``)."""

    def __init__(self, target_id: str, ws_url: str, *, timeout: float = 10.0):
        self.target_id = target_id
        self.ws_url = ws_url
        self.timeout = timeout
        self._conn: CdpConnection | None = None
        self._listeners: list[EventSink] = []

    def is_attached(self) -> bool:
        return self._conn is not None and self._conn.is_open

    async def attach(self) -> None:
        if self.is_attached():
            return
        conn = CdpConnection(self.ws_url, timeout=self.timeout)
        conn.set_event_sink(self._emit)
        await conn.open()
        self._conn = conn

    async def detach(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def send_command(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        conn = self._conn
        if conn is None or not conn.is_open:
            raise CommandFailedError(method, f"target {self.target_id} is not attached")
        return await conn.send(method, params)

    def add_listener(self, listener: EventSink) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventSink) -> None:
        with suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, method: str, params: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            listener(method, params)


__all__ = ["CdpConnection", "DevToolsTarget", "EventSink"]
