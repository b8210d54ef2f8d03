from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from fakes import FakeTarget

from ai_browser import session_cdp
from ai_browser.errors import CommandFailedError
from ai_browser.session import ProtocolSession, run_teardown
from ai_browser.session_cdp import DevToolsTarget


def test_attach_is_idempotent() -> None:
    target = FakeTarget()
    session = ProtocolSession(target, "v1")

    async def run() -> None:
        await session.attach()
        await session.attach()

    asyncio.run(run())
    assert target.attach_count == 1
    assert session.is_attached()


def test_attach_failure_names_the_view() -> None:
    class BrokenTarget(FakeTarget):
        async def attach(self) -> None:
            raise OSError("connection refused")

    session = ProtocolSession(BrokenTarget(), "v9")
    with pytest.raises(CommandFailedError, match="v9"):
        asyncio.run(session.attach())


def test_send_requires_attachment() -> None:
    target = FakeTarget()
    session = ProtocolSession(target, "v1")

    with pytest.raises(CommandFailedError) as exc:
        asyncio.run(session.send_command("DOM.focus", {"backendNodeId": 1}))

    assert exc.value.method == "DOM.focus"
    assert "DOM.focus" in str(exc.value)
    assert target.calls == []


def test_send_failures_carry_method_name() -> None:
    target = FakeTarget({"DOM.getBoxModel": RuntimeError("Could not compute box model.")})
    session = ProtocolSession(target, "v1")

    async def run() -> None:
        await session.attach()
        await session.send_command("DOM.getBoxModel", {"backendNodeId": 3})

    with pytest.raises(CommandFailedError) as exc:
        asyncio.run(run())
    assert str(exc.value) == "DOM.getBoxModel failed: Could not compute box model."


def test_domains_are_enabled_once_per_attachment() -> None:
    target = FakeTarget()
    session = ProtocolSession(target, "v1")

    async def run() -> list[bool]:
        await session.attach()
        return [await session.enable_domain("Network"), await session.enable_domain("Network")]

    assert asyncio.run(run()) == [True, False]
    assert target.methods() == ["Network.enable"]
    assert session.is_domain_enabled("Network")


def test_single_event_router() -> None:
    target = FakeTarget()
    session = ProtocolSession(target, "v1")
    seen: list[str] = []

    def first(method: str, params: dict[str, Any]) -> None:
        seen.append(f"first:{method}")

    def second(method: str, params: dict[str, Any]) -> None:
        seen.append(f"second:{method}")

    session.set_event_router(first)
    session.set_event_router(first)
    assert target.listeners == [first]

    session.set_event_router(second)
    target.emit("Page.loadEventFired", {})
    assert target.listeners == [second]
    assert seen == ["second:Page.loadEventFired"]


def test_detach_never_raises_and_is_repeatable() -> None:
    class GoneTarget(FakeTarget):
        async def detach(self) -> None:
            self.detach_count += 1
            raise RuntimeError("target closed")

    target = GoneTarget({"Network.disable": RuntimeError("target closed")})
    session = ProtocolSession(target, "v1")

    async def run() -> None:
        await session.attach()
        await session.enable_domain("Network")
        await session.enable_domain("Runtime")
        session.set_event_router(lambda m, p: None)
        await session.detach()
        await session.detach()

    asyncio.run(run())
    assert target.listeners == []
    assert session.enabled_domains == ()
    # Runtime is still disabled after Network.disable failed.
    assert target.methods()[-2:] == ["Runtime.disable", "Network.disable"]


def test_run_teardown_keeps_going_after_failures() -> None:
    ran: list[str] = []

    def ok() -> None:
        ran.append("sync")

    async def boom() -> None:
        ran.append("boom")
        raise RuntimeError("boom")

    async def later() -> None:
        ran.append("async")

    failed = asyncio.run(run_teardown([("boom", boom), ("sync", ok), ("async", later)]))

    assert ran == ["boom", "sync", "async"]
    assert failed == ["boom"]


class FakeWebSocket:
    """Echoes commands; every reply is preceded by one event frame."""

    def __init__(self) -> None:
        self.frames: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []

    async def send(self, raw: str) -> None:
        msg = json.loads(raw)
        self.sent.append(msg)
        if msg["method"] == "Broken.method":
            reply: dict[str, Any] = {"id": msg["id"], "error": {"code": -32601, "message": "'Broken.method' wasn't found"}}
        else:
            reply = {"id": msg["id"], "result": {"echo": msg["method"]}}
        await self.frames.put(json.dumps({"method": "Test.event", "params": {"for": msg["method"]}}))
        await self.frames.put(json.dumps(reply))

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> str:
        frame = await self.frames.get()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def close(self) -> None:
        await self.frames.put(None)


def test_devtools_target_round_trip(monkeypatch: pytest.MonkeyPatch) -> None:
    sockets: list[FakeWebSocket] = []

    async def fake_connect(url: str, **kwargs: Any) -> FakeWebSocket:
        ws = FakeWebSocket()
        sockets.append(ws)
        return ws

    monkeypatch.setattr(session_cdp, "connect", fake_connect)
    events: list[tuple[str, dict[str, Any]]] = []
    target = DevToolsTarget("t1", "ws://127.0.0.1:9222/devtools/page/t1", timeout=2.0)
    target.add_listener(lambda method, params: events.append((method, params)))

    async def run() -> None:
        await target.attach()
        await target.attach()
        assert target.is_attached()

        assert await target.send_command("Page.enable") == {"echo": "Page.enable"}
        with pytest.raises(CommandFailedError, match="Broken.method failed: 'Broken.method' wasn't found"):
            await target.send_command("Broken.method", {"x": 1})

        await target.detach()
        assert not target.is_attached()
        with pytest.raises(CommandFailedError, match="not attached"):
            await target.send_command("Page.enable")

    asyncio.run(run())

    assert len(sockets) == 1
    assert [m["method"] for m in sockets[0].sent] == ["Page.enable", "Broken.method"]
    assert sockets[0].sent[1]["params"] == {"x": 1}
    assert events == [("Test.event", {"for": "Page.enable"}), ("Test.event", {"for": "Broken.method"})]


def test_connect_failure_is_a_command_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    async def refused(url: str, **kwargs: Any) -> None:
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(session_cdp, "connect", refused)
    target = DevToolsTarget("t1", "ws://127.0.0.1:1/devtools/page/t1")

    with pytest.raises(CommandFailedError, match="connect failed"):
        asyncio.run(target.attach())
    assert not target.is_attached()
