"""
Browser automation context.

Owns the single active-view binding and every piece of per-binding state:
the latest accessibility snapshot, the network/console histories and the
pending dialog. All element operations resolve uids against the latest
snapshot before a single protocol command is sent.

Usage:
    async with BrowserContext(DevToolsViewManager()) as ctx:
        await ctx.set_active_view(view_id)
        snapshot = await ctx.create_snapshot()
        await ctx.click("s1e3")
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .capture import (
    Screenshot,
    build_expression,
    evaluate,
    full_page_clip,
    screenshot_params,
    take_screenshot,
)
from .config import BrowserContextConfig
from .errors import (
    BrowserContextError,
    CommandFailedError,
    ElementNotFoundError,
    InvalidArgumentError,
    NoActiveViewError,
    OptionNotFoundError,
    ScriptEvaluationError,
)
from .events import (
    CdpEvent,
    ConsoleApiCalled,
    DialogOpening,
    LoadingFailed,
    RequestWillBeSent,
    ResponseReceived,
    decode_event,
)
from .input.dom import call_function_on, focus_node, get_box, resolve_object, scroll_into_view
from .input.keyboard import KeySpec, insert_text, parse_key_spec, press, select_all_modifier
from .input.mouse import click_at, drag_between, move_to
from .monitors import (
    ConsoleMessage,
    ConsoleMonitor,
    DialogInfo,
    DialogMonitor,
    NetworkMonitor,
    NetworkRequest,
)
from .session import EventRouter, ProtocolSession, run_teardown
from .snapshot import OPTION_CONTAINER_ROLES, AccessibilityNode, AccessibilitySnapshot, capture_snapshot
from .views import ViewManager, ViewMetadata
from .wait import Clock, Sleep, poll_until, selector_probe

logger = logging.getLogger("ai_browser.context")

OPTION_VALUE_JS = "function() { return this.value; }"

SET_VALUE_JS = """function(value) {
  this.value = value;
  this.dispatchEvent(new Event('change', { bubbles: true }));
  this.dispatchEvent(new Event('input', { bubbles: true }));
}"""

READY_STATE_JS = "document.readyState === 'complete'"
PAGE_INFO_JS = "({ url: location.href, title: document.title })"

Monitor = NetworkMonitor | ConsoleMonitor | DialogMonitor


@dataclass
class Binding:
    """The active view and the protocol session attached to its target."""

    view_id: str
    session: ProtocolSession
    generation: int
    router: EventRouter | None = field(default=None, repr=False)


class BrowserContext:
    def __init__(
        self,
        views: ViewManager,
        config: BrowserContextConfig | None = None,
        *,
        platform: str | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.views = views
        self.config = config or BrowserContextConfig.from_env()
        self.platform = platform
        self._clock = clock
        self._sleep = sleep

        self._binding: Binding | None = None
        self._generation = 0
        self._snapshot_seq = 0
        self._snapshot: AccessibilitySnapshot | None = None

        self.network = NetworkMonitor()
        self.console = ConsoleMonitor(limit=self.config.console_history_limit)
        self.dialogs = DialogMonitor()

    async def __aenter__(self) -> BrowserContext:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ─────────────────────────────────────────────────────────────────────
    # Binding
    # ─────────────────────────────────────────────────────────────────────

    @property
    def active_view_id(self) -> str | None:
        return self._binding.view_id if self._binding is not None else None

    @property
    def session(self) -> ProtocolSession | None:
        return self._binding.session if self._binding is not None else None

    def _require_binding(self) -> Binding:
        if self._binding is None:
            raise NoActiveViewError()
        return self._binding

    async def _attached(self, binding: Binding) -> ProtocolSession:
        await binding.session.attach()
        return binding.session

    async def _session(self) -> ProtocolSession:
        return await self._attached(self._require_binding())

    async def set_active_view(self, view_id: str) -> ViewMetadata | None:
        """Bind to ``view_id``; the previous binding is torn down first.

        An unknown view raises NoActiveViewError and keeps the current binding.
        """
        current = self._binding
        if current is not None and current.view_id == view_id:
            await self._enable_monitoring_on_switch()
            return await self.views.get_view_metadata(view_id)

        target = await self.views.get_debuggable_target(view_id)
        if target is None:
            raise NoActiveViewError(f"View {view_id!r} not found", details={"viewId": view_id})

        if current is not None:
            await self._teardown(current)
            self._binding = None
        self._snapshot = None

        self._generation += 1
        binding = Binding(view_id=view_id, session=ProtocolSession(target, view_id), generation=self._generation)
        binding.router = self._make_router(binding)
        self._binding = binding
        logger.info("Active view set to %s", view_id)

        await self._enable_monitoring_on_switch()
        return await self.views.get_view_metadata(view_id)

    async def _enable_monitoring_on_switch(self) -> None:
        for enable in (self.enable_network_monitoring, self.enable_console_monitoring, self.enable_dialog_handling):
            try:
                await enable()
            except CommandFailedError as exc:
                logger.warning("Monitoring not enabled for view %s: %s", self.active_view_id, exc)

    async def _teardown(self, binding: Binding) -> list[str]:
        session = binding.session
        failed = await run_teardown(
            [
                ("remove event router", session.clear_event_router),
                ("disable domains", session.disable_domains),
                ("detach session", session.release),
                ("clear network history", self.network.reset),
                ("clear console history", self.console.reset),
                ("clear pending dialog", self.dialogs.reset),
            ]
        )
        if failed:
            logger.debug("Teardown of view %s skipped: %s", binding.view_id, ", ".join(failed))
        return failed

    async def disable_monitoring(self) -> None:
        """Stop all monitors and detach; histories are cleared. Never raises."""
        binding = self._binding
        if binding is None:
            self.network.reset()
            self.console.reset()
            self.dialogs.reset()
            return
        await self._teardown(binding)

    async def close(self) -> None:
        binding, self._binding = self._binding, None
        self._snapshot = None
        if binding is not None:
            await self._teardown(binding)
            logger.info("Browser context closed (view %s)", binding.view_id)

    # ─────────────────────────────────────────────────────────────────────
    # Monitoring
    # ─────────────────────────────────────────────────────────────────────

    def _make_router(self, binding: Binding) -> EventRouter:
        def route(method: str, params: dict[str, Any]) -> None:
            # Events from a replaced binding never reach the new state.
            if self._binding is not binding:
                return
            event = decode_event(method, params)
            if event is not None:
                self._dispatch(event)

        return route

    def _dispatch(self, event: CdpEvent) -> None:
        match event:
            case RequestWillBeSent():
                if self.network.enabled:
                    self.network.on_request(event)
            case ResponseReceived():
                if self.network.enabled:
                    self.network.on_response(event)
            case LoadingFailed():
                if self.network.enabled:
                    self.network.on_failure(event)
            case ConsoleApiCalled():
                if self.console.enabled:
                    self.console.on_console(event)
            case DialogOpening():
                if self.dialogs.enabled:
                    self.dialogs.on_dialog(event)

    async def _enable(self, monitor: Monitor, name: str) -> None:
        binding = self._require_binding()
        if monitor.enabled:
            return
        # Claimed before the first await so a concurrent enable short-circuits.
        monitor.enabled = True
        try:
            session = await self._attached(binding)
            await session.enable_domain(monitor.domain)
            if binding.router is not None:
                session.set_event_router(binding.router)
        except BaseException:
            monitor.enabled = False
            raise
        logger.info("%s monitoring enabled for view %s", name, binding.view_id)

    async def enable_network_monitoring(self) -> None:
        await self._enable(self.network, "Network")

    async def enable_console_monitoring(self) -> None:
        await self._enable(self.console, "Console")

    async def enable_dialog_handling(self) -> None:
        await self._enable(self.dialogs, "Dialog")

    async def enable_monitoring(self) -> None:
        await self.enable_network_monitoring()
        await self.enable_console_monitoring()
        await self.enable_dialog_handling()

    def get_network_requests(self) -> list[NetworkRequest]:
        return self.network.requests()

    def get_network_request(self, request_id: str) -> NetworkRequest | None:
        return self.network.get(request_id)

    def clear_network_requests(self) -> None:
        self.network.clear()

    def get_console_messages(self) -> list[ConsoleMessage]:
        return self.console.messages()

    def get_console_message(self, message_id: str) -> ConsoleMessage | None:
        return self.console.get(message_id)

    def clear_console_messages(self) -> None:
        self.console.clear()

    @property
    def pending_dialog(self) -> DialogInfo | None:
        return self.dialogs.pending

    async def handle_dialog(self, accept: bool, prompt_text: str | None = None) -> DialogInfo | None:
        """Resolve the open dialog; the pending slot is cleared either way."""
        binding = self._require_binding()
        dialog = self.dialogs.pending
        params: dict[str, Any] = {"accept": bool(accept)}
        if prompt_text is not None:
            params["promptText"] = prompt_text
        try:
            session = await self._attached(binding)
            await session.send_command("Page.handleJavaScriptDialog", params)
        except CommandFailedError as exc:
            logger.warning("Dialog resolution failed: %s", exc)
        finally:
            self.dialogs.clear()
        return dialog

    # ─────────────────────────────────────────────────────────────────────
    # Snapshot
    # ─────────────────────────────────────────────────────────────────────

    @property
    def last_snapshot(self) -> AccessibilitySnapshot | None:
        return self._snapshot

    async def create_snapshot(self, verbose: bool = False) -> AccessibilitySnapshot:
        binding = self._require_binding()
        session = await self._attached(binding)
        metadata = await self.views.get_view_metadata(binding.view_id)

        self._snapshot_seq += 1
        snapshot = await capture_snapshot(
            session,
            snapshot_id=f"s{self._snapshot_seq}",
            verbose=verbose,
            url=metadata.url if metadata else "",
            title=metadata.title if metadata else "",
        )
        if self._binding is binding:
            self._snapshot = snapshot
        return snapshot

    def get_element_by_uid(self, uid: str) -> AccessibilityNode | None:
        if self._snapshot is None:
            return None
        return self._snapshot.get(uid)

    def _resolve(self, uid: str) -> AccessibilityNode:
        node = self.get_element_by_uid(uid)
        if node is None:
            if self._snapshot is None:
                message = f"Element not found: {uid} (no snapshot taken yet)"
            else:
                message = f"Element not found: {uid}"
            raise ElementNotFoundError(message, details={"uid": uid})
        return node

    # ─────────────────────────────────────────────────────────────────────
    # Element interaction
    # ─────────────────────────────────────────────────────────────────────

    async def click(self, uid: str, dbl_click: bool = False) -> None:
        binding = self._require_binding()
        node = self._resolve(uid)
        session = await self._attached(binding)

        await scroll_into_view(session, node.backend_node_id)
        box = await get_box(session, node.backend_node_id)
        x, y = box.center
        await click_at(session, x, y, click_count=2 if dbl_click else 1)

    async def hover(self, uid: str) -> None:
        binding = self._require_binding()
        node = self._resolve(uid)
        session = await self._attached(binding)

        await scroll_into_view(session, node.backend_node_id)
        box = await get_box(session, node.backend_node_id)
        await move_to(session, *box.center)

    async def fill(self, uid: str, value: str) -> None:
        binding = self._require_binding()
        node = self._resolve(uid)
        session = await self._attached(binding)

        await focus_node(session, node.backend_node_id)
        select_all = KeySpec(key="a", code="KeyA", modifiers=select_all_modifier(self.platform), key_code=65)
        await press(session, select_all)
        await press(session, parse_key_spec("Backspace"))
        await insert_text(session, value)

    async def select_option(self, uid: str, value: str) -> str:
        """Select the option whose accessible name is ``value``; returns its form value."""
        binding = self._require_binding()
        node = self._resolve(uid)
        if node.role not in OPTION_CONTAINER_ROLES:
            raise InvalidArgumentError(
                f"Element {uid} is a {node.role}, not a combobox or listbox",
                details={"uid": uid, "role": node.role},
            )

        snapshot = self._snapshot
        options = snapshot.option_nodes(node) if snapshot is not None else []
        option = next((o for o in options if o.name == value), None)
        if option is None:
            raise OptionNotFoundError(
                f'Option "{value}" not found in {uid}',
                details={"uid": uid, "available": [o.name for o in options]},
            )

        session = await self._attached(binding)
        option_object = await resolve_object(session, option.backend_node_id)
        option_value = await call_function_on(session, option_object, OPTION_VALUE_JS)
        # ARIA options have no DOM value; their accessible name stands in.
        if option_value is None or option_value == "":
            option_value = value
        control_object = await resolve_object(session, node.backend_node_id)
        await call_function_on(session, control_object, SET_VALUE_JS, option_value)
        return str(option_value)

    async def fill_form_element(self, uid: str, value: str) -> None:
        """Fill ``uid``; a combobox with options selects the matching option instead."""
        self._require_binding()
        node = self._resolve(uid)
        if node.role == "combobox" and node.options:
            try:
                await self.select_option(uid, value)
                return
            except OptionNotFoundError:
                logger.debug("No option %r in %s, typing it instead", value, uid)
        await self.fill(uid, value)

    async def fill_form(self, elements: Sequence[tuple[str, str]]) -> dict[str, BrowserContextError]:
        """Fill each ``(uid, value)`` in order; returns the failures keyed by uid.

        One bad field does not stop the others. A missing binding still raises.
        """
        self._require_binding()
        failures: dict[str, BrowserContextError] = {}
        for uid, value in elements:
            try:
                await self.fill_form_element(uid, value)
            except NoActiveViewError:
                raise
            except BrowserContextError as exc:
                failures[uid] = exc
        return failures

    async def upload_file(self, uid: str, file_paths: Sequence[str]) -> list[str]:
        """Set the files of the ``<input type=file>`` behind ``uid``; returns absolute paths."""
        binding = self._require_binding()
        if not file_paths:
            raise InvalidArgumentError("At least one file path is required")
        paths: list[str] = []
        for raw in file_paths:
            path = Path(raw).expanduser()
            if not path.is_file():
                raise InvalidArgumentError(f"File not found: {raw}", details={"path": str(raw)})
            paths.append(str(path.absolute()))
        node = self._resolve(uid)

        session = await self._attached(binding)
        await session.send_command("DOM.setFileInputFiles", {"backendNodeId": node.backend_node_id, "files": paths})
        return paths

    async def drag(self, from_uid: str, to_uid: str) -> None:
        binding = self._require_binding()
        source = self._resolve(from_uid)
        target = self._resolve(to_uid)
        session = await self._attached(binding)

        start = await get_box(session, source.backend_node_id)
        end = await get_box(session, target.backend_node_id)
        await drag_between(session, start.center, end.center, steps=self.config.drag_steps)

    async def press_key(self, key: str) -> None:
        spec = parse_key_spec(key)
        session = await self._session()
        await press(session, spec)

    async def type_text(self, text: str) -> None:
        session = await self._session()
        await insert_text(session, text)

    # ─────────────────────────────────────────────────────────────────────
    # Capture & evaluation
    # ─────────────────────────────────────────────────────────────────────

    async def capture_screenshot(
        self,
        format: str = "png",
        quality: int | None = None,
        full_page: bool = False,
        element_uid: str | None = None,
    ) -> Screenshot:
        params = screenshot_params(format, quality, default_quality=self.config.screenshot_quality)
        binding = self._require_binding()
        node = self._resolve(element_uid) if element_uid else None
        session = await self._attached(binding)

        if node is not None:
            await scroll_into_view(session, node.backend_node_id)
            box = await get_box(session, node.backend_node_id)
            return await take_screenshot(session, params, clip=box)
        if full_page:
            clip = await full_page_clip(session)
            return await take_screenshot(session, params, clip=clip, beyond_viewport=True)
        return await take_screenshot(session, params)

    async def evaluate_script(self, script: str, args: list[Any] | None = None) -> Any:
        build_expression(script, args)
        session = await self._session()
        return await evaluate(session, script, args)

    # ─────────────────────────────────────────────────────────────────────
    # Waits
    # ─────────────────────────────────────────────────────────────────────

    def _timeout(self, timeout_ms: int | None) -> int:
        return self.config.wait_timeout_ms if timeout_ms is None else int(timeout_ms)

    async def _poll(self, condition: Any, timeout_ms: int | None, description: str) -> None:
        await poll_until(
            condition,
            timeout_ms=self._timeout(timeout_ms),
            description=description,
            interval=self.config.poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    async def wait_for_text(self, text: str, timeout_ms: int | None = None) -> None:
        async def text_present() -> bool:
            snapshot = await self.create_snapshot()
            return text in snapshot.format()

        await self._poll(text_present, timeout_ms, f'text "{text}"')

    async def wait_for_element(self, selector: str, timeout_ms: int | None = None) -> None:
        probe = selector_probe(selector)

        async def element_present() -> bool:
            try:
                return bool(await self.evaluate_script(probe))
            except ScriptEvaluationError as exc:
                if "SyntaxError" in exc.reason:
                    raise InvalidArgumentError(f"Invalid selector {selector!r}: {exc.reason}") from exc
                return False
            except CommandFailedError as exc:
                # The page may be mid-navigation.
                logger.debug("wait_for_element probe failed: %s", exc)
                return False

        await self._poll(element_present, timeout_ms, f'element "{selector}"')

    # ─────────────────────────────────────────────────────────────────────
    # Page lifecycle
    # ─────────────────────────────────────────────────────────────────────

    async def wait_for_load(self, timeout_ms: int | None = None) -> None:
        async def loaded() -> bool:
            try:
                return bool(await self.evaluate_script(READY_STATE_JS))
            except CommandFailedError:
                return False

        await self._poll(loaded, timeout_ms, "page load")

    async def get_page_info(self) -> dict[str, Any]:
        session = await self._session()
        page = await evaluate(session, PAGE_INFO_JS) or {}
        metrics = await session.send_command("Page.getLayoutMetrics")
        viewport = metrics.get("cssLayoutViewport") or metrics.get("layoutViewport") or {}
        return {
            "viewId": self.active_view_id,
            "url": page.get("url", ""),
            "title": page.get("title", ""),
            "viewport": {
                "width": viewport.get("clientWidth", 0),
                "height": viewport.get("clientHeight", 0),
            },
        }

    async def _after_navigation(self, wait_load: bool, timeout_ms: int | None) -> dict[str, Any]:
        # Backend node ids die with the old document.
        self._snapshot = None
        if wait_load:
            await self.wait_for_load(timeout_ms)
        return await self.get_page_info()

    async def navigate(self, url: str, *, wait_load: bool = True, timeout_ms: int | None = None) -> dict[str, Any]:
        if not url:
            raise InvalidArgumentError("url is required")
        session = await self._session()
        response = await session.send_command("Page.navigate", {"url": url})
        error_text = response.get("errorText")
        if error_text:
            raise CommandFailedError("Page.navigate", f"{url}: {error_text}")
        return await self._after_navigation(wait_load, timeout_ms)

    async def reload(self, ignore_cache: bool = False, *, wait_load: bool = True, timeout_ms: int | None = None) -> dict[str, Any]:
        session = await self._session()
        await session.send_command("Page.reload", {"ignoreCache": bool(ignore_cache)})
        return await self._after_navigation(wait_load, timeout_ms)

    async def _go(self, delta: int, wait_load: bool, timeout_ms: int | None) -> dict[str, Any]:
        session = await self._session()
        history = await session.send_command("Page.getNavigationHistory")
        entries = history.get("entries") or []
        index = int(history.get("currentIndex", 0)) + delta
        if not 0 <= index < len(entries):
            direction = "back" if delta < 0 else "forward"
            raise InvalidArgumentError(f"Cannot go {direction}: no history entry")
        await session.send_command("Page.navigateToHistoryEntry", {"entryId": entries[index]["id"]})
        return await self._after_navigation(wait_load, timeout_ms)

    async def go_back(self, *, wait_load: bool = True, timeout_ms: int | None = None) -> dict[str, Any]:
        return await self._go(-1, wait_load, timeout_ms)

    async def go_forward(self, *, wait_load: bool = True, timeout_ms: int | None = None) -> dict[str, Any]:
        return await self._go(1, wait_load, timeout_ms)


__all__ = ["Binding", "BrowserContext"]
