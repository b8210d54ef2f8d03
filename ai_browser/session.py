"""Protocol session: one attachment to a debuggable target.

Wraps a debuggable target with the command/event primitives the context
needs:
- idempotent attach (explicit is_attached predicate),
- send_command with method-named failures,
- a single event router registration,
- cached domain enabling,
- a total, never-raising detach.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from .errors import BrowserContextError, CommandFailedError

logger = logging.getLogger("ai_browser.session")

EventRouter = Callable[[str, dict[str, Any]], None]
TeardownStep = tuple[str, Callable[[], Awaitable[Any] | Any]]


class DebuggableTarget(Protocol):
    """What the view manager hands out for a view (CDP-compatible transport)."""

    def is_attached(self) -> bool: ...

    async def attach(self) -> None: ...

    async def detach(self) -> None: ...

    async def send_command(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...

    def add_listener(self, listener: EventRouter) -> None: ...

    def remove_listener(self, listener: EventRouter) -> None: ...


async def run_teardown(steps: Sequence[TeardownStep]) -> list[str]:
    """Run cleanup steps in order; a failing step never skips the rest.

    Returns the names of the steps that failed (already logged).
    """
    failed: list[str] = []
    for name, step in steps:
        try:
            result = step()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001
            logger.debug("teardown step %r failed: %s", name, exc)
            failed.append(name)
    return failed


class ProtocolSession:
    """CDP session bound to one view's debuggable target."""

    def __init__(self, target: DebuggableTarget, view_id: str = ""):
        self.target = target
        self.view_id = view_id
        self._router: EventRouter | None = None
        self._enabled_domains: list[str] = []

    def is_attached(self) -> bool:
        try:
            return bool(self.target.is_attached())
        except Exception:  # noqa: BLE001
            return False

    def is_domain_enabled(self, domain: str) -> bool:
        return domain in self._enabled_domains

    @property
    def enabled_domains(self) -> tuple[str, ...]:
        return tuple(self._enabled_domains)

    @property
    def has_event_router(self) -> bool:
        return self._router is not None

    async def attach(self) -> None:
        """Attach to the target; attaching an attached target is a no-op."""
        if self.is_attached():
            return
        try:
            await self.target.attach()
        except BrowserContextError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise CommandFailedError("attach", f"cannot attach to view {self.view_id}: {exc}") from exc
        # A fresh attachment starts with every domain disabled.
        self._enabled_domains.clear()
        logger.debug("attached to view %s", self.view_id)

    async def send_command(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send one CDP command; failures always name the method."""
        if not self.is_attached():
            raise CommandFailedError(method, f"view {self.view_id} is not attached")
        try:
            result = await self.target.send_command(method, params)
        except BrowserContextError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise CommandFailedError(method, str(exc) or type(exc).__name__) from exc
        return result if isinstance(result, dict) else {}

    async def enable_domain(self, domain: str) -> bool:
        """Enable ``<domain>.enable`` once per attachment. Returns True if it was sent."""
        if self.is_domain_enabled(domain):
            return False
        await self.send_command(f"{domain}.enable")
        if domain not in self._enabled_domains:
            self._enabled_domains.append(domain)
        return True

    async def disable_domains(self) -> None:
        """Best-effort disable of every domain this session enabled."""
        domains, self._enabled_domains = list(self._enabled_domains), []
        for domain in reversed(domains):
            try:
                await self.send_command(f"{domain}.disable")
            except CommandFailedError as exc:
                logger.debug("disable %s failed (target may be gone): %s", domain, exc.reason)

    def set_event_router(self, router: EventRouter) -> None:
        """Install the single demultiplexing router for raw events."""
        if self._router is router:
            return
        self.clear_event_router()
        self.target.add_listener(router)
        self._router = router

    def clear_event_router(self) -> None:
        router, self._router = self._router, None
        if router is not None:
            self.target.remove_listener(router)

    async def release(self) -> None:
        if self.is_attached():
            await self.target.detach()

    async def detach(self) -> None:
        """Remove router, disable domains, release the attachment. Never raises."""
        await run_teardown(
            [
                ("remove event router", self.clear_event_router),
                ("disable domains", self.disable_domains),
                ("detach", self.release),
            ]
        )


__all__ = ["DebuggableTarget", "EventRouter", "ProtocolSession", "run_teardown"]
