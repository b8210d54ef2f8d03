"""
View manager: maps view ids to debuggable targets and metadata.

The context only needs the async ``ViewManager`` protocol. ``DevToolsViewManager``
implements it for a Chrome started with ``--remote-debugging-port`` by reading
the DevTools HTTP endpoint (``/json/list``).
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.error import URLError
from urllib.request import urlopen

from .config import BrowserContextConfig
from .errors import CommandFailedError
from .session import DebuggableTarget
from .session_cdp import DevToolsTarget

logger = logging.getLogger("ai_browser.views")


@dataclass(frozen=True)
class ViewMetadata:
    view_id: str
    url: str = ""
    title: str = ""
    type: str = "page"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.view_id, "url": self.url, "title": self.title, "type": self.type}


class ViewManager(Protocol):
    async def get_debuggable_target(self, view_id: str) -> DebuggableTarget | None: ...

    async def get_view_metadata(self, view_id: str) -> ViewMetadata | None: ...

    async def list_views(self) -> list[ViewMetadata]: ...


def _http_get_json(url: str, timeout: float) -> Any:
    try:
        with urlopen(url, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (URLError, OSError, ValueError) as exc:
        raise CommandFailedError("GET /json/list", f"{url}: {exc}") from exc


class DevToolsViewManager:
    """Views are the ``page`` targets listed by the DevTools HTTP endpoint.

    The listing is read on a worker thread so a slow endpoint never stalls
    the event loop.
    """

    def __init__(self, config: BrowserContextConfig | None = None):
        self.config = config or BrowserContextConfig.from_env()
        self._metadata: dict[str, ViewMetadata] = {}
        self._ws_urls: dict[str, str] = {}
        self._targets: dict[str, DevToolsTarget] = {}

    async def refresh(self) -> list[ViewMetadata]:
        payload = await asyncio.to_thread(
            _http_get_json, f"{self.config.devtools_url}/json/list", self.config.http_timeout
        )
        metadata: dict[str, ViewMetadata] = {}
        ws_urls: dict[str, str] = {}
        for entry in payload if isinstance(payload, list) else []:
            if not isinstance(entry, dict) or entry.get("type") != "page":
                continue
            view_id = str(entry.get("id") or "")
            ws_url = entry.get("webSocketDebuggerUrl")
            if not view_id or not isinstance(ws_url, str):
                continue
            metadata[view_id] = ViewMetadata(
                view_id=view_id,
                url=str(entry.get("url") or ""),
                title=str(entry.get("title") or ""),
                type="page",
            )
            ws_urls[view_id] = ws_url

        self._metadata, self._ws_urls = metadata, ws_urls
        # Targets of closed pages are forgotten (an attached one is detached by its context).
        for stale in set(self._targets) - set(ws_urls):
            self._targets.pop(stale, None)
        logger.debug("DevTools lists %d page(s)", len(metadata))
        return list(metadata.values())

    async def list_views(self) -> list[ViewMetadata]:
        return await self.refresh()

    async def get_view_metadata(self, view_id: str) -> ViewMetadata | None:
        # Url and title change with navigation, so always re-read them.
        await self.refresh()
        return self._metadata.get(view_id)

    async def get_debuggable_target(self, view_id: str) -> DevToolsTarget | None:
        target = self._targets.get(view_id)
        if target is not None:
            return target
        if view_id not in self._ws_urls:
            await self.refresh()
        ws_url = self._ws_urls.get(view_id)
        if ws_url is None:
            return None
        target = DevToolsTarget(view_id, ws_url, timeout=self.config.command_timeout)
        self._targets[view_id] = target
        return target


__all__ = ["DevToolsViewManager", "ViewManager", "ViewMetadata"]
