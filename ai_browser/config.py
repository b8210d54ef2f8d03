from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


@dataclass
class BrowserContextConfig:
    cdp_host: str = "127.0.0.1"
    cdp_port: int = 9222
    command_timeout: float = 10.0
    http_timeout: float = 2.0
    poll_interval: float = 0.5
    wait_timeout_ms: int = 30_000
    console_history_limit: int = 1000
    screenshot_quality: int = 80
    drag_steps: int = 10

    @property
    def devtools_url(self) -> str:
        return f"http://{self.cdp_host}:{self.cdp_port}"

    @classmethod
    def from_env(cls) -> BrowserContextConfig:
        host = (os.environ.get("AI_BROWSER_CDP_HOST") or "").strip() or "127.0.0.1"
        return cls(
            cdp_host=host,
            cdp_port=_env_int("AI_BROWSER_CDP_PORT", 9222, minimum=1),
            command_timeout=_env_float("AI_BROWSER_COMMAND_TIMEOUT", 10.0, minimum=0.1),
            http_timeout=_env_float("AI_BROWSER_HTTP_TIMEOUT", 2.0, minimum=0.1),
            poll_interval=_env_float("AI_BROWSER_POLL_INTERVAL", 0.5, minimum=0.01),
            wait_timeout_ms=_env_int("AI_BROWSER_WAIT_TIMEOUT_MS", 30_000),
            console_history_limit=_env_int("AI_BROWSER_CONSOLE_LIMIT", 1000, minimum=1),
            screenshot_quality=min(100, _env_int("AI_BROWSER_SCREENSHOT_QUALITY", 80)),
            drag_steps=_env_int("AI_BROWSER_DRAG_STEPS", 10, minimum=1),
        )
