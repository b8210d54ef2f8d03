"""
Polling waits.

Each wait checks its condition, then gives up only once the full timeout has
elapsed; the sleep before the next check never overshoots the deadline.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable

from .errors import WaitTimeoutError

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
Condition = Callable[[], Awaitable[bool]]

DEFAULT_POLL_INTERVAL = 0.5


async def poll_until(
    condition: Condition,
    *,
    timeout_ms: int,
    description: str,
    interval: float = DEFAULT_POLL_INTERVAL,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Await ``condition`` until it is true or ``timeout_ms`` has elapsed."""
    timeout = max(0, timeout_ms) / 1000
    start = clock()
    while True:
        if await condition():
            return
        elapsed = clock() - start
        if elapsed >= timeout:
            raise WaitTimeoutError(
                f"Timed out after {timeout_ms}ms waiting for {description}",
                details={"timeoutMs": timeout_ms},
            )
        await sleep(min(interval, timeout - elapsed))


def selector_probe(selector: str) -> str:
    """JS expression that is true when ``selector`` matches an element."""
    return f"!!document.querySelector({json.dumps(selector)})"


__all__ = ["Clock", "DEFAULT_POLL_INTERVAL", "Sleep", "poll_until", "selector_probe"]
