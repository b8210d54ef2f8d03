"""
Mouse input for browser automation.

Provides box geometry plus press/release, move and drag sequences dispatched
through Input.dispatchMouseEvent.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..session import ProtocolSession

DEFAULT_DRAG_STEPS = 10


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_quad(cls, quad: Sequence[float]) -> BoundingBox:
        """Axis-aligned box around a CDP quad ``[x1, y1, ..., x4, y4]``."""
        xs = [float(quad[i]) for i in (0, 2, 4, 6)]
        ys = [float(quad[i]) for i in (1, 3, 5, 7)]
        x, y = min(xs), min(ys)
        return cls(x=x, y=y, width=max(xs) - x, height=max(ys) - y)

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def to_clip(self, scale: float = 1) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height, "scale": scale}


def interpolate(
    start: tuple[float, float], end: tuple[float, float], steps: int = DEFAULT_DRAG_STEPS
) -> list[tuple[float, float]]:
    """Points 1..steps on the segment start→end (the last one is ``end``)."""
    steps = max(1, int(steps))
    (x0, y0), (x1, y1) = start, end
    return [(x0 + (x1 - x0) * i / steps, y0 + (y1 - y0) * i / steps) for i in range(1, steps + 1)]


async def mouse_event(
    session: ProtocolSession,
    event_type: str,
    x: float,
    y: float,
    *,
    button: str = "none",
    click_count: int = 0,
) -> None:
    params = {"type": event_type, "x": x, "y": y, "button": button, "clickCount": click_count}
    await session.send_command("Input.dispatchMouseEvent", params)


async def click_at(session: ProtocolSession, x: float, y: float, *, button: str = "left", click_count: int = 1) -> None:
    await mouse_event(session, "mousePressed", x, y, button=button, click_count=click_count)
    await mouse_event(session, "mouseReleased", x, y, button=button, click_count=click_count)


async def move_to(session: ProtocolSession, x: float, y: float) -> None:
    await mouse_event(session, "mouseMoved", x, y)


async def drag_between(
    session: ProtocolSession,
    start: tuple[float, float],
    end: tuple[float, float],
    steps: int = DEFAULT_DRAG_STEPS,
) -> None:
    """Press at start, move in ``steps`` motion events, release at end."""
    await mouse_event(session, "mousePressed", *start, button="left", click_count=1)
    for x, y in interpolate(start, end, steps):
        await mouse_event(session, "mouseMoved", x, y, button="left")
    await mouse_event(session, "mouseReleased", *end, button="left", click_count=1)


__all__ = [
    "BoundingBox",
    "DEFAULT_DRAG_STEPS",
    "click_at",
    "drag_between",
    "interpolate",
    "mouse_event",
    "move_to",
]
