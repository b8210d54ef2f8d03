"""Element interaction primitives (mouse, keyboard, DOM)."""

from __future__ import annotations

from .dom import call_function_on, focus_node, get_box, resolve_object, scroll_into_view
from .keyboard import ALT, CTRL, META, SHIFT, KeySpec, insert_text, parse_key_spec, press, select_all_modifier
from .mouse import BoundingBox, click_at, drag_between, interpolate, move_to

__all__ = [
    "ALT",
    "BoundingBox",
    "CTRL",
    "KeySpec",
    "META",
    "SHIFT",
    "call_function_on",
    "click_at",
    "drag_between",
    "focus_node",
    "get_box",
    "insert_text",
    "interpolate",
    "move_to",
    "parse_key_spec",
    "press",
    "resolve_object",
    "scroll_into_view",
    "select_all_modifier",
]
