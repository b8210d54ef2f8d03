"""
Keyboard input for browser automation.

Key specs look like ``Enter``, ``a``, ``Control+A`` or ``Shift+Meta+ArrowLeft``:
zero or more modifiers joined by ``+`` and a final key. ``Control++`` presses
the plus key.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import InvalidArgumentError

if TYPE_CHECKING:
    from ..session import ProtocolSession

# CDP Input.dispatchKeyEvent modifier bit field
ALT = 1
CTRL = 2
META = 4
SHIFT = 8

MODIFIER_ALIASES: dict[str, int] = {
    "alt": ALT,
    "option": ALT,
    "control": CTRL,
    "ctrl": CTRL,
    "meta": META,
    "cmd": META,
    "command": META,
    "shift": SHIFT,
}

# name -> (key, code, windowsVirtualKeyCode)
NAMED_KEYS: dict[str, tuple[str, str, int]] = {
    "enter": ("Enter", "Enter", 13),
    "tab": ("Tab", "Tab", 9),
    "escape": ("Escape", "Escape", 27),
    "esc": ("Escape", "Escape", 27),
    "backspace": ("Backspace", "Backspace", 8),
    "delete": ("Delete", "Delete", 46),
    "arrowup": ("ArrowUp", "ArrowUp", 38),
    "arrowdown": ("ArrowDown", "ArrowDown", 40),
    "arrowleft": ("ArrowLeft", "ArrowLeft", 37),
    "arrowright": ("ArrowRight", "ArrowRight", 39),
    "home": ("Home", "Home", 36),
    "end": ("End", "End", 35),
    "pageup": ("PageUp", "PageUp", 33),
    "pagedown": ("PageDown", "PageDown", 34),
    "space": (" ", "Space", 32),
}

_PUNCTUATION_CODES: dict[str, tuple[str, int]] = {
    " ": ("Space", 32),
    "-": ("Minus", 189),
    "=": ("Equal", 187),
    "+": ("Equal", 187),
    "[": ("BracketLeft", 219),
    "]": ("BracketRight", 221),
    ";": ("Semicolon", 186),
    "'": ("Quote", 222),
    ",": ("Comma", 188),
    ".": ("Period", 190),
    "/": ("Slash", 191),
    "\\": ("Backslash", 220),
    "`": ("Backquote", 192),
}


@dataclass(frozen=True, slots=True)
class KeySpec:
    key: str
    code: str
    modifiers: int = 0
    key_code: int = 0
    text: str | None = None

    def event(self, event_type: str) -> dict[str, Any]:
        """Input.dispatchKeyEvent params for ``keyDown``/``keyUp``."""
        params: dict[str, Any] = {"type": event_type, "key": self.key, "code": self.code, "modifiers": self.modifiers}
        if self.key_code:
            params["windowsVirtualKeyCode"] = self.key_code
        if event_type == "keyDown" and self.text is not None:
            params["text"] = self.text
        return params


def _split_spec(spec: str) -> list[str]:
    if spec.endswith("++"):
        head = spec[:-2]
        return (head.split("+") if head else []) + ["+"]
    if spec == "+":
        return ["+"]
    return spec.split("+")


def _char_key(char: str, modifiers: int) -> KeySpec:
    if char.isalpha() and char.isascii():
        key = char.upper() if modifiers & SHIFT else char
        code, key_code = f"Key{char.upper()}", ord(char.upper())
    elif char.isdigit() and char.isascii():
        key, code, key_code = char, f"Digit{char}", ord(char)
    elif char in _PUNCTUATION_CODES:
        key = char
        code, key_code = _PUNCTUATION_CODES[char]
    else:
        key, code, key_code = char, "", 0

    # Chorded keys (Ctrl/Meta/Alt) are shortcuts and insert no text.
    text = None if modifiers & (CTRL | META | ALT) else key
    return KeySpec(key=key, code=code, modifiers=modifiers, key_code=key_code, text=text)


def parse_key_spec(spec: str) -> KeySpec:
    """Parse ``Mod+...+Key`` into the key event description."""
    if not isinstance(spec, str) or not spec:
        raise InvalidArgumentError("Key spec must be a non-empty string")

    parts = _split_spec(spec)
    key_name = parts[-1]
    if not key_name:
        raise InvalidArgumentError(f"Key spec {spec!r} has no key")

    modifiers = 0
    for raw in parts[:-1]:
        bit = MODIFIER_ALIASES.get(raw.strip().lower())
        if bit is None:
            raise InvalidArgumentError(f"Unknown modifier {raw!r} in key spec {spec!r}")
        modifiers |= bit

    named = NAMED_KEYS.get(key_name.lower())
    if named is not None:
        key, code, key_code = named
        text = None
        if key == "Enter":
            text = "\r"
        elif key == " ":
            text = " "
        if modifiers & (CTRL | META | ALT):
            text = None
        return KeySpec(key=key, code=code, modifiers=modifiers, key_code=key_code, text=text)

    if len(key_name) == 1:
        return _char_key(key_name, modifiers)

    # Any other multi-character name is passed through as a DOM key value.
    return KeySpec(key=key_name, code=key_name, modifiers=modifiers)


def select_all_modifier(platform: str | None = None) -> int:
    """Meta on macOS, Control elsewhere."""
    return META if (platform or sys.platform) == "darwin" else CTRL


async def press(session: ProtocolSession, key: KeySpec) -> None:
    await session.send_command("Input.dispatchKeyEvent", key.event("keyDown"))
    await session.send_command("Input.dispatchKeyEvent", key.event("keyUp"))


async def insert_text(session: ProtocolSession, text: str) -> None:
    await session.send_command("Input.insertText", {"text": text})


__all__ = [
    "ALT",
    "CTRL",
    "KeySpec",
    "META",
    "NAMED_KEYS",
    "SHIFT",
    "insert_text",
    "parse_key_spec",
    "press",
    "select_all_modifier",
]
