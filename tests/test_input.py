from __future__ import annotations

import pytest

from ai_browser.errors import InvalidArgumentError
from ai_browser.input.keyboard import ALT, CTRL, META, SHIFT, parse_key_spec, select_all_modifier
from ai_browser.input.mouse import BoundingBox, interpolate


def test_named_key() -> None:
    spec = parse_key_spec("Enter")
    assert (spec.key, spec.code, spec.key_code, spec.modifiers) == ("Enter", "Enter", 13, 0)
    assert spec.event("keyDown")["text"] == "\r"
    assert "text" not in spec.event("keyUp")


@pytest.mark.parametrize(
    ("name", "key", "code"),
    [
        ("Tab", "Tab", "Tab"),
        ("escape", "Escape", "Escape"),
        ("ArrowLeft", "ArrowLeft", "ArrowLeft"),
        ("PageDown", "PageDown", "PageDown"),
        ("Home", "Home", "Home"),
        ("Delete", "Delete", "Delete"),
        ("Space", " ", "Space"),
    ],
)
def test_named_key_table(name: str, key: str, code: str) -> None:
    spec = parse_key_spec(name)
    assert (spec.key, spec.code) == (key, code)
    assert spec.key_code > 0


def test_modifiers_compose() -> None:
    spec = parse_key_spec("Control+Shift+a")
    assert spec.modifiers == CTRL | SHIFT
    assert (spec.key, spec.code, spec.key_code) == ("A", "KeyA", 65)
    # Shortcuts insert no text.
    assert spec.text is None


@pytest.mark.parametrize(
    ("spec", "modifiers"),
    [("ctrl+x", CTRL), ("cmd+c", META), ("Command+v", META), ("meta+z", META), ("Alt+f", ALT)],
)
def test_modifier_aliases(spec: str, modifiers: int) -> None:
    assert parse_key_spec(spec).modifiers == modifiers


def test_shifted_letter_types_uppercase() -> None:
    spec = parse_key_spec("Shift+q")
    assert (spec.key, spec.text) == ("Q", "Q")


def test_single_characters() -> None:
    digit = parse_key_spec("7")
    assert (digit.key, digit.code, digit.text) == ("7", "Digit7", "7")
    letter = parse_key_spec("b")
    assert (letter.key, letter.code, letter.text) == ("b", "KeyB", "b")


def test_plus_key() -> None:
    spec = parse_key_spec("Control++")
    assert (spec.key, spec.modifiers) == ("+", CTRL)
    assert parse_key_spec("+").key == "+"


@pytest.mark.parametrize("spec", ["", "Hyper+a", "Control+"])
def test_invalid_key_specs(spec: str) -> None:
    with pytest.raises(InvalidArgumentError):
        parse_key_spec(spec)


def test_select_all_modifier_by_platform() -> None:
    assert select_all_modifier("darwin") == META
    assert select_all_modifier("linux") == CTRL
    assert select_all_modifier("win32") == CTRL


def test_box_from_quad() -> None:
    box = BoundingBox.from_quad([10, 20, 110, 20, 110, 60, 10, 60])
    assert (box.x, box.y, box.width, box.height) == (10, 20, 100, 40)
    assert box.center == (60, 40)


def test_box_from_rotated_quad_is_axis_aligned() -> None:
    box = BoundingBox.from_quad([50, 0, 100, 50, 50, 100, 0, 50])
    assert (box.x, box.y, box.width, box.height) == (0, 0, 100, 100)
    assert box.center == (50, 50)


def test_interpolate_ends_at_target() -> None:
    points = interpolate((0, 0), (100, 50), 10)
    assert len(points) == 10
    assert points[0] == pytest.approx((10, 5))
    assert points[-1] == (100, 50)
