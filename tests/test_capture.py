from __future__ import annotations

import asyncio
import base64
import io
from pathlib import Path
from typing import Any

import pytest
from fakes import FakeTarget, FakeViews, page_responses
from PIL import Image

from ai_browser.capture import Screenshot, build_expression, screenshot_params
from ai_browser.config import BrowserContextConfig
from ai_browser.context import BrowserContext
from ai_browser.errors import CommandFailedError, InvalidArgumentError, ScriptEvaluationError


def png_b64(width: int, height: int) -> str:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (255, 0, 0)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()


def bound_context(responses: dict[str, Any]) -> tuple[BrowserContext, FakeTarget]:
    target = FakeTarget(responses)
    ctx = BrowserContext(FakeViews({"v1": target}), BrowserContextConfig())
    asyncio.run(ctx.set_active_view("v1"))
    return ctx, target


def test_png_omits_quality() -> None:
    assert screenshot_params("png", 50) == {"format": "png"}


def test_lossy_formats_default_quality() -> None:
    assert screenshot_params("jpeg") == {"format": "jpeg", "quality": 80}
    assert screenshot_params("webp", 35) == {"format": "webp", "quality": 35}
    assert screenshot_params("JPEG", default_quality=60) == {"format": "jpeg", "quality": 60}


@pytest.mark.parametrize(("fmt", "quality"), [("gif", None), ("jpeg", 101), ("jpeg", -1), ("webp", "high")])
def test_invalid_screenshot_params(fmt: str, quality: Any) -> None:
    with pytest.raises(InvalidArgumentError):
        screenshot_params(fmt, quality)


def test_viewport_capture() -> None:
    ctx, target = bound_context({"Page.captureScreenshot": {"data": "QUJD"}})

    shot = asyncio.run(ctx.capture_screenshot())

    assert shot == Screenshot(data="QUJD", mime_type="image/png")
    assert target.params_for("Page.captureScreenshot") == [{"format": "png"}]


def test_full_page_capture_uses_css_content_size() -> None:
    ctx, target = bound_context(
        {
            "Page.captureScreenshot": {"data": "QUJD"},
            "Page.getLayoutMetrics": {
                "contentSize": {"width": 2560, "height": 8000},
                "cssContentSize": {"width": 1280, "height": 4000},
            },
        }
    )

    shot = asyncio.run(ctx.capture_screenshot(format="jpeg", full_page=True))

    assert shot.mime_type == "image/jpeg"
    (params,) = target.params_for("Page.captureScreenshot")
    assert params["quality"] == 80
    assert params["captureBeyondViewport"] is True
    assert params["clip"] == {"x": 0, "y": 0, "width": 1280, "height": 4000, "scale": 1}


def test_element_clip_wins_over_full_page() -> None:
    ctx, target = bound_context({**page_responses(), "Page.captureScreenshot": {"data": "QUJD"}})

    async def run() -> None:
        await ctx.create_snapshot()
        await ctx.capture_screenshot(full_page=True, element_uid="s1e3")

    asyncio.run(run())

    assert "Page.getLayoutMetrics" not in target.methods()
    (params,) = target.params_for("Page.captureScreenshot")
    assert params["clip"] == {"x": 10, "y": 20, "width": 100, "height": 40, "scale": 1}
    assert "captureBeyondViewport" not in params
    # Scrolled into view before capture.
    assert target.methods().index("DOM.resolveNode") < target.methods().index("Page.captureScreenshot")


def test_missing_image_data_is_a_command_failure() -> None:
    ctx, _ = bound_context({"Page.captureScreenshot": {}})
    with pytest.raises(CommandFailedError):
        asyncio.run(ctx.capture_screenshot())


def test_screenshot_dimensions_and_save(tmp_path: Path) -> None:
    shot = Screenshot(data=png_b64(3, 2), mime_type="image/png")

    assert shot.dimensions() == (3, 2)
    saved = shot.save(tmp_path / "shots" / "page.png")
    assert saved.read_bytes() == shot.to_bytes()


def test_build_expression_inlines_json_args() -> None:
    assert build_expression("() => 1") == "() => 1"
    assert build_expression("(a, b) => a + b", [1, "x"]) == '((a, b) => a + b)(1, "x")'


def test_non_serializable_args_fail_before_sending() -> None:
    ctx, target = bound_context({})
    sent = len(target.calls)

    with pytest.raises(InvalidArgumentError):
        asyncio.run(ctx.evaluate_script("(x) => x", [object()]))
    assert len(target.calls) == sent


def test_evaluate_awaits_and_returns_by_value() -> None:
    ctx, target = bound_context({"Runtime.evaluate": {"result": {"type": "number", "value": 3}}})

    assert asyncio.run(ctx.evaluate_script("(a, b) => a + b", [1, 2])) == 3
    (params,) = target.params_for("Runtime.evaluate")
    assert params == {"expression": "((a, b) => a + b)(1, 2)", "returnByValue": True, "awaitPromise": True}


@pytest.mark.parametrize("result", [{"type": "undefined"}, {"type": "object", "subtype": "null", "value": None}])
def test_evaluate_maps_undefined_and_null_to_none(result: dict[str, Any]) -> None:
    ctx, _ = bound_context({"Runtime.evaluate": {"result": result}})
    assert asyncio.run(ctx.evaluate_script("void 0")) is None


def test_evaluate_surfaces_page_exception_description() -> None:
    ctx, _ = bound_context(
        {
            "Runtime.evaluate": {
                "result": {"type": "object", "subtype": "error"},
                "exceptionDetails": {
                    "text": "Uncaught",
                    "exception": {"type": "object", "description": "ReferenceError: foo is not defined\n    at <anonymous>:1:1"},
                },
            }
        }
    )

    with pytest.raises(ScriptEvaluationError) as exc:
        asyncio.run(ctx.evaluate_script("foo"))

    assert str(exc.value).startswith("ReferenceError: foo is not defined")
    assert isinstance(exc.value, CommandFailedError)
    assert exc.value.method == "Runtime.evaluate"
