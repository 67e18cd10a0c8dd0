from unittest.mock import AsyncMock, MagicMock, PropertyMock

import pytest

from healwright.dom.snapshot import (
    CAPTURE_JS,
    capture_elements,
    capture_environment,
    element_from_raw,
)

RAW_BUTTON = {
    "index": 4,
    "tag": "button",
    "id": None,
    "classes": ["btn"],
    "attributes": {"data-testid": "submit-btn"},
    "text": "Submit",
    "own_text": "Submit",
    "role": "button",
    "name": "Submit",
    "parent_index": 2,
    "depth": 3,
    "bounding_box": {"x": 10, "y": 20, "width": 80, "height": 30},
    "visible": True,
    "enabled": True,
    "interactive": True,
    "style": {"color": "rgb(0, 0, 0)", "font_size": "14px"},
}


@pytest.mark.unit
class TestElementFromRaw:
    def test_builds_snapshot(self) -> None:
        el = element_from_raw(RAW_BUTTON)
        assert el.tag == "button"
        assert el.attr("data-testid") == "submit-btn"
        assert el.attr("class") == "btn"
        assert el.bounding_box is not None
        assert el.bounding_box.center == (50, 35)
        assert el.style is not None and el.style.font_size == "14px"

    def test_missing_geometry_is_allowed(self) -> None:
        el = element_from_raw({"index": 0, "tag": "span"})
        assert el.bounding_box is None
        assert el.style is None
        assert el.text == ""


@pytest.mark.unit
class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_elements_skips_invalid_records(self) -> None:
        page = MagicMock()
        page.evaluate = AsyncMock(return_value=[RAW_BUTTON, {"tag": "div"}])
        elements = await capture_elements(page, limit=50)
        assert [e.index for e in elements] == [4]
        page.evaluate.assert_awaited_once_with(CAPTURE_JS, 50)

    @pytest.mark.asyncio
    async def test_capture_environment(self) -> None:
        page = MagicMock()
        page.url = "https://app.test/"
        page.title = AsyncMock(return_value="Home")
        page.screenshot = AsyncMock(return_value=b"png")
        env = await capture_environment(page)
        assert env.url == "https://app.test/"
        assert env.title == "Home"
        assert env.screenshot == "cG5n"

    @pytest.mark.asyncio
    async def test_capture_environment_degrades_to_unknown(self) -> None:
        page = MagicMock()
        page.title = AsyncMock(side_effect=RuntimeError("page closed"))
        env = await capture_environment(page)
        assert env.url == "unknown"
        assert env.title == "unknown"

    @pytest.mark.asyncio
    async def test_screenshot_failure_is_not_fatal(self) -> None:
        page = MagicMock()
        type(page).url = PropertyMock(return_value="https://app.test/")
        page.title = AsyncMock(return_value="Home")
        page.screenshot = AsyncMock(side_effect=RuntimeError("no screenshot"))
        env = await capture_environment(page)
        assert env.title == "Home"
        assert env.screenshot is None

    @pytest.mark.asyncio
    async def test_screenshot_skipped_when_disabled(self) -> None:
        page = MagicMock()
        page.url = "https://app.test/"
        page.title = AsyncMock(return_value="Home")
        page.screenshot = AsyncMock()
        env = await capture_environment(page, screenshot=False)
        assert env.screenshot is None
        page.screenshot.assert_not_awaited()
