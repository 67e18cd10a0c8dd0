"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from healwright.config.schema import HealingConfig
from healwright.models.domain import BoundingBox, ElementSnapshot, ElementStyle

ElementFactory = Callable[..., ElementSnapshot]
PageFactory = Callable[..., MagicMock]


def build_element(index: int, tag: str, **overrides: Any) -> ElementSnapshot:
    """Element snapshot with sensible defaults for a visible, enabled element."""
    data: dict[str, Any] = {
        "index": index,
        "tag": tag,
        "bounding_box": BoundingBox(x=10.0, y=10.0 + 40 * index, width=100.0, height=30.0),
        "style": ElementStyle(color="rgb(0, 0, 0)", font_size="14px", display="block"),
    }
    data.update(overrides)
    return ElementSnapshot(**data)


def build_page(
    elements: list[ElementSnapshot],
    counts: dict[str, int] | None = None,
    default_count: int = 1,
) -> MagicMock:
    """Fake Playwright page serving a fixed DOM snapshot.

    ``page.locator(sel).count()`` answers from ``counts``, falling back to
    ``default_count``.
    """
    page = MagicMock()
    page.url = "https://app.test/checkout"
    page.title = AsyncMock(return_value="Checkout")
    page.screenshot = AsyncMock(return_value=b"\x89PNG")
    page.evaluate = AsyncMock(return_value=[e.model_dump() for e in elements])
    lookup = counts or {}

    def _locator(selector: str) -> MagicMock:
        locator = MagicMock()
        locator.count = AsyncMock(return_value=lookup.get(selector, default_count))
        return locator

    page.locator = MagicMock(side_effect=_locator)
    return page


@pytest.fixture()
def make_element() -> ElementFactory:
    return build_element


@pytest.fixture()
def make_page() -> PageFactory:
    return build_page


@pytest.fixture()
def checkout_dom() -> list[ElementSnapshot]:
    """A form whose submit button lost its id but gained a test id."""
    return [
        build_element(0, "form", id="checkout", role="form", interactive=False, text="Submit"),
        build_element(
            1,
            "button",
            parent_index=0,
            depth=1,
            attributes={"data-testid": "submit-btn", "type": "submit"},
            classes=["btn", "btn-primary"],
            text="Submit",
            own_text="Submit",
            role="button",
            name="Submit",
            interactive=True,
        ),
        build_element(
            2,
            "a",
            parent_index=0,
            depth=1,
            attributes={"href": "/cart"},
            text="Back to cart",
            own_text="Back to cart",
            role="link",
            name="Back to cart",
            interactive=True,
        ),
    ]


@pytest.fixture()
def auto_config(tmp_path) -> HealingConfig:
    return HealingConfig(
        enabled=True,
        mode="auto",
        auto_apply_threshold=85,
        storage_file=str(tmp_path / "suggestions.json"),
        screenshot_on_healing=False,
    )
