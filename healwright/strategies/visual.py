"""Visual strategy: position, size and style relative to the last known element."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healwright.strategies.base import HealingStrategy
from healwright.strategies.similarity import quote
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healwright.dom.document import ElementIndex
    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, ElementSnapshot, ElementStyle

POSITION_RADIUS = 100.0
SIZE_TOLERANCE = 0.2
SIMILARITY_THRESHOLD = 50.0
FALLBACK_START = 60.0
FALLBACK_FLOOR = 30.0
FALLBACK_LIMIT = 20

_ROLE_TAGS = {
    "button": "button",
    "link": "a",
    "textbox": "input",
    "checkbox": "input",
    "radio": "input",
    "combobox": "select",
    "img": "img",
    "heading": "h1",
}


def visual_locator(el: ElementSnapshot, index: ElementIndex) -> str:
    if el.id:
        return f"{el.tag}#{el.id}"
    if el.own_text:
        return f"{el.tag}:has-text({quote(el.own_text[:30])})"
    return f"{el.tag} >> nth={index.same_tag_position(el)}"


def match_count(locator: str, index: ElementIndex) -> int:
    # ">> nth=k" always narrows to a single element
    if " >> nth=" in locator:
        return 1
    return index.count(locator)


def style_similarity(a: ElementStyle | None, b: ElementStyle | None) -> float:
    """Share of compared style properties that are equal, 0-100."""
    if a is None or b is None:
        return 0.0
    keys = ("color", "background_color", "font_size", "font_weight", "display")
    compared = [(getattr(a, k), getattr(b, k)) for k in keys]
    compared = [(x, y) for x, y in compared if x is not None or y is not None]
    if not compared:
        return 0.0
    return 100.0 * sum(1 for x, y in compared if x == y) / len(compared)


class VisualStrategy(HealingStrategy):
    """Find the element that looks like, and sits where, the old one did.

    Needs a previously captured element for geometry and style; without one
    it falls back to ranking visible interactive elements in document order,
    which is a weak signal and scored accordingly.
    """

    name = StrategyName.VISUAL
    base_score = 50.0

    def collect(self, context: HealingContext) -> Iterator[Candidate]:
        best: dict[str, Candidate] = {}
        for cand in self._raw_candidates(context):
            kept = best.get(cand.locator)
            if kept is None or (cand.confidence or 0) > (kept.confidence or 0):
                best[cand.locator] = cand
        yield from sorted(best.values(), key=lambda c: -(c.confidence or 0))

    def _raw_candidates(self, context: HealingContext) -> Iterator[Candidate]:
        previous = context.previous_element
        index = context.index
        visible = [
            (el, el.bounding_box)
            for el in context.elements
            if el.visible and el.bounding_box is not None
        ]
        if previous is None or previous.bounding_box is None:
            yield from self._fallback(context, index)
            return

        tag = context.descriptor.tag or previous.tag or _ROLE_TAGS.get(context.descriptor.role or "")
        box = previous.bounding_box
        for el, el_box in visible:
            if not (el.interactive or el.own_text):
                continue
            distance = el_box.distance_to(box)
            proximity = max(0.0, 100.0 - distance)
            width_diff = abs(el_box.width - box.width) / max(box.width, 1.0)
            height_diff = abs(el_box.height - box.height) / max(box.height, 1.0)
            size = max(0.0, 100.0 * (1 - (width_diff + height_diff) / 2))
            locator = visual_locator(el, index)
            count = match_count(locator, index)

            similarity = (
                (20.0 if el.tag == tag else 0.0)
                + style_similarity(el.style, previous.style) * 0.4
                + proximity * 0.2
                + size * 0.2
            )
            if similarity > SIMILARITY_THRESHOLD:
                yield self.candidate(
                    locator, el, f"Visually similar element ({similarity:.0f}%)", similarity, count
                )
            if distance <= POSITION_RADIUS:
                yield self.candidate(
                    locator,
                    el,
                    f"Element near previous position ({distance:.0f}px away)",
                    100.0 - distance,
                    count,
                )
            if width_diff <= SIZE_TOLERANCE and height_diff <= SIZE_TOLERANCE:
                yield self.candidate(
                    locator,
                    el,
                    f"Element with similar size ({el_box.width:.0f}x{el_box.height:.0f})",
                    (1 - (width_diff + height_diff) / 2) * 100,
                    count,
                )

    def _fallback(self, context: HealingContext, index: ElementIndex) -> Iterator[Candidate]:
        ranked = [el for el in context.elements if el.visible and el.interactive]
        for i, el in enumerate(ranked[:FALLBACK_LIMIT]):
            locator = visual_locator(el, index)
            yield self.candidate(
                locator,
                el,
                "Visible interactive element (no previous position known)",
                max(FALLBACK_START - i, FALLBACK_FLOOR),
                match_count(locator, index),
            )
