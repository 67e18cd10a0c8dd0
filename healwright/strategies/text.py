"""Text strategy: visible text content, exact then partial."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healwright.strategies.base import HealingStrategy, guarded
from healwright.strategies.similarity import is_text_similar, normalize_text, quote, word_overlap
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healwright.dom.document import ElementIndex
    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, ElementSnapshot

EXACT_CONFIDENCE = 95.0
PARTIAL_BASE = 60.0
MAX_TEXT_LENGTH = 100


def display_text(el: ElementSnapshot, index: ElementIndex) -> str:
    """Text an element shows itself: its own text nodes, or all text of a leaf."""
    if el.own_text:
        return el.own_text
    return el.text if not index.children(el) else ""


class TextStrategy(HealingStrategy):
    name = StrategyName.TEXT
    base_score = 80.0

    def collect(self, context: HealingContext) -> Iterator[Candidate]:
        texts = context.descriptor.texts
        if not texts:
            return
        index = context.index
        shown = {el.index: display_text(el, index) for el in context.elements}
        counts: dict[str, int] = {}
        for value in shown.values():
            key = normalize_text(value)
            if key:
                counts[key] = counts.get(key, 0) + 1

        for text in texts:
            yield from guarded(
                self.name,
                lambda el, t=text: self._evaluate(el, t, shown[el.index], counts),
                context.elements,
            )

    def _evaluate(
        self, el: ElementSnapshot, text: str, actual: str, counts: dict[str, int]
    ) -> Iterator[Candidate]:
        if not actual or len(actual) > MAX_TEXT_LENGTH or not el.visible:
            return
        match_count = counts.get(normalize_text(actual), 1)
        if normalize_text(actual) == normalize_text(text):
            yield self.candidate(
                f"text={quote(actual)}",
                el,
                f"Exact text match: {actual!r}",
                EXACT_CONFIDENCE,
                match_count,
            )
            return
        if normalize_text(text) in normalize_text(actual) or is_text_similar(actual, text):
            overlap = word_overlap(actual, text, min_length=2)
            if not overlap and normalize_text(text) in normalize_text(actual):
                overlap = len(text) / len(actual)
            yield self.candidate(
                f"text={quote(actual)}",
                el,
                f"Partial text match: {actual!r} for {text!r} ({overlap:.0%} word overlap)",
                PARTIAL_BASE + 30 * min(overlap, 1.0),
                match_count,
            )
