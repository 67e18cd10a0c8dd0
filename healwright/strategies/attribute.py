"""Attribute strategy: ids, test ids, names, classes and other attributes."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from healwright.locator.parser import IDENTIFYING_ATTRIBUTES
from healwright.strategies.base import HealingStrategy, count_where, guarded
from healwright.strategies.similarity import PATTERN_SIMILARITY, attribute_similarity, quote
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, ElementSnapshot

EXACT_CONFIDENCE = 100.0
FUZZY_BASE = 70.0
PATTERN_CONFIDENCE = 80.0
CLASS_TOKEN_CONFIDENCE = 70.0
CLASS_PREFIX_CONFIDENCE = 65.0

# Handled by the semantic strategy
_SEMANTIC_ATTRIBUTES = frozenset({"aria-label", "placeholder", "title", "role"})
_IDENT_RE = re.compile(r"^-?[_a-zA-Z][\w-]*$")
_NUMERIC_SUFFIX = re.compile(r"[-_]?\d+$")


def attribute_locator(attribute: str, value: str) -> str:
    if attribute == "id" and _IDENT_RE.match(value):
        return f"#{value}"
    return f"[{attribute}={quote(value)}]"


def attribute_count(elements: tuple[ElementSnapshot, ...], attribute: str, value: str) -> int:
    return count_where(elements, lambda e: e.attr(attribute) == value)


class AttributeStrategy(HealingStrategy):
    """Match the original's attribute values against every captured element.

    Identifying attributes (id, test ids, name) are compared across each
    other, so a renamed ``#submit`` can resurface as
    ``[data-testid="submit-btn"]``. Other attributes only match themselves.
    """

    name = StrategyName.ATTRIBUTE
    base_score = 60.0

    def collect(self, context: HealingContext) -> Iterator[Candidate]:
        d = context.descriptor
        elements = context.elements
        attributes = {
            k: v
            for k, v in d.attributes.items()
            if k not in _SEMANTIC_ATTRIBUTES and k != "class" and v
        }
        for attribute, value in attributes.items():
            yield from guarded(
                self.name,
                lambda el, a=attribute, v=value: self._match_value(el, a, v, elements),
                elements,
            )
        for cls in d.classes:
            yield from self._match_class(cls, elements)

    def _match_value(
        self,
        el: ElementSnapshot,
        attribute: str,
        value: str,
        elements: tuple[ElementSnapshot, ...],
    ) -> Iterator[Candidate]:
        exact = el.attr(attribute)
        if exact == value:
            yield self.candidate(
                attribute_locator(attribute, value),
                el,
                f"Exact attribute match: {attribute}={value!r}",
                EXACT_CONFIDENCE,
                attribute_count(elements, attribute, value),
            )
            return

        compared = IDENTIFYING_ATTRIBUTES if attribute in IDENTIFYING_ATTRIBUTES else (attribute,)
        for other in compared:
            actual = el.attr(other)
            if not actual or (other == attribute and actual == value):
                continue
            ratio = attribute_similarity(actual, value)
            if ratio <= 0:
                continue
            if ratio == PATTERN_SIMILARITY and value.lower() not in actual.lower():
                confidence = PATTERN_CONFIDENCE
                how = "Same value pattern"
            else:
                confidence = FUZZY_BASE + 30 * ratio
                how = "Similar attribute value"
            yield self.candidate(
                attribute_locator(other, actual),
                el,
                f"{how}: {other}={actual!r} (original: {attribute}={value!r})",
                confidence,
                attribute_count(elements, other, actual),
            )

    def _match_class(
        self, cls: str, elements: tuple[ElementSnapshot, ...]
    ) -> Iterator[Candidate]:
        if len(cls) >= 3 and _IDENT_RE.match(cls):
            with_class = [el for el in elements if cls in el.classes]
            if with_class:
                yield self.candidate(
                    f".{cls}",
                    with_class[0],
                    f"Class token match: {cls!r}",
                    CLASS_TOKEN_CONFIDENCE,
                    len(with_class),
                )
        base = _NUMERIC_SUFFIX.sub("", cls)
        if base != cls and len(base) > 3:
            prefixed = [el for el in elements if any(c.startswith(base) for c in el.classes)]
            # [class*=base] matches the whole class attribute, count it the same way
            total = count_where(elements, lambda e: base in (e.attr("class") or ""))
            if prefixed:
                yield self.candidate(
                    f"[class*={quote(base)}]",
                    prefixed[0],
                    f"Class prefix match: {base!r} (original class {cls!r})",
                    CLASS_PREFIX_CONFIDENCE,
                    total,
                )
