"""Structural strategy: DOM position, tag/class signature and selector variants."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from soupsieve import SelectorSyntaxError

from healwright.strategies.base import HealingStrategy
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healwright.dom.document import ElementIndex
    from healwright.healing.context import HealingContext
    from healwright.locator.parser import LocatorDescriptor
    from healwright.models.domain import Candidate, ElementSnapshot

VARIATION_CONFIDENCE = 70.0
AMBIGUOUS_PENALTY = 10.0
NTH_CONFIDENCE = 55.0
MAX_SIGNATURE_CANDIDATES = 10

_ID_RE = re.compile(r"#[_a-zA-Z][\w-]*")
_CLASS_RE = re.compile(r"\.[_a-zA-Z][\w-]*")
_NTH_RE = re.compile(r":nth-child\(\s*\d+\s*\)")
_IDENT_RE = re.compile(r"^-?[_a-zA-Z][\w-]*$")


def css_variations(css: str) -> list[str]:
    """Loosened forms of a CSS selector, most specific first."""
    variations: list[str] = []

    def add(value: str) -> None:
        value = re.sub(r"\s+", " ", value).strip()
        value = re.sub(r"^\s*>\s*|\s*>\s*$", "", value).strip()
        if value and value != css and value not in variations:
            variations.append(value)

    add(_ID_RE.sub("", css))
    add(_CLASS_RE.sub("", css))
    add(_NTH_RE.sub("", css))

    parts = [p for p in re.split(r"\s*>\s*|\s+", css) if p]
    tags = [m.group(0) for p in parts if (m := re.match(r"^[a-zA-Z][\w-]*", p))]
    if len(tags) == len(parts) and len(parts) > 1:
        add(" > ".join(tags))
        add(" ".join(tags))
    if len(parts) > 2:
        add(" > ".join(parts[-2:]))
        add(" ".join(parts[-2:]))
    if len(parts) > 3:
        add(" ".join(parts[-3:]))
        add(f"{parts[0]} {' '.join(parts[-2:])}")
    return variations


def element_css(el: ElementSnapshot, index: ElementIndex) -> str:
    """A CSS selector for ``el`` that is unique within the snapshot where possible."""
    if el.id and _IDENT_RE.match(el.id) and index.count(f"#{el.id}") == 1:
        return f"#{el.id}"
    own = el.tag + "".join(f".{c}" for c in el.classes[:2] if _IDENT_RE.match(c))
    if index.count(own) == 1:
        return own
    parent = index.parent(el)
    if parent is not None:
        parent_part = parent.tag
        if parent.id and _IDENT_RE.match(parent.id):
            parent_part = f"{parent.tag}#{parent.id}"
        scoped = f"{parent_part} > {own}"
        if index.count(scoped) == 1:
            return scoped
        return f"{scoped}:nth-child({index.child_position(el)})"
    return f"{own}:nth-child({index.child_position(el)})"


class StructuralStrategy(HealingStrategy):
    """Recover a locator from where the element sat in the document.

    Three sources of candidates: loosened variants of the original CSS, the
    element signature (tag, classes, parent tag) compared against every
    captured element, and neighbouring positions when the original used an
    index.
    """

    name = StrategyName.STRUCTURAL
    base_score = 70.0

    def collect(self, context: HealingContext) -> Iterator[Candidate]:
        d = context.descriptor
        index = context.index
        if d.css:
            yield from self._variations(d.css, index)
        if d.tag or d.classes:
            yield from self._signature_matches(d, index)
        if d.nth is not None and d.css:
            yield from self._nth_neighbours(d.css, d.nth, index)

    def _variations(self, css: str, index: ElementIndex) -> Iterator[Candidate]:
        for variation in css_variations(css):
            try:
                matches = index.query_all(variation)
            except SelectorSyntaxError:
                continue
            if not matches:
                continue
            penalty = AMBIGUOUS_PENALTY if len(matches) > 1 else 0.0
            yield self.candidate(
                variation,
                matches[0],
                f"Loosened selector {variation!r} ({len(matches)} match(es))",
                VARIATION_CONFIDENCE - penalty,
                len(matches),
            )

    def _signature_matches(self, d: LocatorDescriptor, index: ElementIndex) -> Iterator[Candidate]:
        scored: list[tuple[float, ElementSnapshot]] = []
        wanted = set(d.classes)
        for el in index.elements:
            tag_match = d.tag is not None and el.tag == d.tag
            shared = wanted & set(el.classes)
            if not tag_match and not shared:
                continue
            if d.tag is not None and not tag_match:
                continue
            class_score = len(shared) / len(wanted | set(el.classes)) if wanted else 0.0
            parent = index.parent(el)
            parent_match = d.parent_tag is not None and parent is not None and (
                parent.tag == d.parent_tag
            )
            confidence = 40 + (20 if tag_match else 0) + 25 * class_score + (
                15 if parent_match else 0
            )
            scored.append((confidence, el))

        scored.sort(key=lambda item: (-item[0], item[1].index))
        for confidence, el in scored[:MAX_SIGNATURE_CANDIDATES]:
            locator = element_css(el, index)
            yield self.candidate(
                locator,
                el,
                f"Structural signature match: <{el.tag}> at depth {el.depth}",
                confidence,
                index.count(locator),
            )

    def _nth_neighbours(self, css: str, nth: int, index: ElementIndex) -> Iterator[Candidate]:
        base = _NTH_RE.sub("", css).strip()
        try:
            matches = index.query_all(base)
        except SelectorSyntaxError:
            return
        for offset in (-1, 1, -2, 2):
            position = nth + offset
            if 0 <= position < len(matches):
                yield self.candidate(
                    f"{base} >> nth={position}",
                    matches[position],
                    f"Neighbouring position {position} of {base!r}",
                    NTH_CONFIDENCE - 5 * abs(offset),
                )
