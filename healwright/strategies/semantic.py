"""Semantic strategy: roles, accessible names, labels, placeholders, titles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healwright.strategies.base import HealingStrategy, count_where
from healwright.strategies.similarity import is_label_similar, normalize_text, quote
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, ElementSnapshot

ROLE_EXACT = 90.0
ROLE_SIMILAR = 80.0
INFERRED_EXACT = 85.0
INFERRED_SIMILAR = 75.0
LABEL_EXACT = 90.0
LABEL_SIMILAR = 75.0
PLACEHOLDER_EXACT = 85.0
PLACEHOLDER_SIMILAR = 75.0
TITLE_EXACT = 80.0
TITLE_SIMILAR = 70.0
ROLE_ONLY = 60.0

_FORM_TAGS = ("input", "textarea", "select")


def role_name_matches(el: ElementSnapshot, role: str, name: str) -> bool:
    """Playwright ``role=...[name="..."]`` semantics.

    Hidden elements are not in the accessibility tree and never match; the
    name is a case-insensitive substring.
    """
    return el.visible and el.role == role and name.lower() in (el.name or "").lower()


def role_locator(role: str, name: str | None = None) -> str:
    return f"role={role}[name={quote(name)}]" if name else f"role={role}"


class SemanticStrategy(HealingStrategy):
    """Find elements by what they mean rather than how they are styled.

    Uses the role, name, label, placeholder and title carried by the original
    locator. A bare CSS or id locator has none of these, so its identifier
    words (``#submit-button`` gives "submit button") are tried as an
    accessible name of interactive elements.
    """

    name = StrategyName.SEMANTIC
    base_score = 90.0

    def collect(self, context: HealingContext) -> Iterator[Candidate]:
        d = context.descriptor
        elements = context.elements
        if d.role:
            yield from self._by_role(elements, d.role, d.name or d.label)
        elif not d.has_semantic_hints and d.identifier_words:
            yield from self._by_inferred_name(elements, " ".join(d.identifier_words))
        if d.label:
            yield from self._by_label(elements, d.label)
        if d.placeholder:
            yield from self._by_attribute(
                elements, "placeholder", d.placeholder, PLACEHOLDER_EXACT, PLACEHOLDER_SIMILAR
            )
        if d.title:
            yield from self._by_attribute(elements, "title", d.title, TITLE_EXACT, TITLE_SIMILAR)

    def _by_role(
        self, elements: tuple[ElementSnapshot, ...], role: str, name: str | None
    ) -> Iterator[Candidate]:
        same_role = [el for el in elements if el.role == role]
        if not same_role:
            return
        if name:
            for el in same_role:
                if not el.name or not is_label_similar(el.name, name):
                    continue
                exact = normalize_text(el.name) == normalize_text(name)
                yield self.candidate(
                    role_locator(role, el.name),
                    el,
                    f"Role {role} with {'matching' if exact else 'similar'} name "
                    f"{el.name!r} (original: {name!r})",
                    ROLE_EXACT if exact else ROLE_SIMILAR,
                    count_where(elements, lambda e, n=el.name: role_name_matches(e, role, n)),
                )
        first = next((el for el in same_role if el.visible), same_role[0])
        yield self.candidate(
            role_locator(role),
            first,
            f"Element with role {role}",
            ROLE_ONLY,
            count_where(same_role, lambda e: e.visible),
        )

    def _by_inferred_name(
        self, elements: tuple[ElementSnapshot, ...], hint: str
    ) -> Iterator[Candidate]:
        for el in elements:
            if not (el.interactive and el.role and el.name):
                continue
            if not is_label_similar(el.name, hint):
                continue
            exact = normalize_text(el.name) == normalize_text(hint)
            role = el.role
            yield self.candidate(
                role_locator(role, el.name),
                el,
                f"Accessible name {el.name!r} matches identifier words {hint!r}",
                INFERRED_EXACT if exact else INFERRED_SIMILAR,
                count_where(elements, lambda e, n=el.name, r=role: role_name_matches(e, r, n)),
            )

    def _by_label(self, elements: tuple[ElementSnapshot, ...], label: str) -> Iterator[Candidate]:
        for el in elements:
            aria = el.attr("aria-label")
            if aria and is_label_similar(aria, label):
                exact = normalize_text(aria) == normalize_text(label)
                yield self.candidate(
                    f"[aria-label={quote(aria)}]",
                    el,
                    f"aria-label {aria!r} matches label {label!r}",
                    LABEL_EXACT if exact else LABEL_SIMILAR,
                    count_where(elements, lambda e, a=aria: e.attr("aria-label") == a),
                )
            elif el.tag in _FORM_TAGS and el.role and el.name and is_label_similar(el.name, label):
                exact = normalize_text(el.name) == normalize_text(label)
                yield self.candidate(
                    role_locator(el.role, el.name),
                    el,
                    f"Form field labelled {el.name!r} matches label {label!r}",
                    LABEL_EXACT if exact else LABEL_SIMILAR,
                    count_where(
                        elements, lambda e, r=el.role, n=el.name: role_name_matches(e, r, n)
                    ),
                )

    def _by_attribute(
        self,
        elements: tuple[ElementSnapshot, ...],
        attribute: str,
        value: str,
        exact_confidence: float,
        similar_confidence: float,
    ) -> Iterator[Candidate]:
        for el in elements:
            actual = el.attr(attribute)
            if not actual or not is_label_similar(actual, value):
                continue
            exact = normalize_text(actual) == normalize_text(value)
            yield self.candidate(
                f"[{attribute}={quote(actual)}]",
                el,
                f"{attribute} {actual!r} matches {value!r}",
                exact_confidence if exact else similar_confidence,
                count_where(elements, lambda e, a=actual: e.attr(attribute) == a),
            )
