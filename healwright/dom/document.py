"""Queryable document rebuilt from captured element snapshots.

The snapshots are re-assembled into a BeautifulSoup tree so CSS selectors
are answered by soupsieve. Two Playwright-only extensions are mapped onto
it: ``:has-text("...")`` becomes a case-insensitive ``:-soup-contains("...")``
and ``:visible`` filters the matched elements on their captured visibility.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from healwright.models.domain import ElementSnapshot

_HAS_TEXT = re.compile(r":has-text\(([^)]*)\)")
_VISIBLE = re.compile(r":visible\b")


def _soup_contains(m: re.Match[str]) -> str:
    return f":-soup-contains({m.group(1).lower()})"


def _attrs(el: ElementSnapshot) -> dict[str, str | list[str]]:
    attrs: dict[str, str | list[str]] = dict(el.attributes)
    if el.id:
        attrs["id"] = el.id
    if el.classes:
        attrs["class"] = list(el.classes)
    else:
        attrs.pop("class", None)
    if not el.enabled:
        attrs.setdefault("disabled", "")
    return attrs


class ElementIndex:
    """Lookup structure over one captured element list."""

    def __init__(self, elements: Iterable[ElementSnapshot]) -> None:
        self.elements: list[ElementSnapshot] = sorted(elements, key=lambda e: e.index)
        self._by_index = {e.index: e for e in self.elements}
        self._children: dict[int | None, list[ElementSnapshot]] = {}
        for el in self.elements:
            self._children.setdefault(el.parent_index, []).append(el)
        self._soup = BeautifulSoup("<html><body></body></html>", "html.parser")
        self._owners: dict[int, ElementSnapshot] = {}
        self._build()

    def _build(self) -> None:
        body = self._soup.body
        nodes: dict[int, Tag] = {}
        for el in self.elements:
            node = self._soup.new_tag(el.tag.lower(), attrs=_attrs(el))
            text = el.own_text or ("" if self._children.get(el.index) else el.text)
            if text:
                # Lowercased so :has-text stays case-insensitive
                node.append(text.lower())
            nodes[el.index] = node
            self._owners[id(node)] = el
        # Parents precede their children in document order
        for el in self.elements:
            parent = nodes.get(el.parent_index) if el.parent_index is not None else None
            (parent or body).append(nodes[el.index])

    def parent(self, el: ElementSnapshot) -> ElementSnapshot | None:
        if el.parent_index is None:
            return None
        return self._by_index.get(el.parent_index)

    def children(self, el: ElementSnapshot) -> list[ElementSnapshot]:
        return list(self._children.get(el.index, []))

    def ancestors(self, el: ElementSnapshot) -> list[ElementSnapshot]:
        chain: list[ElementSnapshot] = []
        node = self.parent(el)
        while node is not None:
            chain.append(node)
            node = self.parent(node)
        return chain

    def child_position(self, el: ElementSnapshot) -> int:
        """1-based position among element siblings."""
        siblings = self._children.get(el.parent_index, [])
        for i, sib in enumerate(siblings, start=1):
            if sib.index == el.index:
                return i
        return 0

    def same_tag_position(self, el: ElementSnapshot) -> int:
        """0-based position among all elements with the same tag (Playwright ``nth``)."""
        return sum(1 for e in self.elements if e.tag == el.tag and e.index < el.index)

    def query_all(self, selector: str) -> list[ElementSnapshot]:
        """Elements matching a CSS selector, in document order.

        Raises ``soupsieve.SelectorSyntaxError`` for selectors soupsieve
        cannot compile.
        """
        visible_only = bool(_VISIBLE.search(selector))
        css = _HAS_TEXT.sub(_soup_contains, _VISIBLE.sub("", selector)).strip()
        matches = [
            self._owners[id(node)]
            for node in self._soup.select(css)
            if id(node) in self._owners
        ]
        if visible_only:
            return [el for el in matches if el.visible]
        return matches

    def count(self, selector: str) -> int:
        try:
            return len(self.query_all(selector))
        except SelectorSyntaxError:
            return 0
