"""Decompose an opaque locator string into a structured descriptor.

A locator is parsed once, when the failed resolution is captured, and every
strategy reads the resulting ``LocatorDescriptor``. Recognized inputs:

* CSS selectors (``#id``, ``.cls``, ``form > button[type=submit]``)
* Playwright selector engines (``role=``, ``text=``, ``css=``, ``xpath=``,
  ``data-testid=``, ``internal:role=``, ``>> nth=``)
* Locator calls in JS or Python form (``getByRole('button', { name: 'Go' })``,
  ``get_by_text("Go", exact=True)``, ``locator('...')``)
* XPath (``//form/button[@id='go']``, ``//a[text()='Home']``)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from healwright.exceptions import LocatorParseError
from healwright.types import LocatorKind

_Q = r"""['"`]([^'"`]+)['"`]"""

_ROLE_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[rR]ole\s*\(\s*{_Q}"),
    re.compile(r"(?<![\w-])(?:internal:)?role\s*=\s*['\"]?([a-zA-Z][\w-]*)"),
    re.compile(rf"\brole\s*:\s*{_Q}"),
]
_ROLE_NAME_PATTERNS = [
    re.compile(rf"\bname\s*[:=]\s*{_Q}"),
    re.compile(r"\[\s*name\s*=\s*([^\]\s'\"]+)"),
]
_LABEL_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[lL]abel\s*\(\s*{_Q}"),
    re.compile(rf"internal:label\s*=\s*{_Q}"),
    re.compile(rf"\blabel\s*:\s*{_Q}"),
]
_PLACEHOLDER_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[pP]laceholder\s*\(\s*{_Q}"),
    re.compile(rf"\bplaceholder\s*:\s*{_Q}"),
]
_TITLE_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[tT]itle\s*\(\s*{_Q}"),
    re.compile(rf"\btitle\s*:\s*{_Q}"),
]
_TEST_ID_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[tT]est_?[iI]d\s*\(\s*{_Q}"),
    re.compile(r"^data-testid\s*=\s*['\"]?([^'\"\]\s]+)"),
]
_TEXT_PATTERNS = [
    re.compile(rf"get_?[bB]y_?[tT]ext\s*\(\s*{_Q}"),
    re.compile(rf"has_?[tT]ext\s*[:=]\s*{_Q}"),
    re.compile(rf":has-text\(\s*{_Q}\s*\)"),
    re.compile(rf"text\(\)\s*=\s*{_Q}"),
    re.compile(rf"contains\(\s*(?:text\(\)|\.)\s*,\s*{_Q}\s*\)"),
]
_TEXT_ENGINE = re.compile(
    r"(?:^|>>\s*|(?<=['\"`(]))text\s*=\s*(?:(['\"])(.+?)\1|([^>'\"`)]+))"
)
_EXACT_FLAG = re.compile(r"\bexact\s*[:=]\s*(?:true|True)\b")
_LOCATOR_CALL = re.compile(r"\.?locator\s*\(\s*(['\"`])(.+?)\1\s*[,)]")
_NTH_PATTERNS = [
    re.compile(r">>\s*nth\s*=\s*(-?\d+)"),
    re.compile(r"\.nth\(\s*(-?\d+)\s*\)"),
    re.compile(r":nth-child\(\s*(\d+)\s*\)"),
]
_XPATH_ATTR = re.compile(r"@([\w:-]+)\s*=\s*['\"]([^'\"]*)['\"]")
_XPATH_STEP = re.compile(r"/+([a-zA-Z][\w-]*|\*)")
_CSS_ATTR = re.compile(r"\[\s*([\w:-]+)\s*[*^$~|]?=\s*['\"]?([^'\"\]]+?)['\"]?\s*[is]?\s*\]")
_FALLBACK_ID = re.compile(r"#([a-zA-Z_][\w-]*)")
_FALLBACK_CLASS = re.compile(r"\.([a-zA-Z_][\w-]*)")
_LEADING_TAG = re.compile(r"^([a-zA-Z][\w-]*)")
_BRACKETS = re.compile(r"\[[^\]]*\]")
_PSEUDO_ARGS = re.compile(r"\([^)]*\)")
_WORD_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")

IDENTIFYING_ATTRIBUTES = ("id", "data-testid", "data-test-id", "data-test", "data-qa", "name")

# Locator syntax vocabulary, ignored when comparing locator texts
SYNTAX_WORDS = frozenset(
    {
        "page", "locator", "get", "by", "role", "name", "text", "label", "placeholder",
        "title", "test", "id", "testid", "data", "css", "xpath", "internal", "exact",
        "true", "false", "nth", "has", "child", "visible", "class", "contains", "type",
        "value", "href", "alt", "aria", "first", "last", "filter", "i", "s",
    }
)  # fmt: skip


def split_words(value: str) -> list[str]:
    """Split identifiers like ``submitBtn`` or ``submit-btn_2`` into lowercase words."""
    return [w.lower() for w in _WORD_RE.findall(value)]


def locator_tokens(locator: str) -> set[str]:
    """Meaningful lowercase tokens of a locator, syntax words removed."""
    return {w for w in split_words(locator) if w not in SYNTAX_WORDS}


@dataclass(frozen=True)
class LocatorDescriptor:
    raw: str
    kind: LocatorKind = LocatorKind.UNKNOWN
    role: str | None = None
    name: str | None = None
    label: str | None = None
    placeholder: str | None = None
    title: str | None = None
    texts: tuple[str, ...] = ()
    exact_text: bool = False
    attributes: dict[str, str] = field(default_factory=dict)
    tag: str | None = None
    classes: tuple[str, ...] = ()
    css: str | None = None
    tag_hierarchy: tuple[str, ...] = ()
    parent_tag: str | None = None
    depth: int = 0
    nth: int | None = None

    @property
    def identifier_words(self) -> list[str]:
        """Words carried by id/test-id/name/class values, in order, deduplicated."""
        words: list[str] = []
        values = [self.attributes.get(a) for a in IDENTIFYING_ATTRIBUTES]
        values.extend(self.classes)
        for value in values:
            for w in split_words(value or ""):
                if w not in words:
                    words.append(w)
        return words

    @property
    def has_semantic_hints(self) -> bool:
        return any((self.role, self.name, self.label, self.placeholder, self.title))


def _first(patterns: list[re.Pattern[str]], text: str) -> str | None:
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            return m.group(1).strip()
    return None


def _extract_texts(raw: str) -> tuple[list[str], bool]:
    texts: list[str] = []
    exact = bool(_EXACT_FLAG.search(raw))
    for pattern in _TEXT_PATTERNS:
        texts.extend(m.group(1).strip() for m in pattern.finditer(raw))
    for m in _TEXT_ENGINE.finditer(raw):
        if m.group(2) is not None:
            texts.append(m.group(2).strip())
            exact = True
        elif m.group(3) and m.group(3).strip():
            texts.append(m.group(3).strip())
    unique: list[str] = []
    for t in texts:
        if t and t not in unique:
            unique.append(t)
    return unique, exact


def _css_source(raw: str) -> str | None:
    if raw.startswith("css="):
        return raw[4:].strip()
    call = _LOCATOR_CALL.search(raw)
    if call:
        inner = call.group(2).strip()
        return None if inner.startswith(("//", "xpath=", "text=", "role=")) else inner
    looks_engine = re.match(r"^(?:internal:)?[a-z-]+\s*=", raw) and not raw.startswith("[")
    if looks_engine or raw.startswith(("//", "(//")) or "(" in raw.split(":")[0]:
        return None
    return raw


def _strip_nth(css: str) -> str:
    return re.sub(r"\s*>>\s*nth\s*=\s*-?\d+\s*$", "", css).strip()


def parse_locator(locator: str) -> LocatorDescriptor:
    """Parse a locator string into a ``LocatorDescriptor``."""
    raw = (locator or "").strip()
    if not raw:
        raise LocatorParseError("empty locator")

    role = _first(_ROLE_PATTERNS, raw)
    name = _first(_ROLE_NAME_PATTERNS, raw) if role else None
    label = _first(_LABEL_PATTERNS, raw)
    placeholder = _first(_PLACEHOLDER_PATTERNS, raw)
    title = _first(_TITLE_PATTERNS, raw)
    texts, exact = _extract_texts(raw)
    nth_value = _first(_NTH_PATTERNS, raw)

    attributes: dict[str, str] = {}
    test_id = _first(_TEST_ID_PATTERNS, raw)
    if test_id:
        attributes["data-testid"] = test_id

    tag: str | None = None
    classes: list[str] = []
    hierarchy: list[str] = []
    css: str | None = None
    is_xpath = raw.startswith(("//", "(//", "xpath=")) or "xpath=" in raw

    if is_xpath:
        xpath = raw.split("xpath=", 1)[-1]
        for attr, value in _XPATH_ATTR.findall(xpath):
            attributes.setdefault(attr.lower(), value)
        hierarchy = [t.lower() for t in _XPATH_STEP.findall(xpath) if t != "*"]
        tag = hierarchy[-1] if hierarchy else None
    else:
        css = _css_source(raw)
        if css:
            css = _strip_nth(css)
            tag, classes, hierarchy = _describe_css(css, attributes)

    if "class" in attributes and not classes:
        classes = attributes["class"].split()
    if role is None and attributes.get("role"):
        role = attributes["role"]
    if label is None and attributes.get("aria-label"):
        label = attributes["aria-label"]
    if placeholder is None and attributes.get("placeholder"):
        placeholder = attributes["placeholder"]
    if title is None and attributes.get("title"):
        title = attributes["title"]

    kind = _classify(raw, role, test_id, label, placeholder, title, texts, is_xpath, css)
    return LocatorDescriptor(
        raw=raw,
        kind=kind,
        role=role.lower() if role else None,
        name=name,
        label=label,
        placeholder=placeholder,
        title=title,
        texts=tuple(texts),
        exact_text=exact,
        attributes=attributes,
        tag=tag,
        classes=tuple(classes),
        css=css,
        tag_hierarchy=tuple(hierarchy),
        parent_tag=hierarchy[-2] if len(hierarchy) >= 2 else None,
        depth=len(hierarchy),
        nth=int(nth_value) if nth_value is not None else None,
    )


def _compounds(css: str) -> list[str]:
    """Compound selectors of the first complex selector in a selector list."""
    compounds: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    for ch in css:
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch in "[(":
            depth += 1
        elif ch in "])":
            depth -= 1
        elif depth == 0 and ch == ",":
            break
        elif depth == 0 and (ch.isspace() or ch in ">+~"):
            if current:
                compounds.append("".join(current))
                current = []
            continue
        current.append(ch)
    if current:
        compounds.append("".join(current))
    return compounds


def _describe_css(css: str, attributes: dict[str, str]) -> tuple[str | None, list[str], list[str]]:
    """Pull tag, classes and attributes of the subject element out of a CSS selector."""
    compounds = _compounds(css)
    hierarchy: list[str] = []
    for compound in compounds:
        leading = _LEADING_TAG.match(compound)
        if leading:
            hierarchy.append(leading.group(1).lower())
    if not compounds:
        return None, [], hierarchy

    subject = compounds[-1]
    bare = _PSEUDO_ARGS.sub("", _BRACKETS.sub("", subject))
    if m := _FALLBACK_ID.search(bare):
        attributes.setdefault("id", m.group(1))
    for attr, value in _CSS_ATTR.findall(subject):
        attributes.setdefault(attr.lower(), value)
    classes = _FALLBACK_CLASS.findall(bare)
    if classes:
        attributes.setdefault("class", " ".join(classes))
    leading = _LEADING_TAG.match(subject)
    return (leading.group(1).lower() if leading else None), classes, hierarchy


def _classify(
    raw: str,
    role: str | None,
    test_id: str | None,
    label: str | None,
    placeholder: str | None,
    title: str | None,
    texts: list[str],
    is_xpath: bool,
    css: str | None,
) -> LocatorKind:
    lowered = raw.lower()
    if role and ("role" in lowered.split("[")[0] or "by_role" in lowered or "byrole" in lowered):
        return LocatorKind.ROLE
    if test_id:
        return LocatorKind.TEST_ID
    if label and ("label" in lowered.split("[")[0]):
        return LocatorKind.LABEL
    if placeholder and "placeholder" in lowered.split("[")[0]:
        return LocatorKind.PLACEHOLDER
    if title and "title" in lowered.split("[")[0]:
        return LocatorKind.TITLE
    if is_xpath:
        return LocatorKind.XPATH
    if texts and (css is None or lowered.startswith("text")):
        return LocatorKind.TEXT
    if css:
        return LocatorKind.CSS
    if role:
        return LocatorKind.ROLE
    return LocatorKind.UNKNOWN
