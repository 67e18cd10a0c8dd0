"""Capture of the live document into element snapshots."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from healwright.models.domain import (
    BoundingBox,
    ElementSnapshot,
    ElementStyle,
    EnvironmentSnapshot,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = structlog.get_logger(__name__)

MAX_ELEMENTS = 3000

# JavaScript returning every element under <body> in document order
CAPTURE_JS = """
(limit) => {
    const skip = new Set(['SCRIPT', 'STYLE', 'META', 'LINK', 'NOSCRIPT', 'TEMPLATE']);
    const inputRoles = {
        checkbox: 'checkbox', radio: 'radio', submit: 'button', button: 'button',
        reset: 'button', image: 'button', range: 'slider', number: 'spinbutton',
        search: 'searchbox',
    };
    const tagRoles = {
        BUTTON: 'button', SELECT: 'combobox', TEXTAREA: 'textbox', IMG: 'img',
        NAV: 'navigation', MAIN: 'main', FORM: 'form', UL: 'list', OL: 'list',
        LI: 'listitem', TABLE: 'table', DIALOG: 'dialog', H1: 'heading', H2: 'heading',
        H3: 'heading', H4: 'heading', H5: 'heading', H6: 'heading', HEADER: 'banner',
        FOOTER: 'contentinfo', ASIDE: 'complementary', OPTION: 'option',
    };
    const interactiveRoles = new Set(['button', 'link', 'checkbox', 'radio', 'textbox',
        'combobox', 'searchbox', 'menuitem', 'tab', 'switch', 'option', 'slider']);
    const norm = (s) => (s || '').replace(/\\s+/g, ' ').trim();

    const implicitRole = (el) => {
        if (el.tagName === 'A') return el.hasAttribute('href') ? 'link' : null;
        if (el.tagName === 'INPUT') {
            const type = (el.getAttribute('type') || 'text').toLowerCase();
            return inputRoles[type] || 'textbox';
        }
        return tagRoles[el.tagName] || null;
    };

    const accessibleName = (el) => {
        const aria = el.getAttribute('aria-label');
        if (aria) return norm(aria);
        const labelledBy = el.getAttribute('aria-labelledby');
        if (labelledBy) {
            const text = labelledBy.split(/\\s+/)
                .map(id => document.getElementById(id))
                .filter(Boolean).map(n => n.textContent).join(' ');
            if (norm(text)) return norm(text);
        }
        if (el.labels && el.labels.length) return norm(el.labels[0].textContent);
        const alt = el.getAttribute('alt');
        if (alt) return norm(alt);
        if (['INPUT', 'TEXTAREA', 'SELECT'].includes(el.tagName)) {
            return norm(el.getAttribute('placeholder') || el.getAttribute('title') || '');
        }
        return norm(el.innerText || el.textContent || el.getAttribute('title') || '');
    };

    const indexOf = new Map();
    const out = [];
    const all = document.body ? document.body.querySelectorAll('*') : [];
    for (const el of all) {
        if (out.length >= limit) break;
        if (skip.has(el.tagName)) continue;
        const index = out.length;
        indexOf.set(el, index);
        const rect = el.getBoundingClientRect();
        const cs = window.getComputedStyle(el);
        const attributes = {};
        for (const attr of el.attributes) {
            if (['id', 'class', 'style'].includes(attr.name)) continue;
            attributes[attr.name] = attr.value.slice(0, 200);
        }
        let ownText = '';
        for (const node of el.childNodes) {
            if (node.nodeType === Node.TEXT_NODE) ownText += node.textContent;
        }
        let depth = 0;
        for (let p = el.parentElement; p && p !== document.body; p = p.parentElement) depth++;
        const role = el.getAttribute('role') || implicitRole(el);
        out.push({
            index,
            tag: el.tagName.toLowerCase(),
            id: el.id || null,
            classes: [...el.classList],
            attributes,
            text: norm(el.innerText || el.textContent).slice(0, 200),
            own_text: norm(ownText).slice(0, 200),
            role,
            name: accessibleName(el).slice(0, 200) || null,
            parent_index: indexOf.has(el.parentElement) ? indexOf.get(el.parentElement) : null,
            depth,
            bounding_box: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
            visible: rect.width > 0 && rect.height > 0
                && cs.visibility !== 'hidden' && cs.display !== 'none',
            enabled: !el.disabled && el.getAttribute('aria-disabled') !== 'true',
            interactive: ['A', 'BUTTON', 'INPUT', 'SELECT', 'TEXTAREA'].includes(el.tagName)
                || interactiveRoles.has(role) || el.hasAttribute('onclick'),
            style: {
                color: cs.color,
                background_color: cs.backgroundColor,
                font_size: cs.fontSize,
                font_weight: cs.fontWeight,
                display: cs.display,
            },
        });
    }
    return out;
}
"""


def element_from_raw(raw: dict[str, Any]) -> ElementSnapshot:
    """Build an ElementSnapshot from one record returned by CAPTURE_JS."""
    box = raw.get("bounding_box")
    style = raw.get("style")
    return ElementSnapshot(
        index=raw["index"],
        tag=raw["tag"],
        id=raw.get("id"),
        classes=raw.get("classes") or [],
        attributes=raw.get("attributes") or {},
        text=raw.get("text") or "",
        own_text=raw.get("own_text") or "",
        role=raw.get("role"),
        name=raw.get("name"),
        parent_index=raw.get("parent_index"),
        depth=raw.get("depth", 0),
        bounding_box=BoundingBox(**box) if box else None,
        visible=raw.get("visible", True),
        enabled=raw.get("enabled", True),
        interactive=raw.get("interactive", False),
        style=ElementStyle(**style) if style else None,
    )


async def capture_elements(page: Page, limit: int = MAX_ELEMENTS) -> list[ElementSnapshot]:
    """Snapshot every element of the page in document order."""
    raw_elements: list[dict[str, Any]] = await page.evaluate(CAPTURE_JS, limit)
    elements: list[ElementSnapshot] = []
    for raw in raw_elements:
        try:
            elements.append(element_from_raw(raw))
        except (KeyError, TypeError, ValidationError):
            logger.debug("element_snapshot_skipped", index=raw.get("index"))
    return elements


async def capture_environment(page: Page, screenshot: bool = True) -> EnvironmentSnapshot:
    """Best-effort url/title/screenshot of the page; never raises."""
    try:
        url = page.url
        title = await page.title()
    except Exception as e:
        logger.debug("environment_capture_failed", error=str(e))
        return EnvironmentSnapshot()

    shot: str | None = None
    if screenshot:
        try:
            shot = base64.b64encode(await page.screenshot()).decode("ascii")
        except Exception as e:
            logger.warning("screenshot_capture_failed", error=str(e))
    return EnvironmentSnapshot(url=url, title=title, screenshot=shot)
