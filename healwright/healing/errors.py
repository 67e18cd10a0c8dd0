"""Classification of resolution failures into selector and non-selector errors."""

from __future__ import annotations

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from healwright.types import FailureKind

# Checked in order: Playwright timeout messages also carry "waiting for
# locator", so the more specific kinds come first.
_MESSAGE_PATTERNS: list[tuple[FailureKind, tuple[str, ...]]] = [
    (
        FailureKind.MULTIPLE_MATCHES,
        ("strict mode violation", "resolved to multiple elements", "multiple elements"),
    ),
    (FailureKind.DETACHED, ("not attached", "detached from", "element is detached")),
    (
        FailureKind.NOT_FOUND,
        ("element not found", "no such element", "no element matches", "unable to locate"),
    ),
    (FailureKind.TIMEOUT, ("timeout", "waiting for selector", "waiting for locator")),
]


def classify_failure(error: BaseException) -> FailureKind | None:
    """Return the selector failure kind, or None for unrelated errors."""
    message = str(error).lower()
    for kind, needles in _MESSAGE_PATTERNS:
        if any(needle in message for needle in needles):
            return kind
    if isinstance(error, PlaywrightTimeoutError):
        return FailureKind.TIMEOUT
    return None


def is_selector_failure(error: BaseException) -> bool:
    return classify_failure(error) is not None
