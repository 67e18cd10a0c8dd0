"""Text and attribute similarity heuristics shared by the strategies."""

from __future__ import annotations

import json
import re

UUID_RE = re.compile(r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}")
PATTERN_SIMILARITY = 0.8


def normalize_text(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip().lower()


def quote(value: str) -> str:
    """Quote a value for use inside a selector (``"Sign in"``)."""
    return json.dumps(value, ensure_ascii=False)


def word_overlap(a: str, b: str, min_length: int = 0) -> float:
    """Shared words divided by the word count of the shorter text."""
    words_a = [w for w in normalize_text(a).split(" ") if len(w) > min_length]
    words_b = [w for w in normalize_text(b).split(" ") if len(w) > min_length]
    if not words_a or not words_b:
        return 0.0
    shared = sum(1 for w in words_a if w in words_b)
    return shared / min(len(words_a), len(words_b))


def is_label_similar(a: str, b: str) -> bool:
    """Exact, substring, or at least half the words shared."""
    na, nb = normalize_text(a), normalize_text(b)
    if not na or not nb:
        return False
    if na == nb or na in nb or nb in na:
        return True
    return word_overlap(na, nb) >= 0.5


def is_text_similar(a: str, b: str) -> bool:
    """Exact, near-complete substring (70%), or at least 60% word overlap."""
    na, nb = normalize_text(a), normalize_text(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    shorter, longer = sorted((na, nb), key=len)
    if shorter in longer and len(shorter) >= len(longer) * 0.7:
        return True
    return word_overlap(na, nb, min_length=2) >= 0.6


def extract_pattern(value: str) -> str | None:
    """Shape of a generated value with digits or UUIDs masked out."""
    masked = UUID_RE.sub("UUID", value)
    if masked != value and len(masked) > 3:
        return masked
    masked = re.sub(r"\d+", "#", value)
    if masked != value and len(masked) > 3:
        return masked
    return None


def attribute_similarity(actual: str, original: str) -> float:
    """Similarity of two attribute values in [0, 1]; 0 means not similar.

    Exact matches score 1. A substring match counts when the shorter value
    covers at least 60% of the longer one and scores that ratio. Values
    sharing a generated pattern (digits or UUIDs masked) score
    ``PATTERN_SIMILARITY``.
    """
    a, b = actual.strip().lower(), original.strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        shorter, longer = sorted((a, b), key=len)
        ratio = len(shorter) / len(longer)
        return ratio if ratio >= 0.6 else 0.0
    pattern_a, pattern_b = extract_pattern(a), extract_pattern(b)
    if pattern_a and pattern_a == pattern_b:
        return PATTERN_SIMILARITY
    return 0.0
