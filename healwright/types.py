"""Enums and type aliases for healwright."""

from enum import StrEnum


class HealingMode(StrEnum):
    AUTO = "auto"
    ASSISTED = "assisted"
    SUGGESTION_ONLY = "suggestion-only"


class StrategyName(StrEnum):
    SEMANTIC = "semantic"
    TEXT = "text"
    STRUCTURAL = "structural"
    ATTRIBUTE = "attribute"
    VISUAL = "visual"


class LocatorKind(StrEnum):
    CSS = "css"
    ROLE = "role"
    TEXT = "text"
    TEST_ID = "test_id"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    TITLE = "title"
    XPATH = "xpath"
    UNKNOWN = "unknown"


class FailureKind(StrEnum):
    NOT_FOUND = "not_found"
    DETACHED = "detached"
    TIMEOUT = "timeout"
    MULTIPLE_MATCHES = "multiple_matches"
