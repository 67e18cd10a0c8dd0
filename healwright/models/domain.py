"""Inter-module data contracts for healing attempts, suggestions and code patches."""

from __future__ import annotations

import math
import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from healwright.types import StrategyName


def now_ms() -> int:
    return int(time.time() * 1000)


class _Record(BaseModel):
    """Base for models persisted or emitted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def distance_to(self, other: BoundingBox) -> float:
        """Distance between the top-left corners."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def center_distance_to(self, other: BoundingBox) -> float:
        (ax, ay), (bx, by) = self.center, other.center
        return math.hypot(ax - bx, ay - by)


class ElementStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: str | None = None
    background_color: str | None = None
    font_size: str | None = None
    font_weight: str | None = None
    display: str | None = None


class ElementSnapshot(BaseModel):
    """One DOM element as captured from the live page.

    The snapshot goes stale as soon as the document changes; it is only
    meaningful within the healing attempt that captured it.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    tag: str
    id: str | None = None
    classes: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    text: str = ""
    own_text: str = ""
    role: str | None = None
    name: str | None = None  # accessible name
    parent_index: int | None = None
    depth: int = 0
    bounding_box: BoundingBox | None = None
    visible: bool = True
    enabled: bool = True
    interactive: bool = False
    style: ElementStyle | None = None

    def attr(self, name: str) -> str | None:
        if name == "id":
            return self.id
        if name == "class":
            return " ".join(self.classes) or None
        return self.attributes.get(name)


class EnvironmentSnapshot(BaseModel):
    url: str = "unknown"
    title: str = "unknown"
    timestamp: int = Field(default_factory=now_ms)
    screenshot: str | None = None  # base64 PNG


class Candidate(BaseModel):
    """A replacement locator proposed by exactly one strategy."""

    model_config = ConfigDict(frozen=True)

    locator: str
    strategy: StrategyName
    rationale: str
    element: ElementSnapshot | None = None
    confidence: float | None = None
    match_count: int = 1

    @property
    def unique(self) -> bool:
        return self.match_count == 1


class ScoredCandidate(Candidate):
    score: float = Field(ge=0, le=100)


class HealingResult(BaseModel):
    """Outcome of one orchestrator invocation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    applied_locator: str | None = None
    score: float | None = None
    strategy: StrategyName | None = None
    reason: str | None = None
    candidates: list[ScoredCandidate] = Field(default_factory=list)
    applied: bool = False
    environment: EnvironmentSnapshot | None = None

    @property
    def best(self) -> ScoredCandidate | None:
        return self.candidates[0] if self.candidates else None


class CandidateSummary(_Record):
    locator: str
    strategy: str
    score: float
    rationale: str = ""


class StoredResult(_Record):
    """Persisted projection of a HealingResult (element references dropped)."""

    success: bool
    applied_locator: str | None = None
    score: float | None = None
    strategy: str | None = None
    reason: str | None = None
    applied: bool = False
    candidates: list[CandidateSummary] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: HealingResult) -> StoredResult:
        return cls(
            success=result.success,
            applied_locator=result.applied_locator,
            score=result.score,
            strategy=result.strategy,
            reason=result.reason,
            applied=result.applied,
            candidates=[
                CandidateSummary(
                    locator=c.locator,
                    strategy=c.strategy,
                    score=round(c.score, 2),
                    rationale=c.rationale,
                )
                for c in result.candidates
            ],
        )


class SuggestionRecord(_Record):
    timestamp: int = Field(default_factory=now_ms)
    result: StoredResult
    applied: bool = False
    test_name: str | None = None
    original_locator: str | None = None


class HealingStatistics(_Record):
    total: int = 0
    successful: int = 0
    applied: int = 0
    average_score: float = 0.0


class HealingEvent(_Record):
    """Trace record consumed by the external review surface."""

    type: Literal["locator-healed"] = "locator-healed"
    original_locator: str
    healed_locator: str
    score: float
    strategy: str
    applied: bool
    auto_applied: bool
    test_name: str | None = None
    line_number: int | None = None
    timestamp: int = Field(default_factory=now_ms)


class CodeModificationRequest(BaseModel):
    file_path: str
    line_number: int  # 1-based
    original_locator: str
    healed_locator: str
    create_backup: bool = True


class CodeModificationResult(BaseModel):
    success: bool
    modified_file_path: str
    backup_file_path: str | None = None
    modified_line: int | None = None
    error: str | None = None
