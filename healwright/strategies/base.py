"""Abstract healing strategy interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import structlog

from healwright.models.domain import Candidate

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from healwright.healing.context import HealingContext
    from healwright.models.domain import ElementSnapshot
    from healwright.types import StrategyName

logger = structlog.get_logger(__name__)


class HealingStrategy(ABC):
    """Base for all candidate-generating strategies.

    Strategies only read the shared ``HealingContext``; they never touch the
    page, so any number of them can run concurrently over one snapshot.
    """

    name: ClassVar[StrategyName]
    # Confidence used for candidates that do not carry their own
    base_score: ClassVar[float]

    async def find_candidates(self, context: HealingContext) -> list[Candidate]:
        """Return candidates for the failed locator; an internal failure yields none."""
        try:
            candidates = list(self.collect(context))
        except Exception as e:
            logger.warning("strategy_failed", strategy=self.name, error=str(e))
            return []
        logger.debug("strategy_candidates", strategy=self.name, count=len(candidates))
        return candidates

    @abstractmethod
    def collect(self, context: HealingContext) -> Iterable[Candidate]:
        """Yield candidates computed from the context's element snapshot."""

    def candidate(
        self,
        locator: str,
        element: ElementSnapshot | None,
        rationale: str,
        confidence: float | None = None,
        match_count: int = 1,
    ) -> Candidate:
        return Candidate(
            locator=locator,
            strategy=self.name,
            rationale=rationale,
            element=element,
            confidence=None if confidence is None else max(0.0, min(100.0, confidence)),
            match_count=max(match_count, 0),
        )


def guarded(
    strategy: str,
    evaluate: Callable[[ElementSnapshot], Iterable[Candidate]],
    elements: Iterable[ElementSnapshot],
) -> list[Candidate]:
    """Run ``evaluate`` per element, skipping elements that fail to evaluate."""
    out: list[Candidate] = []
    for el in elements:
        try:
            out.extend(evaluate(el))
        except Exception as e:
            logger.debug("candidate_skipped", strategy=strategy, element=el.index, error=str(e))
    return out


def count_where(
    elements: Iterable[ElementSnapshot], predicate: Callable[[ElementSnapshot], bool]
) -> int:
    return sum(1 for el in elements if predicate(el))
