"""Candidate scoring: one number in [0, 100] per candidate."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from healwright.locator.parser import locator_tokens
from healwright.models.domain import ScoredCandidate
from healwright.strategies.registry import BASE_SCORES

if TYPE_CHECKING:
    from healwright.config.schema import HealingConfig
    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, ElementSnapshot

logger = structlog.get_logger(__name__)

SIMILARITY_WEIGHT = 30.0
VISIBILITY_WEIGHT = 20.0
POSITION_WEIGHT = 15.0


def locator_similarity(candidate: str, original: str) -> float:
    """Overlap coefficient of meaningful locator tokens, 0-100."""
    a, b = locator_tokens(candidate), locator_tokens(original)
    if not a or not b:
        return 0.0
    return 100.0 * len(a & b) / min(len(a), len(b))


def visibility_score(element: ElementSnapshot | None) -> float:
    if element is None:
        return 0.0
    return (70.0 if element.visible else 0.0) + (30.0 if element.enabled else 0.0)


def position_score(element: ElementSnapshot | None, previous: ElementSnapshot | None) -> float:
    if element is None or previous is None:
        return 0.0
    if element.bounding_box is None or previous.bounding_box is None:
        return 0.0
    return max(0.0, 100.0 - element.bounding_box.center_distance_to(previous.bounding_box))


class ScoringAlgorithm:
    """Weighted blend of strategy confidence and candidate-level signals.

    Components, each 0-100:

    * strategy confidence (the candidate's own, else the strategy's base),
      weighted by the strategy's normalized weight
    * token similarity between candidate and original locator (weight 30)
    * visibility and enabled state of the matched element (weight 20)
    * closeness to the previously known position (weight 15, only when a
      previous element is known)

    The weighted average is clamped to [0, 100]. The same inputs always give
    the same score.
    """

    def __init__(self, config: HealingConfig) -> None:
        self._weights = config.normalized_weights()

    def score(self, candidate: Candidate, context: HealingContext) -> float:
        weight = self._weights.get(candidate.strategy, 0.0)
        confidence = candidate.confidence
        if confidence is None:
            confidence = BASE_SCORES.get(candidate.strategy, 50.0)

        total = weight * confidence
        total += SIMILARITY_WEIGHT * locator_similarity(
            candidate.locator, context.original_locator
        )
        total += VISIBILITY_WEIGHT * visibility_score(candidate.element)
        divisor = weight + SIMILARITY_WEIGHT + VISIBILITY_WEIGHT
        if context.previous_element is not None:
            total += POSITION_WEIGHT * position_score(candidate.element, context.previous_element)
            divisor += POSITION_WEIGHT
        return max(0.0, min(100.0, total / divisor))

    def score_all(
        self, candidates: list[Candidate], context: HealingContext
    ) -> list[ScoredCandidate]:
        """Score every candidate; ones that cannot be scored are dropped."""
        scored: list[ScoredCandidate] = []
        for cand in candidates:
            try:
                value = self.score(cand, context)
            except Exception as e:
                logger.debug("candidate_unscorable", locator=cand.locator, error=str(e))
                continue
            scored.append(ScoredCandidate(**dict(cand), score=value))
        return scored
