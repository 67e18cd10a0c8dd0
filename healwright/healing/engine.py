"""Healing engine: run strategies, merge, score, rank and apply the mode policy."""

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from healwright.dom.snapshot import capture_elements, capture_environment
from healwright.exceptions import StorageError
from healwright.healing.scoring import ScoringAlgorithm
from healwright.models.domain import HealingResult, StoredResult, SuggestionRecord
from healwright.strategies.registry import build_strategies
from healwright.types import HealingMode

if TYPE_CHECKING:
    from healwright.config.schema import HealingConfig
    from healwright.healing.context import HealingContext
    from healwright.models.domain import Candidate, EnvironmentSnapshot, ScoredCandidate
    from healwright.storage.suggestion_store import SuggestionStore

logger = structlog.get_logger(__name__)

REASON_DISABLED = "Self-healing is disabled"
REASON_EXCLUDED = "Test is excluded from self-healing"
REASON_NO_CANDIDATES = "No candidates found"
REASON_SUGGESTION_ONLY = "Suggestion-only mode: candidates recorded, nothing applied"
REASON_ASSISTED = "Assisted mode: best candidate awaits approval"


def deduplicate(candidates: list[Candidate], original_locator: str) -> list[Candidate]:
    """Keep the first candidate per (locator, strategy); drop the failed locator itself."""
    seen: set[tuple[str, str]] = set()
    unique: list[Candidate] = []
    for cand in candidates:
        key = (cand.locator, cand.strategy)
        if key in seen or cand.locator.strip() == original_locator.strip():
            continue
        seen.add(key)
        unique.append(cand)
    return unique


class HealingEngine:
    """Produces a ``HealingResult`` for one failed locator. Never raises.

    Strategies run concurrently over a single document snapshot taken at the
    start of the attempt. Every completed attempt is appended to the
    suggestion store when one is configured, unless the caller passes
    ``persist=False`` to record the final outcome itself via ``record_outcome``.
    """

    def __init__(self, config: HealingConfig, store: SuggestionStore | None = None) -> None:
        self.config = config
        self.store = store
        self.strategies = build_strategies(config.strategies)
        self.scoring = ScoringAlgorithm(config)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def attempt_healing(
        self, context: HealingContext, *, persist: bool = True
    ) -> HealingResult:
        if not self.config.enabled:
            return HealingResult(success=False, reason=REASON_DISABLED)
        if self.config.is_test_excluded(context.test_name):
            logger.info("healing_skipped_excluded", test_name=context.test_name)
            return HealingResult(success=False, reason=REASON_EXCLUDED)

        attempt_id = uuid.uuid4().hex[:12]
        bind_contextvars(healing_attempt_id=attempt_id)
        try:
            logger.info(
                "healing_started",
                locator=context.original_locator,
                kind=context.descriptor.kind.value,
                test_name=context.test_name,
            )
            try:
                result = await self._heal(context)
            except Exception as e:
                logger.exception("healing_failed", locator=context.original_locator)
                result = HealingResult(success=False, reason=f"Healing error: {e}")
            if persist:
                await self.record_outcome(context, result)
            self._notify(context, result)
            return result
        finally:
            unbind_contextvars("healing_attempt_id")

    async def _heal(self, context: HealingContext) -> HealingResult:
        environment = await capture_environment(
            context.page,
            screenshot=self.config.screenshot_on_healing and context.screenshot is None,
        )
        if context.screenshot is not None:
            environment = environment.model_copy(update={"screenshot": context.screenshot})
        elements = await capture_elements(context.page)
        context = dataclasses.replace(context, elements=tuple(elements))

        groups = await asyncio.gather(*(s.find_candidates(context) for s in self.strategies))
        candidates = deduplicate([c for group in groups for c in group], context.original_locator)
        scored = self.scoring.score_all(candidates, context)
        scored.sort(
            key=lambda c: (
                -c.score,
                not c.unique,
                self.config.strategy_priority(c.strategy),
                c.locator,
            )
        )
        logger.info(
            "healing_candidates_ranked",
            elements=len(elements),
            candidates=len(scored),
            best=scored[0].locator if scored else None,
            best_score=round(scored[0].score, 2) if scored else None,
        )
        return self._apply_policy(scored, environment)

    def _apply_policy(
        self, scored: list[ScoredCandidate], environment: EnvironmentSnapshot
    ) -> HealingResult:
        if not scored:
            return HealingResult(
                success=False, reason=REASON_NO_CANDIDATES, environment=environment
            )
        best = scored[0]
        common = {
            "score": best.score,
            "strategy": best.strategy,
            "candidates": scored,
            "environment": environment,
        }
        mode = self.config.mode
        if mode == HealingMode.AUTO:
            threshold = self.config.auto_apply_threshold
            if best.score >= threshold:
                return HealingResult(
                    success=True, applied_locator=best.locator, applied=True, **common
                )
            return HealingResult(
                success=False,
                reason=(
                    f"Best candidate score {best.score:.1f} below auto-apply threshold "
                    f"{threshold:g}"
                ),
                **common,
            )
        if mode == HealingMode.ASSISTED:
            return HealingResult(
                success=True,
                applied_locator=best.locator,
                applied=False,
                reason=REASON_ASSISTED,
                **common,
            )
        return HealingResult(success=False, reason=REASON_SUGGESTION_ONLY, **common)

    async def record_outcome(self, context: HealingContext, result: HealingResult) -> None:
        """Append one attempt to the suggestion store. Storage errors are logged."""
        if self.store is None:
            return
        record = SuggestionRecord(
            result=StoredResult.from_result(result),
            applied=result.applied,
            test_name=context.test_name,
            original_locator=context.original_locator,
        )
        try:
            await self.store.store_suggestion(record)
        except StorageError as e:
            logger.warning("suggestion_store_failed", error=str(e))

    def _notify(self, context: HealingContext, result: HealingResult) -> None:
        if not (self.config.notify_on_heal and result.success):
            return
        logger.info(
            "locator_healed",
            original=context.original_locator,
            healed=result.applied_locator,
            score=round(result.score or 0.0, 2),
            strategy=result.strategy,
            applied=result.applied,
            test_name=context.test_name,
            line_number=context.line_number,
        )
