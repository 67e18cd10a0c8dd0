"""Resolution wrapper: run an action, heal on selector failures, retry once."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

from healwright.exceptions import LocatorParseError
from healwright.healing.context import HealingContext
from healwright.healing.engine import REASON_EXCLUDED, HealingEngine
from healwright.healing.errors import classify_failure
from healwright.healing.events import HealingEventLog
from healwright.models.domain import HealingEvent, HealingStatistics, SuggestionRecord
from healwright.storage.suggestion_store import SuggestionStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from healwright.config.schema import HealingConfig
    from healwright.models.domain import ElementSnapshot, HealingResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REASON_VALIDATION = "Healed locator failed validation"
REASON_RETRY_FAILED = "Healed locator failed on retry"


@dataclass(frozen=True)
class ResolutionOutcome(Generic[T]):
    """What a resolution produced and whether healing was needed for it."""

    value: T
    locator: str
    healed: bool = False
    healing_result: HealingResult | None = None


def annotate_failure(error: BaseException, result: HealingResult) -> None:
    """Attach healing diagnostics to the error that is about to propagate."""
    best = result.best
    summary = f"healing attempted: {result.reason or 'no usable candidate'}"
    summary += f"; {len(result.candidates)} candidate(s)"
    if best is not None:
        summary += f"; best {best.locator!r} ({best.strategy}, score {best.score:.1f})"
    error.add_note(summary)
    with contextlib.suppress(AttributeError, TypeError):
        error.healing_result = result  # type: ignore[attr-defined]


def _rejected(result: HealingResult, reason: str) -> HealingResult:
    return result.model_copy(update={"success": False, "applied": False, "reason": reason})


def _build_context(
    page: Any,
    locator: str,
    test_name: str | None,
    line_number: int | None,
    screenshot: str | None,
    previous_element: ElementSnapshot | None,
) -> HealingContext | None:
    try:
        return HealingContext(
            page=page,
            original_locator=locator,
            test_name=test_name,
            line_number=line_number,
            screenshot=screenshot,
            previous_element=previous_element,
        )
    except LocatorParseError as e:
        logger.warning("locator_unparseable", locator=locator, error=str(e))
        return None


class SelfHealingResolver:
    """Explicit healing handle owned by the test harness.

    ``resolve`` runs an action against a locator. When the action fails with
    a selector-related error the engine proposes a replacement; the
    replacement is validated against the live page and the action is retried
    exactly once. Any other outcome re-raises the original error. The final
    outcome of each healing attempt is stored once, after validation and the
    retry, so a rejected replacement never shows up as applied.

    Only auto-applied replacements are validated and retried. An
    assisted-mode pick comes back unapplied, so it is neither validated nor
    retried: the original error propagates with the pick attached and a
    person has to approve it.
    """

    def __init__(
        self,
        config: HealingConfig,
        store: SuggestionStore | None = None,
        events: HealingEventLog | None = None,
    ) -> None:
        self.events = events or HealingEventLog()
        self._engine: HealingEngine
        self.configure(config, store)

    def configure(self, config: HealingConfig, store: SuggestionStore | None = None) -> None:
        """Swap in a new configuration; in-flight resolutions keep the old one."""
        if store is None:
            store = SuggestionStore(config.storage_file, max_entries=config.max_suggestions)
        self._engine = HealingEngine(config, store=store)
        logger.debug("resolver_configured", enabled=config.enabled, mode=config.mode.value)

    @property
    def config(self) -> HealingConfig:
        return self._engine.config

    @property
    def engine(self) -> HealingEngine:
        return self._engine

    @property
    def store(self) -> SuggestionStore | None:
        return self._engine.store

    async def resolve(
        self,
        page: Any,
        locator: str,
        action: Callable[[str], Awaitable[T]],
        *,
        test_name: str | None = None,
        line_number: int | None = None,
        previous_element: ElementSnapshot | None = None,
        screenshot: str | None = None,
    ) -> ResolutionOutcome[T]:
        engine = self._engine
        try:
            return ResolutionOutcome(value=await action(locator), locator=locator)
        except Exception as original:
            if not engine.enabled:
                raise
            kind = classify_failure(original)
            if kind is None:
                raise
            logger.info("selector_failed", locator=locator, failure=kind.value, test_name=test_name)

            context = _build_context(
                page, locator, test_name, line_number, screenshot, previous_element
            )
            if context is None:
                raise

            result = await engine.attempt_healing(context, persist=False)
            healed = result.applied_locator if result.success and result.applied else None
            if healed is None:
                if result.reason != REASON_EXCLUDED:
                    await engine.record_outcome(context, result)
                annotate_failure(original, result)
                raise

            if not await self._validate(page, healed):
                logger.warning("healed_locator_rejected", original=locator, healed=healed)
                await engine.record_outcome(context, _rejected(result, REASON_VALIDATION))
                reason = f"healed locator {healed!r} did not resolve to exactly one element"
                annotate_failure(original, result.model_copy(update={"reason": reason}))
                raise

            try:
                value = await action(healed)
            except Exception as retry_error:
                logger.warning(
                    "healed_action_failed", original=locator, healed=healed, error=str(retry_error)
                )
                rejected = _rejected(result, f"{REASON_RETRY_FAILED}: {retry_error}")
                await engine.record_outcome(context, rejected)
                annotate_failure(original, rejected)
                raise original from retry_error

            await engine.record_outcome(context, result)
            self._record_success(engine, context, result, healed)
            return ResolutionOutcome(
                value=value, locator=healed, healed=True, healing_result=result
            )

    async def _validate(self, page: Any, locator: str) -> bool:
        """A healed locator is usable only if it resolves to exactly one element."""
        try:
            return await page.locator(locator).count() == 1
        except Exception as e:
            logger.debug("healed_locator_invalid", locator=locator, error=str(e))
            return False

    def _record_success(
        self,
        engine: HealingEngine,
        context: HealingContext,
        result: HealingResult,
        healed: str,
    ) -> None:
        score = result.score or 0.0
        event = HealingEvent(
            original_locator=context.original_locator,
            healed_locator=healed,
            score=round(score, 2),
            strategy=result.strategy or "",
            applied=True,
            auto_applied=score >= engine.config.auto_apply_threshold,
            test_name=context.test_name,
            line_number=context.line_number,
        )
        self.events.record(event)
        logger.info(
            "resolution_healed",
            original=context.original_locator,
            healed=healed,
            score=round(score, 2),
            strategy=result.strategy,
        )

    async def recent_suggestions(self, limit: int = 10) -> list[SuggestionRecord]:
        if self.store is None:
            return []
        return await self.store.get_recent(limit)

    async def statistics(self) -> HealingStatistics:
        if self.store is None:
            return HealingStatistics()
        return await self.store.get_statistics()
