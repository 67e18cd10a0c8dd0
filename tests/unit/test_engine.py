from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from healwright.config.schema import HealingConfig
from healwright.healing.context import HealingContext
from healwright.healing.engine import (
    REASON_DISABLED,
    REASON_NO_CANDIDATES,
    HealingEngine,
    deduplicate,
)
from healwright.models.domain import Candidate
from healwright.storage.suggestion_store import SuggestionStore
from healwright.strategies.attribute import AttributeStrategy
from healwright.types import StrategyName


def _engine(config: HealingConfig, store: SuggestionStore | None = None) -> HealingEngine:
    return HealingEngine(config, store=store)


def _with(config: HealingConfig, changes: dict) -> HealingConfig:
    return HealingConfig(**{**config.model_dump(), **changes})


@pytest.mark.unit
class TestHealingScenarios:
    @pytest.mark.asyncio
    async def test_renamed_id_is_auto_applied(self, auto_config, make_page, checkout_dom) -> None:
        engine = _engine(auto_config)
        page = make_page(checkout_dom)
        result = await engine.attempt_healing(HealingContext(page=page, original_locator="#submit"))
        assert result.success is True
        assert result.applied is True
        assert result.applied_locator == '[data-testid="submit-btn"]'
        assert result.strategy == StrategyName.ATTRIBUTE
        assert result.score is not None and result.score >= 90
        attribute = [c for c in result.candidates if c.strategy == StrategyName.ATTRIBUTE]
        assert attribute[0].locator == '[data-testid="submit-btn"]'
        assert attribute[0].score >= 90
        semantic = [c for c in result.candidates if c.strategy == StrategyName.SEMANTIC]
        assert semantic and semantic[0].score >= 80
        assert result.environment is not None
        assert result.environment.url == "https://app.test/checkout"

    @pytest.mark.asyncio
    async def test_no_plausible_candidate(self, auto_config, make_page, checkout_dom) -> None:
        engine = _engine(auto_config)
        page = make_page(checkout_dom)
        result = await engine.attempt_healing(
            HealingContext(page=page, original_locator="#nonexistent-widget")
        )
        assert result.success is False
        assert result.reason == REASON_NO_CANDIDATES
        assert result.candidates == []

    @pytest.mark.asyncio
    async def test_text_changed(self, auto_config, make_page, make_element) -> None:
        page = make_page(
            [
                make_element(
                    0,
                    "button",
                    own_text="Submit Form",
                    text="Submit Form",
                    role="button",
                    name="Submit Form",
                    interactive=True,
                )
            ]
        )
        result = await _engine(auto_config).attempt_healing(
            HealingContext(page=page, original_locator='text="Submit"')
        )
        assert result.success is True
        assert result.applied_locator == 'text="Submit Form"'
        assert "100%" in result.candidates[0].rationale

    @pytest.mark.asyncio
    async def test_excluded_test_runs_no_strategy(
        self, make_page, checkout_dom, tmp_path
    ) -> None:
        config = HealingConfig(
            enabled=True,
            mode="auto",
            exclude_tests=["flaky"],
            storage_file=str(tmp_path / "s.json"),
        )
        engine = _engine(config)
        page = make_page(checkout_dom)
        with patch.object(AttributeStrategy, "collect") as collect:
            result = await engine.attempt_healing(
                HealingContext(page=page, original_locator="#submit", test_name="flaky checkout")
            )
        assert result.success is False
        assert "excluded" in (result.reason or "")
        collect.assert_not_called()
        page.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled(self, make_page, checkout_dom) -> None:
        result = await _engine(HealingConfig(enabled=False)).attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        assert result.success is False
        assert result.reason == REASON_DISABLED


@pytest.mark.unit
class TestModes:
    @pytest.mark.asyncio
    async def test_auto_below_threshold(self, auto_config, make_page, checkout_dom) -> None:
        config = _with(auto_config, {"auto_apply_threshold": 99.5})
        result = await _engine(config).attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        assert result.success is False
        assert result.applied is False
        assert "threshold" in (result.reason or "")
        assert result.candidates

    @pytest.mark.asyncio
    async def test_assisted_never_applies(self, auto_config, make_page, checkout_dom) -> None:
        config = _with(auto_config, {"mode": "assisted"})
        result = await _engine(config).attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        assert result.success is True
        assert result.applied is False
        assert result.applied_locator == '[data-testid="submit-btn"]'

    @pytest.mark.asyncio
    async def test_suggestion_only_never_succeeds(
        self, auto_config, make_page, checkout_dom
    ) -> None:
        config = _with(auto_config, {"mode": "suggestion-only"})
        result = await _engine(config).attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        assert result.success is False
        assert result.applied is False
        assert result.applied_locator is None
        assert result.candidates[0].locator == '[data-testid="submit-btn"]'


@pytest.mark.unit
class TestOrchestration:
    def test_deduplicate_keeps_first_per_strategy(self) -> None:
        cands = [
            Candidate(locator="#a", strategy=StrategyName.ATTRIBUTE, rationale="1", confidence=90),
            Candidate(locator="#a", strategy=StrategyName.ATTRIBUTE, rationale="2", confidence=50),
            Candidate(locator="#a", strategy=StrategyName.STRUCTURAL, rationale="3"),
            Candidate(locator="#orig", strategy=StrategyName.STRUCTURAL, rationale="4"),
        ]
        unique = deduplicate(cands, "#orig")
        assert [(c.locator, c.strategy, c.rationale) for c in unique] == [
            ("#a", StrategyName.ATTRIBUTE, "1"),
            ("#a", StrategyName.STRUCTURAL, "3"),
        ]

    @pytest.mark.asyncio
    async def test_candidates_are_sorted_and_deterministic(
        self, auto_config, make_page, checkout_dom
    ) -> None:
        engine = _engine(_with(auto_config, {"strategies": list(StrategyName)}))
        first = await engine.attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        second = await engine.attempt_healing(
            HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        )
        scores = [c.score for c in first.candidates]
        assert scores == sorted(scores, reverse=True)
        assert [(c.locator, c.strategy, c.score) for c in first.candidates] == [
            (c.locator, c.strategy, c.score) for c in second.candidates
        ]
        assert all(0 <= c.score <= 100 for c in first.candidates)

    @pytest.mark.asyncio
    async def test_failing_strategy_does_not_abort(
        self, auto_config, make_page, checkout_dom
    ) -> None:
        engine = _engine(auto_config)
        with patch.object(AttributeStrategy, "collect", side_effect=RuntimeError("boom")):
            result = await engine.attempt_healing(
                HealingContext(page=make_page(checkout_dom), original_locator="#submit")
            )
        assert all(c.strategy != StrategyName.ATTRIBUTE for c in result.candidates)
        assert result.candidates[0].strategy == StrategyName.SEMANTIC

    @pytest.mark.asyncio
    async def test_capture_failure_is_reported_not_raised(
        self, auto_config, make_page, checkout_dom
    ) -> None:
        page = make_page(checkout_dom)
        page.evaluate.side_effect = RuntimeError("Target closed")
        result = await _engine(auto_config).attempt_healing(
            HealingContext(page=page, original_locator="#submit")
        )
        assert result.success is False
        assert "Target closed" in (result.reason or "")

    @pytest.mark.asyncio
    async def test_outcome_is_persisted(
        self, auto_config, make_page, checkout_dom, tmp_path
    ) -> None:
        store = SuggestionStore(tmp_path / "suggestions.json")
        engine = _engine(auto_config, store=store)
        await engine.attempt_healing(
            HealingContext(
                page=make_page(checkout_dom), original_locator="#submit", test_name="checkout"
            )
        )
        [record] = await store.load_suggestions()
        assert record.applied is True
        assert record.test_name == "checkout"
        assert record.original_locator == "#submit"
        assert record.result.applied_locator == '[data-testid="submit-btn"]'

    @pytest.mark.asyncio
    async def test_caller_can_defer_persistence(
        self, auto_config, make_page, checkout_dom, tmp_path
    ) -> None:
        store = SuggestionStore(tmp_path / "suggestions.json")
        engine = _engine(auto_config, store=store)
        context = HealingContext(page=make_page(checkout_dom), original_locator="#submit")
        result = await engine.attempt_healing(context, persist=False)
        assert result.applied is True
        assert await store.load_suggestions() == []

        await engine.record_outcome(context, result)
        [record] = await store.load_suggestions()
        assert record.applied is True

    @pytest.mark.asyncio
    async def test_notify_logs_healed_locator(self, auto_config, make_page, checkout_dom) -> None:
        config = _with(auto_config, {"notify_on_heal": True})
        with capture_logs() as logs:
            await _engine(config).attempt_healing(
                HealingContext(page=make_page(checkout_dom), original_locator="#submit")
            )
        healed = [e for e in logs if e["event"] == "locator_healed"]
        assert len(healed) == 1
        assert healed[0]["original"] == "#submit"
        assert healed[0]["healed"] == '[data-testid="submit-btn"]'
