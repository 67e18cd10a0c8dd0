import pytest

from healwright.healing.context import HealingContext
from healwright.strategies.attribute import AttributeStrategy
from healwright.strategies.base import HealingStrategy
from healwright.strategies.registry import STRATEGY_REGISTRY, build_strategies
from healwright.strategies.semantic import SemanticStrategy
from healwright.strategies.structural import StructuralStrategy, css_variations
from healwright.strategies.text import TextStrategy
from healwright.strategies.visual import VisualStrategy
from healwright.types import StrategyName


def _context(locator: str, elements, **kwargs) -> HealingContext:
    return HealingContext(page=None, original_locator=locator, elements=tuple(elements), **kwargs)


def _by_locator(candidates) -> dict:
    return {c.locator: c for c in candidates}


@pytest.mark.unit
class TestSemanticStrategy:
    @pytest.mark.asyncio
    async def test_role_with_similar_name(self, make_element) -> None:
        elements = [
            make_element(0, "button", role="button", name="Submit order", interactive=True),
            make_element(1, "button", role="button", name="Cancel", interactive=True),
        ]
        found = _by_locator(
            await SemanticStrategy().find_candidates(
                _context('role=button[name="Submit"]', elements)
            )
        )
        similar = found['role=button[name="Submit order"]']
        assert similar.confidence == 80
        assert similar.unique
        assert found["role=button"].confidence == 60
        assert found["role=button"].match_count == 2

    @pytest.mark.asyncio
    async def test_hidden_elements_are_not_counted(self, make_element) -> None:
        elements = [
            make_element(0, "button", role="button", name="Submit order", interactive=True),
            make_element(
                1,
                "button",
                role="button",
                name="Submit order draft",
                interactive=True,
                visible=False,
            ),
        ]
        found = _by_locator(
            await SemanticStrategy().find_candidates(
                _context('role=button[name="Submit order"]', elements)
            )
        )
        visible = found['role=button[name="Submit order"]']
        assert visible.match_count == 1
        assert visible.unique
        assert found['role=button[name="Submit order draft"]'].match_count == 0
        assert found["role=button"].match_count == 1

    @pytest.mark.asyncio
    async def test_exact_name_scores_higher(self, make_element) -> None:
        elements = [make_element(0, "button", role="button", name="submit", interactive=True)]
        found = _by_locator(
            await SemanticStrategy().find_candidates(
                _context("getByRole('button', { name: 'Submit' })", elements)
            )
        )
        assert found['role=button[name="submit"]'].confidence == 90

    @pytest.mark.asyncio
    async def test_infers_name_from_identifier(self, checkout_dom) -> None:
        found = _by_locator(
            await SemanticStrategy().find_candidates(_context("#submit", checkout_dom))
        )
        assert set(found) == {'role=button[name="Submit"]'}
        assert found['role=button[name="Submit"]'].confidence == 85

    @pytest.mark.asyncio
    async def test_label_matches_labelled_field(self, make_element) -> None:
        elements = [
            make_element(0, "input", role="textbox", name="Email address", interactive=True)
        ]
        found = _by_locator(
            await SemanticStrategy().find_candidates(_context("getByLabel('Email')", elements))
        )
        assert found['role=textbox[name="Email address"]'].confidence == 75

    @pytest.mark.asyncio
    async def test_placeholder(self, make_element) -> None:
        elements = [
            make_element(0, "input", attributes={"placeholder": "Search products"}),
        ]
        found = _by_locator(
            await SemanticStrategy().find_candidates(
                _context("getByPlaceholder('Search')", elements)
            )
        )
        assert found['[placeholder="Search products"]'].confidence == 75

    @pytest.mark.asyncio
    async def test_no_hints_no_candidates(self, make_element) -> None:
        elements = [make_element(0, "div")]
        assert await SemanticStrategy().find_candidates(_context("div > span", elements)) == []


@pytest.mark.unit
class TestTextStrategy:
    @pytest.mark.asyncio
    async def test_partial_match_reports_overlap(self, make_element) -> None:
        elements = [make_element(0, "button", own_text="Submit Form", text="Submit Form")]
        [cand] = await TextStrategy().find_candidates(_context('text="Submit"', elements))
        assert cand.locator == 'text="Submit Form"'
        assert cand.strategy == StrategyName.TEXT
        assert cand.confidence == pytest.approx(90)
        assert "100%" in cand.rationale

    @pytest.mark.asyncio
    async def test_exact_match_ignores_case_and_spacing(self, make_element) -> None:
        elements = [make_element(0, "a", own_text="Check  out", text="Check out")]
        [cand] = await TextStrategy().find_candidates(_context("text=check out", elements))
        assert cand.locator == 'text="Check  out"'
        assert cand.confidence == 95

    @pytest.mark.asyncio
    async def test_hidden_and_unrelated_elements_skipped(self, make_element) -> None:
        elements = [
            make_element(0, "button", own_text="Submit", visible=False),
            make_element(1, "button", own_text="Cancel"),
        ]
        assert await TextStrategy().find_candidates(_context('text="Submit"', elements)) == []

    @pytest.mark.asyncio
    async def test_match_count_counts_duplicates(self, make_element) -> None:
        elements = [
            make_element(0, "button", own_text="Save"),
            make_element(1, "button", own_text="Save"),
        ]
        candidates = await TextStrategy().find_candidates(_context("text=save", elements))
        assert {c.match_count for c in candidates} == {2}

    @pytest.mark.asyncio
    async def test_locator_without_text_yields_nothing(self, checkout_dom) -> None:
        assert await TextStrategy().find_candidates(_context("#submit", checkout_dom)) == []


@pytest.mark.unit
class TestStructuralStrategy:
    def test_css_variations(self) -> None:
        css = "div#app > ul.menu > li:nth-child(3) > a"
        variations = css_variations(css)
        assert css not in variations
        assert "div > ul.menu > li:nth-child(3) > a" in variations
        assert "div#app > ul > li:nth-child(3) > a" in variations
        assert "div#app > ul.menu > li > a" in variations
        assert "div > ul > li > a" in variations
        assert "li:nth-child(3) > a" in variations
        assert len(variations) == len(set(variations))

    @pytest.mark.asyncio
    async def test_loosened_selector_and_signature(self, make_element) -> None:
        elements = [
            make_element(0, "form", classes=["checkout"]),
            make_element(1, "button", classes=["btn-primary"], parent_index=0, depth=1),
        ]
        found = _by_locator(
            await StructuralStrategy().find_candidates(
                _context("form.checkout > button.primary", elements)
            )
        )
        assert found["form > button"].confidence == 70
        assert found["form > button"].unique
        signature = found["button.btn-primary"]
        # tag and parent tag match, no class overlap
        assert signature.confidence == 75
        assert signature.element is not None and signature.element.index == 1

    @pytest.mark.asyncio
    async def test_ambiguous_variation_is_penalized(self, make_element) -> None:
        elements = [
            make_element(0, "ul"),
            make_element(1, "li", parent_index=0, depth=1),
            make_element(2, "li", parent_index=0, depth=1),
        ]
        found = _by_locator(
            await StructuralStrategy().find_candidates(_context("ul > li.active", elements))
        )
        assert found["ul > li"].match_count == 2
        assert found["ul > li"].confidence == 60

    @pytest.mark.asyncio
    async def test_nth_neighbours(self, make_element) -> None:
        elements = [make_element(i, "li") for i in range(6)]
        found = _by_locator(
            await StructuralStrategy().find_candidates(_context("li >> nth=2", elements))
        )
        assert found["li >> nth=1"].confidence == 50
        assert found["li >> nth=4"].confidence == 45


@pytest.mark.unit
class TestAttributeStrategy:
    @pytest.mark.asyncio
    async def test_renamed_id_found_through_test_id(self, checkout_dom) -> None:
        found = _by_locator(
            await AttributeStrategy().find_candidates(_context("#submit", checkout_dom))
        )
        cand = found['[data-testid="submit-btn"]']
        assert cand.confidence == pytest.approx(88)
        assert cand.unique
        assert "original: id='submit'" in cand.rationale

    @pytest.mark.asyncio
    async def test_exact_match(self, make_element) -> None:
        elements = [make_element(0, "input", attributes={"name": "email"})]
        found = _by_locator(
            await AttributeStrategy().find_candidates(_context('input[name="email"]', elements))
        )
        assert found['[name="email"]'].confidence == 100

    @pytest.mark.asyncio
    async def test_generated_value_pattern(self, make_element) -> None:
        elements = [make_element(0, "tr", attributes={"data-testid": "row-456"})]
        found = _by_locator(
            await AttributeStrategy().find_candidates(
                _context('[data-testid="row-123"]', elements)
            )
        )
        assert found['[data-testid="row-456"]'].confidence == 80

    @pytest.mark.asyncio
    async def test_class_token_and_prefix(self, make_element) -> None:
        elements = [
            make_element(0, "div", classes=["card-34", "shadow"]),
            make_element(1, "div", classes=["panel"]),
        ]
        found = _by_locator(
            await AttributeStrategy().find_candidates(_context(".card-12.shadow", elements))
        )
        assert found[".shadow"].confidence == 70
        assert found['[class*="card"]'].confidence == 65
        assert found['[class*="card"]'].match_count == 1

    @pytest.mark.asyncio
    async def test_unrelated_values_ignored(self, make_element) -> None:
        elements = [make_element(0, "div", id="footer")]
        assert await AttributeStrategy().find_candidates(_context("#submit", elements)) == []


@pytest.mark.unit
class TestVisualStrategy:
    @pytest.mark.asyncio
    async def test_fallback_ranks_interactive_elements(self, checkout_dom) -> None:
        candidates = await VisualStrategy().find_candidates(_context("#submit", checkout_dom))
        assert [c.locator for c in candidates] == [
            'button:has-text("Submit")',
            'a:has-text("Back to cart")',
        ]
        assert [c.confidence for c in candidates] == [60, 59]

    @pytest.mark.asyncio
    async def test_previous_position_wins(self, checkout_dom, make_element) -> None:
        button = checkout_dom[1]
        previous = make_element(99, "button", bounding_box=button.bounding_box)
        candidates = await VisualStrategy().find_candidates(
            _context("#submit", checkout_dom, previous_element=previous)
        )
        best = candidates[0]
        assert best.locator == 'button:has-text("Submit")'
        assert best.confidence == pytest.approx(100)
        assert len({c.locator for c in candidates}) == len(candidates)


@pytest.mark.unit
class TestRegistry:
    def test_registry_is_closed_over_strategy_names(self) -> None:
        assert set(STRATEGY_REGISTRY) == set(StrategyName)

    def test_build_in_configured_order(self) -> None:
        built = build_strategies([StrategyName.ATTRIBUTE, StrategyName.TEXT, "attribute"])
        assert [s.name for s in built] == [StrategyName.ATTRIBUTE, StrategyName.TEXT]

    @pytest.mark.asyncio
    async def test_failing_strategy_yields_no_candidates(self, checkout_dom) -> None:
        class Broken(HealingStrategy):
            name = StrategyName.VISUAL
            base_score = 50.0

            def collect(self, context):
                raise RuntimeError("boom")

        assert await Broken().find_candidates(_context("#submit", checkout_dom)) == []
