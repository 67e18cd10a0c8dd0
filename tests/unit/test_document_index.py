import pytest
from soupsieve import SelectorSyntaxError

from healwright.dom.document import ElementIndex


@pytest.fixture()
def index(make_element) -> ElementIndex:
    return ElementIndex(
        [
            make_element(0, "div", id="app"),
            make_element(1, "form", classes=["checkout"], parent_index=0, depth=1),
            make_element(
                2,
                "button",
                classes=["btn", "primary"],
                attributes={"data-testid": "submit-btn", "type": "submit"},
                parent_index=1,
                depth=2,
                text="Place order",
                own_text="Place order",
            ),
            make_element(
                3,
                "button",
                parent_index=1,
                depth=2,
                visible=False,
                enabled=False,
                text="Cancel",
                own_text="Cancel",
            ),
        ]
    )


def _indexes(index: ElementIndex, selector: str) -> list[int]:
    return [e.index for e in index.query_all(selector)]


@pytest.mark.unit
class TestElementIndex:
    def test_child_and_descendant(self, index: ElementIndex) -> None:
        assert _indexes(index, "form > button") == [2, 3]
        assert _indexes(index, "div button") == [2, 3]
        assert _indexes(index, "div > button") == []

    def test_attribute_operators(self, index: ElementIndex) -> None:
        assert _indexes(index, '[data-testid="submit-btn"]') == [2]
        assert _indexes(index, "[data-testid^=sub]") == [2]
        assert _indexes(index, '[data-testid*="btn"]') == [2]
        assert _indexes(index, "[type]") == [2]
        assert _indexes(index, '[class~="primary"]') == [2]

    def test_structural_pseudo_classes(self, index: ElementIndex) -> None:
        assert _indexes(index, "button:nth-child(2)") == [3]
        assert _indexes(index, "form button:first-child") == [2]
        assert _indexes(index, "button:last-of-type") == [3]

    def test_enabled_state_follows_snapshot(self, index: ElementIndex) -> None:
        assert _indexes(index, "button:not([disabled])") == [2]
        assert _indexes(index, "button.btn:enabled") == [2]
        assert _indexes(index, "button:disabled") == [3]

    def test_visible_filters_hidden_elements(self, index: ElementIndex) -> None:
        assert _indexes(index, "button:visible") == [2]
        assert _indexes(index, "form > button:visible") == [2]

    def test_has_text_is_case_insensitive_substring(self, index: ElementIndex) -> None:
        assert _indexes(index, 'button:has-text("place")') == [2]
        assert _indexes(index, 'form:has-text("Cancel")') == [1]

    def test_selector_list_in_document_order(self, index: ElementIndex) -> None:
        assert _indexes(index, "button.primary, #app") == [0, 2]

    def test_invalid_selector(self, index: ElementIndex) -> None:
        with pytest.raises(SelectorSyntaxError):
            index.query_all("form >")
        assert index.count("form >") == 0
        assert index.count("button:unknown-state") == 0

    def test_positions(self, index: ElementIndex) -> None:
        cancel = index.elements[3]
        assert index.child_position(cancel) == 2
        assert index.same_tag_position(cancel) == 1
        assert [a.index for a in index.ancestors(cancel)] == [1, 0]
        assert [c.index for c in index.children(index.elements[1])] == [2, 3]


@pytest.mark.unit
class TestCheckoutDocument:
    @pytest.mark.parametrize(
        "selector",
        ["button:not([disabled])", "form button:first-child", "button.btn:enabled"],
    )
    def test_common_selectors_find_submit_button(self, checkout_dom, selector: str) -> None:
        index = ElementIndex(checkout_dom)
        assert index.count(selector) == 1
        assert index.query_all(selector)[0].attributes["data-testid"] == "submit-btn"
