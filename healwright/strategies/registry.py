"""Closed registry of strategy implementations, keyed by name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healwright.strategies.attribute import AttributeStrategy
from healwright.strategies.semantic import SemanticStrategy
from healwright.strategies.structural import StructuralStrategy
from healwright.strategies.text import TextStrategy
from healwright.strategies.visual import VisualStrategy
from healwright.types import StrategyName

if TYPE_CHECKING:
    from collections.abc import Iterable

    from healwright.strategies.base import HealingStrategy

STRATEGY_REGISTRY: dict[StrategyName, type[HealingStrategy]] = {
    StrategyName.SEMANTIC: SemanticStrategy,
    StrategyName.TEXT: TextStrategy,
    StrategyName.STRUCTURAL: StructuralStrategy,
    StrategyName.ATTRIBUTE: AttributeStrategy,
    StrategyName.VISUAL: VisualStrategy,
}

BASE_SCORES: dict[StrategyName, float] = {
    name: cls.base_score for name, cls in STRATEGY_REGISTRY.items()
}


def build_strategies(names: Iterable[StrategyName]) -> list[HealingStrategy]:
    """Instantiate the named strategies in the given order, skipping repeats."""
    seen: set[StrategyName] = set()
    strategies: list[HealingStrategy] = []
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        strategies.append(STRATEGY_REGISTRY[StrategyName(name)]())
    return strategies
