"""Healing configuration schema with Pydantic validation."""

from __future__ import annotations

import re
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from healwright.exceptions import ConfigError
from healwright.types import HealingMode, StrategyName

DEFAULT_STRATEGIES: list[StrategyName] = [
    StrategyName.SEMANTIC,
    StrategyName.TEXT,
    StrategyName.STRUCTURAL,
    StrategyName.ATTRIBUTE,
]

DEFAULT_STRATEGY_WEIGHTS: dict[StrategyName, float] = {
    StrategyName.SEMANTIC: 40,
    StrategyName.TEXT: 25,
    StrategyName.STRUCTURAL: 20,
    StrategyName.ATTRIBUTE: 15,
    StrategyName.VISUAL: 15,
}

DEFAULT_STORAGE_FILE = ".healwright/self-healing-suggestions.json"


class HealingConfig(BaseModel):
    """Configuration for one healing engine instance.

    Instances are frozen. Reconfiguring means building a new config and
    handing it to ``SelfHealingResolver.configure``.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    enabled: bool = False
    mode: HealingMode = HealingMode.SUGGESTION_ONLY
    auto_apply_threshold: float = Field(default=90, ge=0, le=100)
    strategies: list[StrategyName] = Field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    storage_file: str = DEFAULT_STORAGE_FILE
    notify_on_heal: bool = False
    exclude_tests: list[str] = Field(default_factory=list)
    # Reserved: accepted and persisted, not acted upon.
    learn_from_manual_selections: bool = False
    strategy_weights: dict[StrategyName, float] = Field(
        default_factory=lambda: dict(DEFAULT_STRATEGY_WEIGHTS)
    )
    max_suggestions: int = Field(default=100, ge=1)
    create_backups: bool = True
    backup_retention: int = Field(default=5, ge=0)
    screenshot_on_healing: bool = True

    @field_validator("strategies")
    @classmethod
    def _dedupe_strategies(cls, value: list[StrategyName]) -> list[StrategyName]:
        seen: list[StrategyName] = []
        for name in value:
            if name not in seen:
                seen.append(name)
        return seen

    @field_validator("exclude_tests")
    @classmethod
    def _compile_patterns(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                msg = f"Invalid excludeTests pattern {pattern!r}: {e}"
                raise ValueError(msg) from e
        return value

    @field_validator("strategy_weights")
    @classmethod
    def _merge_weights(cls, value: dict[StrategyName, float]) -> dict[StrategyName, float]:
        merged = dict(DEFAULT_STRATEGY_WEIGHTS)
        merged.update(value)
        if any(w < 0 for w in merged.values()):
            msg = "Strategy weights must be non-negative"
            raise ValueError(msg)
        return merged

    def is_test_excluded(self, test_name: str | None) -> bool:
        """Check whether a test identifier matches any exclusion pattern."""
        if not test_name:
            return False
        return any(re.search(p, test_name) for p in self.exclude_tests)

    def strategy_priority(self, strategy: str) -> int:
        """Position of a strategy in the configured order (lower wins ties)."""
        for i, name in enumerate(self.strategies):
            if name == strategy:
                return i
        return len(self.strategies)

    def normalized_weights(self) -> dict[StrategyName, float]:
        """Weights of the enabled strategies rescaled to sum to 100."""
        active = {s: self.strategy_weights.get(s, 0.0) for s in self.strategies}
        total = sum(active.values())
        if total <= 0:
            return {s: 100 / len(active) for s in active} if active else {}
        return {s: w * 100 / total for s, w in active.items()}

    @classmethod
    def from_yaml(cls, yaml_str: str) -> HealingConfig:
        """Parse a YAML string into a HealingConfig."""
        if not yaml_str or not yaml_str.strip():
            return cls()
        try:
            raw: Any = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            msg = f"Malformed healing config: {e}"
            raise ConfigError(msg) from e
        if not raw or not isinstance(raw, dict):
            return cls()
        # Allow the settings to live under a top-level "selfHealing" key
        section = raw.get("selfHealing", raw.get("self_healing", raw))
        try:
            return cls.model_validate(section)
        except ValidationError as e:
            msg = f"Invalid healing config: {e}"
            raise ConfigError(msg) from e

    def to_yaml(self) -> str:
        """Serialize config back to YAML using the external camelCase names."""
        data = self.model_dump(mode="json", by_alias=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)
