"""Process settings via Pydantic BaseSettings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from healwright.config.schema import HealingConfig
from healwright.exceptions import ConfigError

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HEALWRIGHT_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    log_level: str = "INFO"
    json_logs: bool = False
    config_file: str = "healing.yaml"
    report_dir: str = "healing-report"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def load_healing_config(path: str | Path | None = None) -> HealingConfig:
    """Load a HealingConfig from YAML; a missing file yields the defaults."""
    config_path = Path(path or get_settings().config_file).expanduser()
    if not config_path.exists():
        logger.debug("healing_config_missing", path=str(config_path))
        return HealingConfig()
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read healing config {config_path}: {e}"
        raise ConfigError(msg) from e
    config = HealingConfig.from_yaml(text)
    logger.info(
        "healing_config_loaded",
        path=str(config_path),
        enabled=config.enabled,
        mode=config.mode.value,
    )
    return config
