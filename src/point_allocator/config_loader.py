"""
YAML run configuration.

A run file looks like::

    settings:
      rent: 3309
      initial_cash: 500
      min_protected_balance: 100
      available_card_ids: [csr, ink, bilt, citi, amazon]
      boost_months: {Chase: 6, Bilt: null}
      credit_overrides: {csr-lyft: 120}
    spend:
      dining_nw: 1164
      others: 3127
    random_boosts: false
    seed: 42

Every key is optional. Values under ``spend`` are merged over the catalog's
default monthly spend.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from point_allocator.catalog.config import (
    DEFAULT_AVAILABLE_CARD_IDS,
    DEFAULT_BOOST_MONTHS,
    DEFAULT_SPEND_VALUES,
    INITIAL_CASH,
    INITIAL_MIN_BALANCE,
    INITIAL_RENT,
)
from point_allocator.models.schema import GlobalSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "POINT_ALLOCATOR_CONFIG"


class ConfigError(RuntimeError):
    """Raised when a run configuration file cannot be read or parsed."""


def default_settings() -> GlobalSettings:
    """Global settings populated from the catalog defaults."""
    return GlobalSettings(
        rent=INITIAL_RENT,
        initial_cash=INITIAL_CASH,
        min_protected_balance=INITIAL_MIN_BALANCE,
        spend_values=dict(DEFAULT_SPEND_VALUES),
        available_card_ids=list(DEFAULT_AVAILABLE_CARD_IDS),
        boost_months=dict(DEFAULT_BOOST_MONTHS),
    )


class RunConfig(BaseModel):
    settings: GlobalSettings = Field(default_factory=default_settings)
    random_boosts: bool = False
    seed: Optional[int] = None

    @field_validator("seed", mode="before")
    @classmethod
    def validate_seed(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            return None


def resolve_config_path(explicit: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Pick the config path: explicit argument first, then the environment."""
    if explicit:
        return Path(explicit)
    from_env = os.getenv(CONFIG_ENV_VAR, "").strip()
    return Path(from_env) if from_env else None


def load_run_config(path: Optional[Union[str, Path]] = None) -> RunConfig:
    """
    Load a run configuration.

    Parameters
    ----------
    path : str or Path, optional
        YAML file. Falls back to ``$POINT_ALLOCATOR_CONFIG``. A missing
        file yields the catalog defaults.

    Raises
    ------
    ConfigError
        If the file is unreadable, not valid YAML, or not a mapping.
    """
    config_path = resolve_config_path(path)
    if config_path is None or not config_path.exists():
        if config_path is not None:
            logger.warning("Config file not found: %s (using defaults)", config_path)
        return RunConfig()

    try:
        with config_path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config {config_path} must be a mapping, got {type(raw).__name__}"
        )

    settings_raw: Dict[str, Any] = default_settings().model_dump()
    overrides = raw.get("settings") or {}
    if not isinstance(overrides, dict):
        raise ConfigError(f"'settings' in {config_path} must be a mapping")
    settings_raw.update(overrides)

    spend = raw.get("spend") or {}
    if not isinstance(spend, dict):
        raise ConfigError(f"'spend' in {config_path} must be a mapping")
    spend_values = dict(settings_raw.get("spend_values") or {})
    spend_values.update(spend)
    settings_raw["spend_values"] = spend_values

    try:
        config = RunConfig(
            settings=GlobalSettings(**settings_raw),
            random_boosts=bool(raw.get("random_boosts", False)),
            seed=raw.get("seed"),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from e

    logger.info(
        "Loaded run config from %s (%d cards available, random_boosts=%s)",
        config_path,
        len(config.settings.available_card_ids),
        config.random_boosts,
    )
    return config
