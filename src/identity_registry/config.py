"""
Registry configuration.

Configuration is Pydantic-validated and loaded from:
1. Built-in defaults
2. An optional YAML file
3. Environment variables (IDENTITY_REGISTRY_ prefix, ``__`` for nesting)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from identity_registry.common.types import (
    INITIAL_REPUTATION_SCORE,
    MAX_REPUTATION_SCORE,
    UNKNOWN_ISSUER,
)
from identity_registry.identity.reputation import (
    CREDENTIAL_ADDED_DELTA,
    CREDENTIAL_REVOKED_DELTA,
    UNVERIFIED_DELTA,
    VERIFIED_DELTA,
)


class ReputationConfig(BaseModel):
    initial_score: int = INITIAL_REPUTATION_SCORE
    max_score: int = MAX_REPUTATION_SCORE
    verified_delta: int = VERIFIED_DELTA
    unverified_delta: int = UNVERIFIED_DELTA
    credential_added_delta: int = CREDENTIAL_ADDED_DELTA
    credential_revoked_delta: int = CREDENTIAL_REVOKED_DELTA

    @model_validator(mode="after")
    def _initial_within_bounds(self) -> ReputationConfig:
        if self.max_score < 0:
            raise ValueError("max_score must be non-negative")
        if not 0 <= self.initial_score <= self.max_score:
            raise ValueError("initial_score must lie within [0, max_score]")
        return self


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["console", "json"] = "console"
    colors: bool = True


class LedgerConfig(BaseModel):
    # Reject transactions whose signature does not match the sender.
    require_signatures: bool = True


class RegistrySettings(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_REGISTRY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    unknown_issuer_name: str = UNKNOWN_ISSUER

    reputation: ReputationConfig = Field(default_factory=ReputationConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: str | Path | None = None) -> RegistrySettings:
    """
    Load settings from a YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    env = RegistrySettings()
    overrides = env.model_dump(exclude_defaults=True)

    return RegistrySettings.model_validate(_deep_merge(raw, overrides))


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
