"""Engine configuration and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class EngineConfig(BaseSettings):
    """Configuration for the cogmedia resource engine."""

    model_config = SettingsConfigDict(
        env_prefix="COGMEDIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    storage_url: str = "memory://default"
    default_page_size: int = Field(default=10, ge=1, le=1000)
    max_page_size: int = Field(default=100, ge=1, le=10000)
    reference_scan_page_size: int = Field(default=100, ge=1, le=10000)
    graph_default_depth: int = Field(default=2, ge=1, le=20)
    relationship_suffix: str = Field(default="Id", min_length=1)
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("storage_url")
    @classmethod
    def validate_storage_url(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError("storage_url must include a scheme, e.g. memory:// or sqlite://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid: {sorted(VALID_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError(f"Invalid log format: {v}. Valid: ['json', 'text']")
        return v

    def get_page_size(self, requested: int | None) -> int:
        """Requested page size, defaulted and clamped to ``max_page_size``."""
        if requested is None:
            return min(self.default_page_size, self.max_page_size)
        return min(requested, self.max_page_size)


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    """Load configuration from a YAML file and the environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}

    config_data.update(_get_env_overrides())

    return EngineConfig(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_mappings = {
        "COGMEDIA_STORAGE_URL": "storage_url",
        "COGMEDIA_DEFAULT_PAGE_SIZE": ("default_page_size", int),
        "COGMEDIA_GRAPH_DEFAULT_DEPTH": ("graph_default_depth", int),
        "COGMEDIA_LOG_LEVEL": "log_level",
        "COGMEDIA_LOG_FORMAT": "log_format",
    }

    for env_key, config_key in env_mappings.items():
        value = os.environ.get(env_key)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                overrides[key] = converter(value)
            else:
                overrides[config_key] = value

    return overrides
