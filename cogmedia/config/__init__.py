"""Configuration management for cogmedia."""

from cogmedia.config.settings import EngineConfig, load_config

__all__ = [
    "EngineConfig",
    "load_config",
]
