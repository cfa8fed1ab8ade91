"""Configuration loading helpers."""

from __future__ import annotations

from .load import ConfigError, load_config
from .settings import Configuration, build_configuration

__all__ = [
    "ConfigError",
    "Configuration",
    "build_configuration",
    "load_config",
]
