"""Configuration loading."""

from .loader import ConfigError, IntakeConfig, default_config, load_config

__all__ = [
    "ConfigError",
    "IntakeConfig",
    "default_config",
    "load_config",
]
