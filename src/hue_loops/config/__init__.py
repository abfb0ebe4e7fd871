"""Configuration schema and loading."""

from .schema import (
    AppConfig,
    ConfigError,
    HueConfig,
    LoopConfig,
    ShellConfig,
)
from .loader import load_config, save_config

__all__ = [
    "AppConfig",
    "ConfigError",
    "HueConfig",
    "LoopConfig",
    "ShellConfig",
    "load_config",
    "save_config",
]
