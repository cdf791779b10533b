"""Application configuration helpers."""

from __future__ import annotations

from .engine import EngineConfig, get_engine_config
from .env import optional_env_var, split_env_list
from .errors import ConfigurationError, InvalidRelationError

__all__ = [
    "ConfigurationError",
    "EngineConfig",
    "InvalidRelationError",
    "get_engine_config",
    "optional_env_var",
    "split_env_list",
]
