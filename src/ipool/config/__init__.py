"""Application configuration helpers."""

from __future__ import annotations

from .env import env_int, env_value
from .errors import ConfigurationError
from .logging import configure_logging
from .operator import (
    DEFAULT_RESYNC_SECONDS,
    DEFAULT_THREADS,
    OperatorConfig,
    RetryPolicy,
    get_operator_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_RESYNC_SECONDS",
    "DEFAULT_THREADS",
    "ConfigurationError",
    "DatabaseConfig",
    "OperatorConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_int",
    "env_value",
    "get_database_config",
    "get_operator_config",
    "get_storage_config",
]
