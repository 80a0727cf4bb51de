"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_float, optional_env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .keyvault import (
    KEYVAULT_API_VERSION,
    KeyVaultConfig,
    default_keyvault_resilience,
    get_keyvault_config,
)
from .logging import configure_logging
from .sync import SyncConfig, get_sync_config

__all__ = [
    "KEYVAULT_API_VERSION",
    "ConfigurationError",
    "KeyVaultConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncConfig",
    "configure_logging",
    "default_keyvault_resilience",
    "get_keyvault_config",
    "get_sync_config",
    "optional_env_float",
    "optional_env_int",
    "require_env_vars",
]
