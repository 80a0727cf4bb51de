"""Azure Key Vault configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

KEYVAULT_API_VERSION = "2025-07-01"
KEYVAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class KeyVaultConfig:
    """Holds Key Vault data-plane configuration values."""

    access_token: str
    api_version: str
    resilience: ResilienceConfig


def default_keyvault_resilience() -> ResilienceConfig:
    # Key Vault throttles secrets at roughly 4000 transactions per 10s per vault.
    return ResilienceConfig(
        name="keyvault",
        timeout_seconds=KEYVAULT_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=200, per_seconds=10.0),
    )


def get_keyvault_config(*, resilience: ResilienceConfig | None = None) -> KeyVaultConfig:
    values = require_env_vars(("KEYVAULT_ACCESS_TOKEN",))
    api_version = os.getenv("KEYVAULT_API_VERSION") or KEYVAULT_API_VERSION
    return KeyVaultConfig(
        access_token=values["KEYVAULT_ACCESS_TOKEN"].strip(),
        api_version=api_version.strip(),
        resilience=resilience or default_keyvault_resilience(),
    )
