"""Synchronisation defaults for comparison and write runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_float, optional_env_int

DEFAULT_FETCH_CONCURRENCY = 8
DEFAULT_VALUE_TTL_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY
    value_ttl_seconds: float = DEFAULT_VALUE_TTL_SECONDS


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        fetch_concurrency=optional_env_int(
            "VAULTSYNC_FETCH_CONCURRENCY", DEFAULT_FETCH_CONCURRENCY
        ),
        value_ttl_seconds=optional_env_float(
            "VAULTSYNC_VALUE_TTL_SECONDS", DEFAULT_VALUE_TTL_SECONDS
        ),
    )
