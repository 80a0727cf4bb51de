from __future__ import annotations

import os

import pytest

from tests.support.secret_store import SOURCE, TARGET, InMemorySecretStore
from vaultsync.config import SyncConfig

os.environ.setdefault("KEYVAULT_ACCESS_TOKEN", "test-token")


@pytest.fixture
def store() -> InMemorySecretStore:
    return InMemorySecretStore.with_values(
        {
            SOURCE: {"a": "1", "b": "2"},
            TARGET: {"b": "2", "c": "3"},
        }
    )


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(fetch_concurrency=4, value_ttl_seconds=300.0)
