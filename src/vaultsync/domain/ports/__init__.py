"""Ports implemented by adapters."""

from __future__ import annotations

from .secret_store import SecretStoreClient, SecretStoreError

__all__ = ["SecretStoreClient", "SecretStoreError"]
