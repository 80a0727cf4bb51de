"""Public interface for the Azure Key Vault adapter."""

from __future__ import annotations

from .client import KeyVaultAPIError, KeyVaultClient, normalize_vault_uri
from .schema import SecretBundle, SecretItem, SecretListResponse
from .translator import parse_secret_bundle, parse_secret_item

__all__ = [
    "KeyVaultAPIError",
    "KeyVaultClient",
    "SecretBundle",
    "SecretItem",
    "SecretListResponse",
    "normalize_vault_uri",
    "parse_secret_bundle",
    "parse_secret_item",
]
