"""Domain model for secret reconciliation."""

from __future__ import annotations

from .secrets import (
    ImportEntry,
    SecretAttributes,
    SecretEntry,
    SecretValue,
    StoreRef,
    entry_name,
)

__all__ = [
    "ImportEntry",
    "SecretAttributes",
    "SecretEntry",
    "SecretValue",
    "StoreRef",
    "entry_name",
]
