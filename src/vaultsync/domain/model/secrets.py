"""Secret store entries as seen by the reconciliation core.

Entries are immutable snapshots returned by a store listing. They never carry a
value; values are fetched separately and cached per ``(store_ref, name)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

type StoreRef = str
"""Opaque, URI-like reference to a store (for Key Vault: the vault URI)."""


def entry_name(identifier: str) -> str:
    """Return the entry name: the last ``/``-delimited segment of ``identifier``."""

    return identifier.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True, kw_only=True)
class SecretAttributes:
    enabled: bool = True
    created: datetime | None = None
    updated: datetime | None = None
    recovery_level: str | None = None
    recoverable_days: int | None = None
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class SecretEntry:
    """A named secret with metadata, as listed by its store."""

    identifier: str
    attributes: SecretAttributes = field(default_factory=SecretAttributes)

    @property
    def name(self) -> str:
        return entry_name(self.identifier)


@dataclass(frozen=True, slots=True)
class SecretValue:
    """A fetched secret value together with the version identifier it came from."""

    identifier: str
    value: str | None
    attributes: SecretAttributes = field(default_factory=SecretAttributes)


@dataclass(frozen=True, slots=True)
class ImportEntry:
    """A name/value pair parsed from an import file."""

    name: str
    value: str
