"""Shared reconciliation contract components.

This module intentionally holds only the enums and dataclasses passed between
the reconciliation stages (names, values, classify, conflicts, plan, execute).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaultsync.domain.model import ImportEntry, SecretEntry, StoreRef


type ValueKey = tuple[StoreRef, str]


class ComparisonStatus(StrEnum):
    """Outcome of comparing one entry name across source and target."""

    MATCH = "match"
    MISMATCH = "mismatch"
    SOURCE_ONLY = "source-only"
    TARGET_ONLY = "target-only"
    PENDING = "pending"


class FetchState(StrEnum):
    """Lifecycle of one value fetch for ``(store_ref, name)``."""

    NOT_REQUESTED = "not_requested"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"
    NOT_APPLICABLE = "not_applicable"

    @property
    def completed(self) -> bool:
        return self in {FetchState.LOADED, FetchState.ERRORED, FetchState.NOT_APPLICABLE}


@dataclass(frozen=True, slots=True)
class NamePresence:
    """One name of the union of both stores together with its owning entries."""

    name: str
    source_entry: SecretEntry | None = None
    target_entry: SecretEntry | None = None

    @property
    def in_source(self) -> bool:
        return self.source_entry is not None

    @property
    def in_target(self) -> bool:
        return self.target_entry is not None


@dataclass(frozen=True, slots=True)
class FetchRecord:
    state: FetchState = FetchState.NOT_REQUESTED
    value: str | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ComparedEntry:
    name: str
    status: ComparisonStatus
    source_entry: SecretEntry | None = None
    target_entry: SecretEntry | None = None
    source_value: str | None = None
    target_value: str | None = None
    source_fetch: FetchState = FetchState.NOT_APPLICABLE
    target_fetch: FetchState = FetchState.NOT_APPLICABLE

    @property
    def source_value_fetched(self) -> bool:
        return self.source_fetch.completed

    @property
    def target_value_fetched(self) -> bool:
        return self.target_fetch.completed


@dataclass(frozen=True, slots=True)
class ComparisonStats:
    total: int = 0
    matches: int = 0
    mismatches: int = 0
    source_only: int = 0
    target_only: int = 0
    pending: int = 0


class ConflictAction(StrEnum):
    SKIP = "skip"
    OVERRIDE = "override"


class ConflictPolicy(StrEnum):
    """Default action applied to every conflict when an import is planned."""

    SKIP_ALL = "skip"
    OVERRIDE_ALL = "override"
    ASK = "ask"


@dataclass(slots=True)
class ConflictEntry:
    """An incoming entry whose name already exists in the destination store."""

    incoming: ImportEntry
    existing: SecretEntry
    action: ConflictAction | None = None

    @property
    def name(self) -> str:
        return self.incoming.name


class WriteKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class WriteOperation:
    kind: WriteKind
    store_ref: StoreRef
    name: str
    value: str = field(repr=False)

    @property
    def key(self) -> ValueKey:
        return (self.store_ref, self.name)


@dataclass(frozen=True, slots=True)
class WriteFailure:
    operation: WriteOperation
    message: str


@dataclass(frozen=True, slots=True)
class SyncProgress:
    current: int
    total: int
    operation: WriteOperation
    succeeded: bool


@dataclass(slots=True)
class SyncResult:
    """Aggregate outcome of one batch of writes."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[WriteFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success + self.failed
