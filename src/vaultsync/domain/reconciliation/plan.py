"""Translate a comparison into corrective write operations.

- source-only / target-only: create the missing entry from the known side's value
  or from a caller-supplied custom value.
- mismatch: update the target with the source value (a new version in the store).

Match and pending entries never produce writes. A pending entry whose value failed
to load on either side is reported as unavailable when mismatches are overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, assert_never

from .contracts import ComparisonStatus, FetchState, WriteKind, WriteOperation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from vaultsync.domain.model import StoreRef

    from .contracts import ComparedEntry


class MissingDirection(StrEnum):
    """Which one-sided entries to copy across."""

    NONE = "none"
    TO_TARGET = "target"
    TO_SOURCE = "source"
    BOTH = "both"

    def copies_to_target(self) -> bool:
        return self in {MissingDirection.TO_TARGET, MissingDirection.BOTH}

    def copies_to_source(self) -> bool:
        return self in {MissingDirection.TO_SOURCE, MissingDirection.BOTH}


@dataclass(slots=True)
class SyncPlan:
    operations: list[WriteOperation] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)
    """Names that needed a write but whose value was not loaded."""

    def __len__(self) -> int:
        return len(self.operations)


def plan_sync(
    entries: Iterable[ComparedEntry],
    *,
    source_ref: StoreRef,
    target_ref: StoreRef,
    missing: MissingDirection = MissingDirection.TO_TARGET,
    overwrite_mismatches: bool = False,
    custom_values: Mapping[str, str] | None = None,
) -> SyncPlan:
    """Build the write operations that bring the two stores into line."""

    custom = custom_values or {}
    plan = SyncPlan()
    for entry in entries:
        match entry.status:
            case ComparisonStatus.SOURCE_ONLY:
                if missing.copies_to_target():
                    _add_copy(plan, entry.name, target_ref, custom, entry.source_value)
            case ComparisonStatus.TARGET_ONLY:
                if missing.copies_to_source():
                    _add_copy(plan, entry.name, source_ref, custom, entry.target_value)
            case ComparisonStatus.MISMATCH:
                if overwrite_mismatches:
                    _add_update(plan, entry, target_ref)
            case ComparisonStatus.PENDING:
                if overwrite_mismatches and _fetch_failed(entry):
                    plan.unavailable.append(entry.name)
            case ComparisonStatus.MATCH:
                continue
            case _:
                assert_never(entry.status)
    return plan


def plan_create_with_value(store_ref: StoreRef, name: str, value: str) -> WriteOperation:
    """Create ``name`` in ``store_ref`` with a caller-supplied value."""

    return WriteOperation(WriteKind.CREATE, store_ref, name, value)


def _add_copy(
    plan: SyncPlan,
    name: str,
    destination: StoreRef,
    custom: Mapping[str, str],
    known_value: str | None,
) -> None:
    value = custom.get(name, known_value)
    if value is None:
        plan.unavailable.append(name)
        return
    plan.operations.append(WriteOperation(WriteKind.CREATE, destination, name, value))


def _fetch_failed(entry: ComparedEntry) -> bool:
    return FetchState.ERRORED in {entry.source_fetch, entry.target_fetch}


def _add_update(plan: SyncPlan, entry: ComparedEntry, target_ref: StoreRef) -> None:
    if entry.source_value is None:
        plan.unavailable.append(entry.name)
        return
    plan.operations.append(
        WriteOperation(WriteKind.UPDATE, target_ref, entry.name, entry.source_value)
    )
