"""Conflict resolution for one-sided merges (imports).

Incoming entries are split into new entries, which pass through unchanged, and
conflicts, whose names already exist in the destination store. Every conflict
needs an action before the import can be committed: either pre-set by a non-ask
default policy, set one at a time, or set for all at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .contracts import (
    ConflictAction,
    ConflictEntry,
    ConflictPolicy,
    WriteKind,
    WriteOperation,
)
from .names import index_by_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from vaultsync.domain.model import ImportEntry, SecretEntry, StoreRef

log = getLogger(__name__)


class UnresolvedConflictsError(ValueError):
    """Raised when an import is committed while conflicts still lack an action."""

    def __init__(self, unresolved_count: int, names: tuple[str, ...] = ()) -> None:
        super().__init__(
            f"{unresolved_count} conflict(s) must be resolved before importing"
            + (f": {', '.join(names)}" if names else "")
        )
        self.unresolved_count = unresolved_count
        self.names = names


@dataclass(slots=True)
class ImportPlan:
    """Write operations for a committed import plus the number of skipped conflicts."""

    operations: list[WriteOperation] = field(default_factory=list)
    skipped: int = 0

    @property
    def creates(self) -> int:
        return sum(1 for op in self.operations if op.kind is WriteKind.CREATE)

    @property
    def updates(self) -> int:
        return sum(1 for op in self.operations if op.kind is WriteKind.UPDATE)


def _policy_action(policy: ConflictPolicy) -> ConflictAction | None:
    match policy:
        case ConflictPolicy.SKIP_ALL:
            return ConflictAction.SKIP
        case ConflictPolicy.OVERRIDE_ALL:
            return ConflictAction.OVERRIDE
        case ConflictPolicy.ASK:
            return None


class ConflictResolver:
    def __init__(
        self,
        incoming: Iterable[ImportEntry],
        existing: Iterable[SecretEntry],
        *,
        policy: ConflictPolicy = ConflictPolicy.ASK,
    ) -> None:
        self.policy = policy
        existing_by_name = index_by_name(existing)
        default_action = _policy_action(policy)

        self.new_entries: list[ImportEntry] = []
        self.conflicts: list[ConflictEntry] = []
        for entry in incoming:
            current = existing_by_name.get(entry.name)
            if current is None:
                self.new_entries.append(entry)
            else:
                self.conflicts.append(
                    ConflictEntry(incoming=entry, existing=current, action=default_action)
                )
        log.debug(
            "Import split into %d new entries and %d conflicts (policy=%s)",
            len(self.new_entries),
            len(self.conflicts),
            policy,
        )

    def set_action(self, index: int, action: ConflictAction) -> None:
        self.conflicts[index].action = action

    def set_action_for(self, name: str, action: ConflictAction) -> int:
        """Set ``action`` on every conflict named ``name``; returns how many matched."""

        matched = 0
        for conflict in self.conflicts:
            if conflict.name == name:
                conflict.action = action
                matched += 1
        if not matched:
            raise KeyError(name)
        return matched

    def set_all_actions(self, action: ConflictAction) -> None:
        for conflict in self.conflicts:
            conflict.action = action

    def apply_decisions(self, decisions: Mapping[str, ConflictAction]) -> None:
        """Set per-name actions; names that are not conflicts are ignored."""

        conflict_names = {conflict.name for conflict in self.conflicts}
        for name, action in decisions.items():
            if name not in conflict_names:
                log.info("Ignoring decision for %s: not a conflicting entry", name)
                continue
            self.set_action_for(name, action)

    def unresolved(self) -> list[ConflictEntry]:
        return [conflict for conflict in self.conflicts if conflict.action is None]

    def unresolved_count(self) -> int:
        return len(self.unresolved())

    def can_commit(self) -> bool:
        return self.unresolved_count() == 0

    def build_operations(self, store_ref: StoreRef) -> ImportPlan:
        """Return creates for new entries and updates for overridden conflicts.

        Raises :class:`UnresolvedConflictsError` when any conflict has no action.
        """

        unresolved = self.unresolved()
        if unresolved:
            raise UnresolvedConflictsError(
                len(unresolved), tuple(conflict.name for conflict in unresolved)
            )

        plan = ImportPlan()
        for entry in self.new_entries:
            plan.operations.append(
                WriteOperation(WriteKind.CREATE, store_ref, entry.name, entry.value)
            )
        for conflict in self.conflicts:
            match conflict.action:
                case ConflictAction.OVERRIDE:
                    plan.operations.append(
                        WriteOperation(
                            WriteKind.UPDATE,
                            store_ref,
                            conflict.incoming.name,
                            conflict.incoming.value,
                        )
                    )
                case ConflictAction.SKIP:
                    plan.skipped += 1
                case None:
                    raise AssertionError("unresolved conflicts were rejected above")
        return plan
