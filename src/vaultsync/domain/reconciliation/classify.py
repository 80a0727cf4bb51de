"""Comparison classification for two-sided reconciliation.

Classification combines name presence with the value loader's per-side fetch
records. It is a pure function of that state: it can be re-run against a partially
loaded entry set at any time, and re-running it with more data only moves entries
out of ``PENDING``.
"""

from __future__ import annotations

from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING, assert_never

from .contracts import (
    ComparedEntry,
    ComparisonStats,
    ComparisonStatus,
    FetchRecord,
    FetchState,
    NamePresence,
)
from .names import reconcile_names

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from vaultsync.domain.model import SecretEntry, StoreRef

    from .contracts import ValueKey
    from .values import ValueLoader

log = getLogger(__name__)


def classify(
    presence: NamePresence,
    source: FetchRecord,
    target: FetchRecord,
) -> ComparisonStatus:
    """Assign the comparison status for one name."""

    if presence.in_source and not presence.in_target:
        return ComparisonStatus.SOURCE_ONLY
    if presence.in_target and not presence.in_source:
        return ComparisonStatus.TARGET_ONLY
    if not presence.in_source:
        raise ValueError(f"Name {presence.name!r} is absent from both stores")

    if source.state is FetchState.LOADED and target.state is FetchState.LOADED:
        # A missing value compares equal to an empty one.
        if (source.value or "") == (target.value or ""):
            return ComparisonStatus.MATCH
        return ComparisonStatus.MISMATCH
    return ComparisonStatus.PENDING


def compare_entries(
    presences: Iterable[NamePresence],
    *,
    source_record: Callable[[NamePresence], FetchRecord],
    target_record: Callable[[NamePresence], FetchRecord],
) -> list[ComparedEntry]:
    compared: list[ComparedEntry] = []
    for presence in presences:
        source = source_record(presence)
        target = target_record(presence)
        compared.append(
            ComparedEntry(
                name=presence.name,
                status=classify(presence, source, target),
                source_entry=presence.source_entry,
                target_entry=presence.target_entry,
                source_value=source.value,
                target_value=target.value,
                source_fetch=source.state,
                target_fetch=target.state,
            )
        )
    return compared


def compute_stats(entries: Iterable[ComparedEntry]) -> ComparisonStats:
    counts: Counter[ComparisonStatus] = Counter()
    total = 0
    for entry in entries:
        total += 1
        counts[entry.status] += 1
    return ComparisonStats(
        total=total,
        matches=counts[ComparisonStatus.MATCH],
        mismatches=counts[ComparisonStatus.MISMATCH],
        source_only=counts[ComparisonStatus.SOURCE_ONLY],
        target_only=counts[ComparisonStatus.TARGET_ONLY],
        pending=counts[ComparisonStatus.PENDING],
    )


def status_label(status: ComparisonStatus) -> str:
    """Human-readable label for a status."""

    match status:
        case ComparisonStatus.MATCH:
            return "match"
        case ComparisonStatus.MISMATCH:
            return "mismatch"
        case ComparisonStatus.SOURCE_ONLY:
            return "source only"
        case ComparisonStatus.TARGET_ONLY:
            return "target only"
        case ComparisonStatus.PENDING:
            return "pending"
        case _:
            assert_never(status)


class VaultComparison:
    """Live comparison of two store listings backed by a shared :class:`ValueLoader`.

    The compared entries and stats are recomputed after every individual fetch
    completion, so consumers always see the latest partial state.
    """

    def __init__(
        self,
        *,
        source_ref: StoreRef,
        target_ref: StoreRef,
        source_entries: Sequence[SecretEntry],
        target_entries: Sequence[SecretEntry],
        loader: ValueLoader,
    ) -> None:
        self.source_ref = source_ref
        self.target_ref = target_ref
        self.loader = loader
        self._presences = reconcile_names(source_entries, target_entries)
        self._names = {presence.name for presence in self._presences}
        self._listeners: list[Callable[[VaultComparison], None]] = []
        self._entries: list[ComparedEntry] = []
        self._stats = ComparisonStats()
        self._unsubscribe: Callable[[], None] | None = loader.subscribe(self._on_fetch)
        self.refresh()

    @property
    def entries(self) -> list[ComparedEntry]:
        return list(self._entries)

    @property
    def stats(self) -> ComparisonStats:
        return self._stats

    @property
    def presences(self) -> list[NamePresence]:
        return list(self._presences)

    def entry(self, name: str) -> ComparedEntry | None:
        return next((entry for entry in self._entries if entry.name == name), None)

    def subscribe(self, listener: Callable[[VaultComparison], None]) -> None:
        self._listeners.append(listener)

    def refresh(self) -> None:
        self._entries = compare_entries(
            self._presences,
            source_record=lambda p: self.loader.record(
                self.source_ref, p.name, present=p.in_source
            ),
            target_record=lambda p: self.loader.record(
                self.target_ref, p.name, present=p.in_target
            ),
        )
        self._stats = compute_stats(self._entries)
        for listener in tuple(self._listeners):
            listener(self)

    def value_keys(self) -> list[ValueKey]:
        """Every ``(store_ref, name)`` that exists on its side, source first per name."""

        keys: list[ValueKey] = []
        for presence in self._presences:
            if presence.in_source:
                keys.append((self.source_ref, presence.name))
            if presence.in_target:
                keys.append((self.target_ref, presence.name))
        return keys

    def progress(self) -> tuple[int, int]:
        """Return ``(completed, total)`` value fetches for this comparison."""

        keys = self.value_keys()
        completed = sum(1 for key in keys if self.loader.record(*key).state.completed)
        return completed, len(keys)

    async def load_all_values(self, *, refresh: bool = False) -> ComparisonStats:
        """Fetch every applicable value on both sides in one bounded pass."""

        keys = self.value_keys()
        log.info(
            "Loading %d values for %s <-> %s", len(keys), self.source_ref, self.target_ref
        )
        await self.loader.load_many(keys, refresh=refresh)
        return self._stats

    async def load_value(self, name: str, *, refresh: bool = False) -> ComparedEntry:
        """Fetch the values of one name on demand, on every side it exists."""

        presence = next((p for p in self._presences if p.name == name), None)
        if presence is None:
            raise KeyError(name)
        keys: list[ValueKey] = []
        if presence.in_source:
            keys.append((self.source_ref, name))
        if presence.in_target:
            keys.append((self.target_ref, name))
        await self.loader.load_many(keys, refresh=refresh)
        entry = self.entry(name)
        if entry is None:
            raise KeyError(name)
        return entry

    def close(self) -> None:
        """Detach from the loader; fetches still in flight complete into the cache only."""

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def _on_fetch(self, key: ValueKey, record: FetchRecord) -> None:
        store_ref, name = key
        if name not in self._names or store_ref not in {self.source_ref, self.target_ref}:
            return
        if record.state is FetchState.LOADING:
            return
        self.refresh()
