"""Name-set reconciliation across two stores.

Pure function of the two listings: every entry is keyed by its derived name and
the sorted union of names is returned with presence on each side. Re-run it
whenever either listing changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import NamePresence

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vaultsync.domain.model import SecretEntry


def reconcile_names(
    source_entries: Iterable[SecretEntry],
    target_entries: Iterable[SecretEntry],
) -> list[NamePresence]:
    """Return the sorted union of entry names with per-side presence."""

    source_by_name = index_by_name(source_entries)
    target_by_name = index_by_name(target_entries)
    names = sorted(source_by_name.keys() | target_by_name.keys())
    return [
        NamePresence(
            name=name,
            source_entry=source_by_name.get(name),
            target_entry=target_by_name.get(name),
        )
        for name in names
    ]


def index_by_name(entries: Iterable[SecretEntry]) -> dict[str, SecretEntry]:
    """Map entries by derived name; the first entry listed for a name wins."""

    indexed: dict[str, SecretEntry] = {}
    for entry in entries:
        indexed.setdefault(entry.name, entry)
    return indexed
