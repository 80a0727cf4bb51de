"""Two-sided reconciliation and one-sided merge of secret stores.

Layered flow:
1) reconcile entry names across source and target listings (``names``)
2) load values per ``(store_ref, name)`` with caching and bounded fan-out (``values``)
3) classify every name and aggregate stats as values arrive (``classify``)
4) turn a comparison, or an import with resolved conflicts, into writes
   (``plan``, ``conflicts``)
5) execute writes sequentially with per-item failure isolation (``execute``)
"""

from __future__ import annotations

from .classify import VaultComparison, classify, compare_entries, compute_stats
from .conflicts import ConflictResolver, ImportPlan, UnresolvedConflictsError
from .contracts import (
    ComparedEntry,
    ComparisonStats,
    ComparisonStatus,
    ConflictAction,
    ConflictEntry,
    ConflictPolicy,
    FetchRecord,
    FetchState,
    NamePresence,
    SyncProgress,
    SyncResult,
    WriteFailure,
    WriteKind,
    WriteOperation,
)
from .execute import ProgressCallback, SyncExecutor
from .names import reconcile_names
from .plan import MissingDirection, SyncPlan, plan_create_with_value, plan_sync
from .values import CachedValue, ValueCache, ValueLoader

__all__ = [
    "CachedValue",
    "ComparedEntry",
    "ComparisonStats",
    "ComparisonStatus",
    "ConflictAction",
    "ConflictEntry",
    "ConflictPolicy",
    "ConflictResolver",
    "FetchRecord",
    "FetchState",
    "ImportPlan",
    "MissingDirection",
    "NamePresence",
    "ProgressCallback",
    "SyncExecutor",
    "SyncPlan",
    "SyncProgress",
    "SyncResult",
    "UnresolvedConflictsError",
    "ValueCache",
    "ValueLoader",
    "VaultComparison",
    "WriteFailure",
    "WriteKind",
    "WriteOperation",
    "classify",
    "compare_entries",
    "compute_stats",
    "plan_create_with_value",
    "plan_sync",
    "reconcile_names",
]
