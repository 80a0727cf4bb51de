"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from vaultsync.adapters.keyvault import KeyVaultClient, normalize_vault_uri
from vaultsync.config import SyncConfig, get_sync_config
from vaultsync.domain.reconciliation import (
    ConflictPolicy,
    ConflictResolver,
    FetchState,
    MissingDirection,
    SyncExecutor,
    SyncResult,
    ValueCache,
    ValueLoader,
    VaultComparison,
    plan_sync,
)
from vaultsync.domain.transfer import ExportRecord, parse_import, render_export

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping
    from datetime import datetime

    from vaultsync.domain.model import StoreRef
    from vaultsync.domain.ports import SecretStoreClient
    from vaultsync.domain.reconciliation import (
        ComparedEntry,
        ComparisonStats,
        ConflictAction,
        ProgressCallback,
        WriteOperation,
    )
    from vaultsync.domain.transfer import ExportOptions, TransferFormat

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ComparisonReport:
    source_ref: StoreRef
    target_ref: StoreRef
    entries: list[ComparedEntry]
    stats: ComparisonStats


@dataclass(slots=True)
class SyncRunResult:
    operations: list[WriteOperation]
    unavailable: list[str] = field(default_factory=list)
    result: SyncResult = field(default_factory=SyncResult)
    dry_run: bool = False


@dataclass(slots=True)
class ImportRunResult:
    parsed: int
    new_entries: list[str]
    conflicts: list[str]
    operations: list[WriteOperation]
    result: SyncResult = field(default_factory=SyncResult)
    dry_run: bool = False


@asynccontextmanager
async def _store_client(client: SecretStoreClient | None) -> AsyncIterator[SecretStoreClient]:
    if client is not None:
        yield client
        return
    async with KeyVaultClient() as owned:
        yield owned


def _build_loader(client: SecretStoreClient, config: SyncConfig) -> ValueLoader:
    cache = ValueCache(ttl_seconds=config.value_ttl_seconds)
    return ValueLoader(client, cache, concurrency=config.fetch_concurrency)


async def _open_comparison(
    client: SecretStoreClient,
    source_ref: StoreRef,
    target_ref: StoreRef,
    *,
    load_values: bool,
    config: SyncConfig,
) -> VaultComparison:
    source_entries, target_entries = await asyncio.gather(
        client.list_entries(source_ref),
        client.list_entries(target_ref),
    )
    comparison = VaultComparison(
        source_ref=source_ref,
        target_ref=target_ref,
        source_entries=source_entries,
        target_entries=target_entries,
        loader=_build_loader(client, config),
    )
    if load_values:
        await comparison.load_all_values()
    return comparison


def compare_vaults(
    source_ref: StoreRef,
    target_ref: StoreRef,
    *,
    load_values: bool = True,
    client: SecretStoreClient | None = None,
    sync_config: SyncConfig | None = None,
) -> ComparisonReport:
    """Compare two stores by name and, unless ``load_values`` is off, by value."""

    config = sync_config or get_sync_config()

    async def run() -> ComparisonReport:
        async with _store_client(client) as store:
            comparison = await _open_comparison(
                store, source_ref, target_ref, load_values=load_values, config=config
            )
            comparison.close()
            return ComparisonReport(
                source_ref=source_ref,
                target_ref=target_ref,
                entries=comparison.entries,
                stats=comparison.stats,
            )

    report = asyncio.run(run())
    stats = report.stats
    log.info(
        "Compared %s <-> %s: total=%d, match=%d, mismatch=%d, source-only=%d, "
        "target-only=%d, pending=%d",
        source_ref,
        target_ref,
        stats.total,
        stats.matches,
        stats.mismatches,
        stats.source_only,
        stats.target_only,
        stats.pending,
    )
    return report


def sync_vaults(  # noqa: PLR0913
    source_ref: StoreRef,
    target_ref: StoreRef,
    *,
    missing: MissingDirection = MissingDirection.TO_TARGET,
    overwrite_mismatches: bool = False,
    custom_values: Mapping[str, str] | None = None,
    dry_run: bool = False,
    on_progress: ProgressCallback | None = None,
    client: SecretStoreClient | None = None,
    sync_config: SyncConfig | None = None,
) -> SyncRunResult:
    """Compare two stores, then create missing entries and update mismatches.

    Names that need a copy but whose value could not be loaded are counted as
    failed without being attempted.
    """

    config = sync_config or get_sync_config()

    async def run() -> SyncRunResult:
        async with _store_client(client) as store:
            comparison = await _open_comparison(
                store, source_ref, target_ref, load_values=True, config=config
            )
            comparison.close()
            plan = plan_sync(
                comparison.entries,
                source_ref=source_ref,
                target_ref=target_ref,
                missing=missing,
                overwrite_mismatches=overwrite_mismatches,
                custom_values=custom_values,
            )
            for name in plan.unavailable:
                log.warning("Value of %s is not available; it will not be written", name)

            outcome = SyncRunResult(
                operations=list(plan.operations),
                unavailable=list(plan.unavailable),
                dry_run=dry_run,
            )
            if dry_run:
                log.info("Dry run: %d write(s) planned", len(plan.operations))
                return outcome

            executor = SyncExecutor(store, cache=comparison.loader.cache)
            outcome.result = await executor.execute(plan.operations, on_progress=on_progress)
            outcome.result.failed += len(plan.unavailable)
            return outcome

    return asyncio.run(run())


def import_secrets(  # noqa: PLR0913
    vault_ref: StoreRef,
    content: str,
    *,
    format: TransferFormat | str | None = None,  # noqa: A002
    policy: ConflictPolicy = ConflictPolicy.ASK,
    decisions: Mapping[str, ConflictAction] | None = None,
    dry_run: bool = False,
    on_progress: ProgressCallback | None = None,
    client: SecretStoreClient | None = None,
) -> ImportRunResult:
    """Merge an import file into ``vault_ref``.

    Parsing happens before the store is contacted, and conflicts must all be
    resolved (by ``policy`` or ``decisions``) before any write is issued.
    """

    entries = parse_import(content, format)

    async def run() -> ImportRunResult:
        async with _store_client(client) as store:
            existing = await store.list_entries(vault_ref)
            resolver = ConflictResolver(entries, existing, policy=policy)
            if decisions:
                resolver.apply_decisions(decisions)
            plan = resolver.build_operations(vault_ref)

            outcome = ImportRunResult(
                parsed=len(entries),
                new_entries=[entry.name for entry in resolver.new_entries],
                conflicts=[conflict.name for conflict in resolver.conflicts],
                operations=list(plan.operations),
                result=SyncResult(skipped=plan.skipped),
                dry_run=dry_run,
            )
            if dry_run:
                log.info(
                    "Dry run: %d create(s), %d update(s), %d skipped",
                    plan.creates,
                    plan.updates,
                    plan.skipped,
                )
                return outcome

            executor = SyncExecutor(store)
            outcome.result = await executor.execute(
                plan.operations, skipped=plan.skipped, on_progress=on_progress
            )
            return outcome

    return asyncio.run(run())


def export_secrets(  # noqa: PLR0913
    vault_ref: StoreRef,
    format: TransferFormat | str,  # noqa: A002
    *,
    options: ExportOptions | None = None,
    exported_at: datetime | None = None,
    client: SecretStoreClient | None = None,
    sync_config: SyncConfig | None = None,
) -> str:
    """Load every entry of ``vault_ref`` with its value and render it as ``format``."""

    config = sync_config or get_sync_config()

    async def run() -> list[ExportRecord]:
        async with _store_client(client) as store:
            listed = await store.list_entries(vault_ref)
            loader = _build_loader(store, config)
            records = await loader.load_many((vault_ref, entry.name) for entry in listed)

        exported: list[ExportRecord] = []
        for entry in listed:
            record = records[(vault_ref, entry.name)]
            if record.state is FetchState.ERRORED:
                log.warning("Exporting %s with an empty value: %s", entry.name, record.error)
            exported.append(ExportRecord(entry=entry, value=record.value or ""))
        return exported

    records = asyncio.run(run())
    vault_uri = normalize_vault_uri(vault_ref)
    return render_export(
        records,
        format,
        vault_name=_vault_name(vault_uri),
        vault_uri=vault_uri,
        options=options,
        exported_at=exported_at,
    )


def _vault_name(vault_uri: str) -> str:
    host = urlparse(vault_uri).hostname or vault_uri
    return host.split(".", 1)[0]
