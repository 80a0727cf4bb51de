from __future__ import annotations

import asyncio

from tests.support.secret_store import SOURCE, TARGET, InMemorySecretStore
from vaultsync.domain.reconciliation import (
    SyncExecutor,
    SyncProgress,
    ValueCache,
    WriteKind,
    WriteOperation,
)


def _creates(*names: str) -> list[WriteOperation]:
    return [WriteOperation(WriteKind.CREATE, TARGET, name, f"value-{name}") for name in names]


def test_one_failed_write_does_not_stop_the_batch() -> None:
    store = InMemorySecretStore()
    store.failing_writes.add((TARGET, "y"))
    progress: list[SyncProgress] = []

    result = asyncio.run(
        SyncExecutor(store).execute(_creates("x", "y", "z"), on_progress=progress.append)
    )

    assert (result.success, result.failed, result.skipped) == (2, 1, 0)
    assert result.attempted == 3
    assert [write[2] for write in store.writes] == ["x", "y", "z"]
    assert [failure.operation.name for failure in result.failures] == ["y"]
    assert "create of y failed" in result.failures[0].message
    assert [(p.current, p.total, p.succeeded) for p in progress] == [
        (1, 3, True),
        (2, 3, False),
        (3, 3, True),
    ]


def test_updates_write_new_versions() -> None:
    store = InMemorySecretStore.with_values({TARGET: {"a": "old"}})
    operation = WriteOperation(WriteKind.UPDATE, TARGET, "a", "new")

    result = asyncio.run(SyncExecutor(store).execute([operation], skipped=2))

    assert (result.success, result.failed, result.skipped) == (1, 0, 2)
    assert store.writes == [("update", TARGET, "a", "new")]
    assert store.stores[TARGET]["a"] == "new"


def test_successful_write_invalidates_cached_value() -> None:
    store = InMemorySecretStore.with_values({TARGET: {"a": "old"}})
    cache = ValueCache()
    cache.put((TARGET, "a"), "old")
    cache.put((SOURCE, "a"), "new")
    executor = SyncExecutor(store, cache=cache)

    asyncio.run(executor.execute([WriteOperation(WriteKind.UPDATE, TARGET, "a", "new")]))

    assert cache.get((TARGET, "a")) is None
    assert cache.get((SOURCE, "a")) is not None


def test_failed_write_keeps_cached_value() -> None:
    store = InMemorySecretStore.with_values({TARGET: {"a": "old"}})
    store.failing_writes.add((TARGET, "a"))
    cache = ValueCache()
    cache.put((TARGET, "a"), "old")

    asyncio.run(
        SyncExecutor(store, cache=cache).execute(
            [WriteOperation(WriteKind.UPDATE, TARGET, "a", "new")]
        )
    )

    assert cache.get((TARGET, "a")) is not None


def test_empty_batch_reports_nothing() -> None:
    result = asyncio.run(SyncExecutor(InMemorySecretStore()).execute([]))

    assert (result.success, result.failed, result.skipped, result.attempted) == (0, 0, 0, 0)


def test_write_operation_repr_hides_value() -> None:
    operation = WriteOperation(WriteKind.CREATE, TARGET, "a", "s3cr3t")

    assert "s3cr3t" not in repr(operation)
    assert operation.key == (TARGET, "a")
