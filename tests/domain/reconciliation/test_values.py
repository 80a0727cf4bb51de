from __future__ import annotations

import asyncio

import pytest

from tests.support.secret_store import SOURCE, TARGET, InMemorySecretStore
from vaultsync.domain.ports import SecretStoreError
from vaultsync.domain.reconciliation import FetchRecord, FetchState, ValueCache, ValueLoader
from vaultsync.domain.reconciliation.contracts import ValueKey


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_cache_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = ValueCache(ttl_seconds=300.0, clock=clock)
    cache.put((SOURCE, "a"), "1")

    clock.now = 300.0
    assert cache.get((SOURCE, "a")) is not None

    clock.now = 300.5
    assert cache.get((SOURCE, "a")) is None
    assert (SOURCE, "a") in cache


def test_cache_invalidation_by_key_and_store() -> None:
    cache = ValueCache()
    cache.put((SOURCE, "a"), "1")
    cache.put((SOURCE, "b"), "2")
    cache.put((TARGET, "a"), "1")

    cache.invalidate((SOURCE, "a"))
    assert cache.get((SOURCE, "a")) is None

    cache.invalidate_store(SOURCE)
    assert len(cache) == 1
    assert cache.get((TARGET, "a")) is not None

    cache.clear()
    assert len(cache) == 0


def test_negative_ttl_is_rejected() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        ValueCache(ttl_seconds=-1)


def test_concurrent_loads_of_one_key_issue_one_store_call(store: InMemorySecretStore) -> None:
    store.fetch_delay = 0.01
    loader = ValueLoader(store, ValueCache())

    async def run() -> list[FetchRecord]:
        return list(await asyncio.gather(*(loader.load(SOURCE, "a") for _ in range(5))))

    records = asyncio.run(run())

    assert store.fetches[(SOURCE, "a")] == 1
    assert {record.value for record in records} == {"1"}
    assert all(record.state is FetchState.LOADED for record in records)
    assert not loader.cache.in_flight((SOURCE, "a"))


def test_fresh_cached_value_is_reused_until_refresh(store: InMemorySecretStore) -> None:
    loader = ValueLoader(store, ValueCache())

    asyncio.run(loader.load(SOURCE, "a"))
    store.stores[SOURCE]["a"] = "updated"
    cached = asyncio.run(loader.load(SOURCE, "a"))
    refreshed = asyncio.run(loader.load(SOURCE, "a", refresh=True))

    assert cached.value == "1"
    assert refreshed.value == "updated"
    assert store.fetches[(SOURCE, "a")] == 2


def test_stale_value_is_fetched_again(store: InMemorySecretStore) -> None:
    clock = FakeClock()
    loader = ValueLoader(store, ValueCache(ttl_seconds=10.0, clock=clock))

    asyncio.run(loader.load(SOURCE, "a"))
    clock.now = 11.0
    asyncio.run(loader.load(SOURCE, "a"))

    assert store.fetches[(SOURCE, "a")] == 2


def test_record_reverts_when_cached_value_expires_or_is_invalidated(
    store: InMemorySecretStore,
) -> None:
    clock = FakeClock()
    loader = ValueLoader(store, ValueCache(ttl_seconds=10.0, clock=clock))

    asyncio.run(loader.load(SOURCE, "a"))
    asyncio.run(loader.load(SOURCE, "b"))
    assert loader.record(SOURCE, "a").state is FetchState.LOADED

    clock.now = 11.0
    assert loader.record(SOURCE, "a") == FetchRecord()

    asyncio.run(loader.load(SOURCE, "a"))
    loader.cache.invalidate((SOURCE, "a"))
    assert loader.record(SOURCE, "a").state is FetchState.NOT_REQUESTED


def test_cancelled_load_does_not_stay_loading(store: InMemorySecretStore) -> None:
    store.fetch_delay = 0.05
    loader = ValueLoader(store, ValueCache())

    async def run() -> tuple[FetchState, FetchRecord]:
        task = asyncio.ensure_future(loader.load(SOURCE, "a"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        after_cancel = loader.record(SOURCE, "a").state
        await asyncio.sleep(0.1)
        return after_cancel, loader.record(SOURCE, "a")

    after_cancel, settled = asyncio.run(run())

    assert after_cancel is FetchState.NOT_REQUESTED
    assert settled == FetchRecord(state=FetchState.LOADED, value="1")
    assert store.fetches[(SOURCE, "a")] == 1


def test_bulk_load_never_exceeds_concurrency() -> None:
    store = InMemorySecretStore.with_values({SOURCE: {f"s{i}": str(i) for i in range(20)}})
    store.fetch_delay = 0.005
    loader = ValueLoader(store, ValueCache(), concurrency=3)
    keys: list[ValueKey] = [(SOURCE, f"s{i}") for i in range(20)]

    records = asyncio.run(loader.load_many(keys))

    assert len(records) == 20
    assert store.max_in_flight <= 3
    assert store.max_in_flight > 1
    assert records[(SOURCE, "s7")].value == "7"


def test_bulk_load_deduplicates_keys(store: InMemorySecretStore) -> None:
    loader = ValueLoader(store, ValueCache())

    records = asyncio.run(loader.load_many([(SOURCE, "a"), (SOURCE, "a"), (TARGET, "c")]))

    assert list(records) == [(SOURCE, "a"), (TARGET, "c")]
    assert store.calls["get"] == 2


def test_fetch_error_is_isolated_and_not_cached(store: InMemorySecretStore) -> None:
    store.failing_fetches.add((SOURCE, "a"))
    loader = ValueLoader(store, ValueCache())

    records = asyncio.run(loader.load_many([(SOURCE, "a"), (SOURCE, "b")]))

    failed = records[(SOURCE, "a")]
    assert failed.state is FetchState.ERRORED
    assert failed.error is not None
    assert "fetch of a failed" in failed.error
    assert records[(SOURCE, "b")].state is FetchState.LOADED
    assert (SOURCE, "a") not in loader.cache

    store.failing_fetches.clear()
    retried = asyncio.run(loader.load(SOURCE, "a"))
    assert retried.state is FetchState.LOADED
    assert retried.value == "1"


def test_missing_value_loads_as_none(store: InMemorySecretStore) -> None:
    store.missing_on_fetch.add((SOURCE, "a"))
    loader = ValueLoader(store, ValueCache())

    record = asyncio.run(loader.load(SOURCE, "a"))

    assert record.state is FetchState.LOADED
    assert record.value is None


def test_record_reports_state_transitions_to_listeners(store: InMemorySecretStore) -> None:
    loader = ValueLoader(store, ValueCache())
    seen: list[tuple[ValueKey, FetchState]] = []
    unsubscribe = loader.subscribe(lambda key, record: seen.append((key, record.state)))

    assert loader.record(SOURCE, "a").state is FetchState.NOT_REQUESTED
    assert loader.record(SOURCE, "zzz", present=False).state is FetchState.NOT_APPLICABLE

    asyncio.run(loader.load(SOURCE, "a"))
    unsubscribe()
    asyncio.run(loader.load(SOURCE, "b"))

    assert seen == [((SOURCE, "a"), FetchState.LOADING), ((SOURCE, "a"), FetchState.LOADED)]
    assert loader.record(SOURCE, "a").value == "1"


def test_cache_shared_between_loaders_counts_as_loaded(store: InMemorySecretStore) -> None:
    cache = ValueCache()
    asyncio.run(ValueLoader(store, cache).load(SOURCE, "a"))

    other = ValueLoader(store, cache)

    assert other.record(SOURCE, "a") == FetchRecord(state=FetchState.LOADED, value="1")


def test_get_or_load_propagates_errors_to_every_waiter() -> None:
    cache = ValueCache()
    calls = 0

    async def failing() -> str | None:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        raise SecretStoreError("down")

    async def run() -> list[BaseException | str | None]:
        return list(
            await asyncio.gather(
                cache.get_or_load((SOURCE, "a"), failing),
                cache.get_or_load((SOURCE, "a"), failing),
                return_exceptions=True,
            )
        )

    results = asyncio.run(run())

    assert calls == 1
    assert all(isinstance(result, SecretStoreError) for result in results)


def test_loader_rejects_zero_concurrency(store: InMemorySecretStore) -> None:
    with pytest.raises(ValueError, match="at least 1"):
        ValueLoader(store, ValueCache(), concurrency=0)
