"""Asynchronous, cached secret value loading.

Values are fetched per ``(store_ref, name)`` key and kept in an explicit
:class:`ValueCache` that callers share by reference. Concurrent requests for the
same key are collapsed onto one in-flight fetch, so the cache has exactly one
writer per key. :class:`ValueLoader` layers the per-key fetch state machine on top:

    NOT_REQUESTED -> LOADING -> LOADED | ERRORED

Keys for entries that do not exist on a side are reported as ``NOT_APPLICABLE``
and never transition.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from vaultsync.config.sync import DEFAULT_FETCH_CONCURRENCY, DEFAULT_VALUE_TTL_SECONDS
from vaultsync.domain.ports import SecretStoreError

from .contracts import FetchRecord, FetchState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from vaultsync.domain.model import StoreRef
    from vaultsync.domain.ports import SecretStoreClient

    from .contracts import ValueKey

log = getLogger(__name__)

type Clock = Callable[[], float]
type ValueLoad = Callable[[], Awaitable[str | None]]
type FetchListener = Callable[[ValueKey, FetchRecord], None]


@dataclass(frozen=True, slots=True)
class CachedValue:
    value: str | None
    fetched_at: float


class ValueCache:
    """Keyed value store with a staleness TTL and in-flight request deduplication."""

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_VALUE_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("Cache TTL must be non-negative")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[ValueKey, CachedValue] = {}
        self._in_flight: dict[ValueKey, asyncio.Future[str | None]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: ValueKey) -> CachedValue | None:
        """Return the cached value for ``key`` unless it is missing or stale."""

        cached = self._entries.get(key)
        if cached is None or self.is_stale(cached):
            return None
        return cached

    def put(self, key: ValueKey, value: str | None) -> CachedValue:
        cached = CachedValue(value=value, fetched_at=self._clock())
        self._entries[key] = cached
        return cached

    def is_stale(self, cached: CachedValue) -> bool:
        return self._clock() - cached.fetched_at > self.ttl_seconds

    def invalidate(self, key: ValueKey) -> None:
        self._entries.pop(key, None)

    def invalidate_store(self, store_ref: StoreRef) -> None:
        for key in [key for key in self._entries if key[0] == store_ref]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def in_flight(self, key: ValueKey) -> bool:
        return key in self._in_flight

    async def get_or_load(self, key: ValueKey, load: ValueLoad) -> str | None:
        """Return a fresh cached value or run ``load`` once for all concurrent callers.

        Failures are not cached: every caller waiting on the failed fetch receives
        the exception and the next request starts a new fetch.
        """

        cached = self.get(key)
        if cached is not None:
            return cached.value

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._load_and_store(key, load))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda done, key=key: self._release(key, done))
        # Shielded so a cancelled waiter does not cancel the fetch other waiters share.
        return await asyncio.shield(pending)

    async def _load_and_store(self, key: ValueKey, load: ValueLoad) -> str | None:
        value = await load()
        self.put(key, value)
        return value

    def _release(self, key: ValueKey, done: asyncio.Future[str | None]) -> None:
        if self._in_flight.get(key) is done:
            del self._in_flight[key]
        if not done.cancelled():
            # Mark the exception as retrieved; waiters handle it themselves.
            done.exception()


class ValueLoader:
    """Fetch secret values on demand or in bulk and track per-key fetch state."""

    def __init__(
        self,
        client: SecretStoreClient,
        cache: ValueCache,
        *,
        concurrency: int = DEFAULT_FETCH_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError("Fetch concurrency must be at least 1")
        self._client = client
        self.cache = cache
        self.concurrency = concurrency
        self._records: dict[ValueKey, FetchRecord] = {}
        self._listeners: list[FetchListener] = []

    def subscribe(self, listener: FetchListener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def record(self, store_ref: StoreRef, name: str, *, present: bool = True) -> FetchRecord:
        """Return the current fetch record for ``(store_ref, name)``.

        ``present=False`` marks an entry that does not exist on that side. Loaded
        values are read back from the cache: a fresh cache entry counts as loaded
        even if this loader never fetched it, and an expired or invalidated one
        reverts the key to ``NOT_REQUESTED``.
        """

        if not present:
            return FetchRecord(state=FetchState.NOT_APPLICABLE)
        key = (store_ref, name)
        record = self._records.get(key)
        if record is not None and record.state is FetchState.LOADING:
            return record
        cached = self.cache.get(key)
        if cached is not None:
            return FetchRecord(state=FetchState.LOADED, value=cached.value)
        if record is not None and record.state is FetchState.ERRORED:
            return record
        return FetchRecord()

    async def load(self, store_ref: StoreRef, name: str, *, refresh: bool = False) -> FetchRecord:
        """Fetch one value, reusing a fresh cached value unless ``refresh`` is set."""

        key = (store_ref, name)
        if refresh:
            self.cache.invalidate(key)

        cached = self.cache.get(key)
        if cached is not None:
            return self._update(key, FetchRecord(state=FetchState.LOADED, value=cached.value))

        self._update(key, FetchRecord(state=FetchState.LOADING))
        try:
            value = await self.cache.get_or_load(key, lambda: self._fetch(store_ref, name))
        except SecretStoreError as exc:
            log.warning("Failed to load value of %s from %s: %s", name, store_ref, exc)
            return self._update(key, FetchRecord(state=FetchState.ERRORED, error=str(exc)))
        except asyncio.CancelledError:
            # The shared fetch still completes into the cache.
            self._update(key, FetchRecord())
            raise
        return self._update(key, FetchRecord(state=FetchState.LOADED, value=value))

    async def load_many(
        self,
        keys: Iterable[ValueKey],
        *,
        refresh: bool = False,
    ) -> dict[ValueKey, FetchRecord]:
        """Fetch every key concurrently, at most ``concurrency`` at a time.

        Each fetch is isolated: an errored key is recorded and the others continue.
        """

        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}
        log.debug("Loading %d values with concurrency %d", len(unique), self.concurrency)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(key: ValueKey) -> FetchRecord:
            async with semaphore:
                return await self.load(*key, refresh=refresh)

        records = await asyncio.gather(*(bounded(key) for key in unique))
        return dict(zip(unique, records, strict=True))

    async def _fetch(self, store_ref: StoreRef, name: str) -> str | None:
        result = await self._client.get_value(store_ref, name)
        if result is None:
            log.info("Entry %s no longer exists in %s", name, store_ref)
            return None
        return result.value

    def _update(self, key: ValueKey, record: FetchRecord) -> FetchRecord:
        self._records[key] = record
        for listener in tuple(self._listeners):
            listener(key, record)
        return record
