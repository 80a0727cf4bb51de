"""Port for remote secret stores."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vaultsync.domain.model import SecretEntry, SecretValue, StoreRef


class SecretStoreError(RuntimeError):
    """Raised by store clients when a list, fetch or write cannot be completed."""


@runtime_checkable
class SecretStoreClient(Protocol):
    """Async access to named secret stores.

    Listing returns metadata only. ``get_value`` returns ``None`` when the entry does
    not exist; every other failure is raised as :class:`SecretStoreError`.
    ``update_entry`` creates a new version and keeps the store's history intact.
    """

    async def list_entries(self, store_ref: StoreRef) -> list[SecretEntry]: ...

    async def get_value(
        self,
        store_ref: StoreRef,
        name: str,
        version: str | None = None,
    ) -> SecretValue | None: ...

    async def create_entry(self, store_ref: StoreRef, name: str, value: str) -> SecretEntry: ...

    async def update_entry(self, store_ref: StoreRef, name: str, value: str) -> SecretEntry: ...


__all__ = ["SecretStoreClient", "SecretStoreError"]
