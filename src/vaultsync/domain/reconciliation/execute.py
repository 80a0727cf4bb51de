"""Sequential batch write execution.

Operations run one at a time, in order, so progress is deterministic and the
destination store never sees more than one concurrent write from a batch. A failed
operation is recorded and counted; the rest of the queue still runs.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from vaultsync.domain.ports import SecretStoreError

from .contracts import SyncProgress, SyncResult, WriteFailure, WriteKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from vaultsync.domain.ports import SecretStoreClient

    from .contracts import WriteOperation
    from .values import ValueCache

log = getLogger(__name__)

type ProgressCallback = Callable[[SyncProgress], None]


class SyncExecutor:
    def __init__(self, client: SecretStoreClient, *, cache: ValueCache | None = None) -> None:
        self._client = client
        self._cache = cache

    async def execute(
        self,
        operations: Sequence[WriteOperation],
        *,
        skipped: int = 0,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Apply ``operations`` in order and aggregate the outcome.

        ``skipped`` carries the count of entries resolved as skip, which are never
        attempted but are reported alongside the write counts.
        """

        result = SyncResult(skipped=skipped)
        total = len(operations)
        log.info("Executing %d write(s) (%d skipped)", total, skipped)

        for current, operation in enumerate(operations, start=1):
            succeeded = await self._apply(operation, result)
            if on_progress is not None:
                on_progress(
                    SyncProgress(
                        current=current,
                        total=total,
                        operation=operation,
                        succeeded=succeeded,
                    )
                )

        log.info(
            "Writes finished: success=%d, failed=%d, skipped=%d",
            result.success,
            result.failed,
            result.skipped,
        )
        return result

    async def _apply(self, operation: WriteOperation, result: SyncResult) -> bool:
        try:
            match operation.kind:
                case WriteKind.CREATE:
                    await self._client.create_entry(
                        operation.store_ref, operation.name, operation.value
                    )
                case WriteKind.UPDATE:
                    await self._client.update_entry(
                        operation.store_ref, operation.name, operation.value
                    )
        except SecretStoreError as exc:
            log.error(  # noqa: TRY400
                "Failed to %s %s in %s: %s",
                operation.kind,
                operation.name,
                operation.store_ref,
                exc,
            )
            result.failed += 1
            result.failures.append(WriteFailure(operation=operation, message=str(exc)))
            return False

        result.success += 1
        if self._cache is not None:
            self._cache.invalidate(operation.key)
        return True
