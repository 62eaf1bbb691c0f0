"""Public pending-queue service: one queue and one engine per capture source."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from cardqueue.application.queue_sync.constants import DEFAULT_SLOTS
from cardqueue.application.queue_sync.engine import QueueSyncEngine
from cardqueue.application.queue_sync.locks import SlotLockRegistry
from cardqueue.application.queue_sync.models import BatchResult, FullSyncResult
from cardqueue.application.queue_sync.queue import PendingQueue
from cardqueue.config import NoteDefaultsConfig, QueueLimitsConfig, SyncConfig
from cardqueue.domain.exceptions import StorageError
from cardqueue.domain.models import PendingItem, PendingItemKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from cardqueue.application.queue_sync.protocols import NoteServiceProtocol, QueueStoreProtocol
    from cardqueue.config import AppConfig

logger = logging.getLogger(__name__)


class PendingQueueService:
    """Wires the pending queues of every kind to one store and one note service.

    The store and note service handles are owned by the caller; the service
    only shares a lock registry between its queues. ``on_enqueue`` lets a
    scheduler react to new captures, e.g. ``SyncScheduler.schedule_soon``.
    """

    def __init__(
        self,
        store: QueueStoreProtocol,
        note_service: NoteServiceProtocol,
        *,
        config: AppConfig | None = None,
        slots: dict[PendingItemKind, str] | None = None,
        locks: SlotLockRegistry | None = None,
        on_enqueue: Callable[[PendingItem], object] | None = None,
    ) -> None:
        defaults = config.note_defaults if config else NoteDefaultsConfig()
        limits = config.queue_limits if config else QueueLimitsConfig()
        self.sync_config = config.sync if config else SyncConfig()
        self.locks = locks or SlotLockRegistry()
        self.on_enqueue = on_enqueue

        slot_names = {**DEFAULT_SLOTS, **(slots or {})}
        self._queues: dict[PendingItemKind, PendingQueue] = {}
        self._engines: dict[PendingItemKind, QueueSyncEngine] = {}
        for kind in PendingItemKind:
            queue = PendingQueue(
                store, slot_names[kind], limits=limits, locks=self.locks, kind=kind
            )
            self._queues[kind] = queue
            self._engines[kind] = QueueSyncEngine(
                queue, note_service, defaults=defaults, sync_config=self.sync_config
            )

    def queue(self, kind: PendingItemKind | str = PendingItemKind.CARD) -> PendingQueue:
        return self._queues[PendingItemKind(kind)]

    async def enqueue(self, item: PendingItem) -> PendingItem:
        """Append ``item`` to the queue of its kind.

        ``on_enqueue`` is called with the stored item once it is persisted.
        """
        stored = await self.queue(item.kind).append(item)
        if self.on_enqueue is not None:
            self.on_enqueue(stored)
        return stored

    async def pending_counts(self) -> dict[PendingItemKind, int]:
        return {kind: await queue.count() for kind, queue in self._queues.items()}

    async def total_pending(self) -> int:
        return sum((await self.pending_counts()).values())

    async def sync(self, kind: PendingItemKind | str = PendingItemKind.CARD) -> BatchResult:
        return await self._engines[PendingItemKind(kind)].sync()

    async def sync_all(self) -> FullSyncResult:
        """Drain every queue one after another.

        A storage failure on one queue is recorded and the other queues are
        still drained.
        """
        start_time = time.perf_counter()
        full = FullSyncResult()

        for kind in PendingItemKind:
            try:
                result = await self.sync(kind)
            except StorageError as exc:
                full.storage_errors[kind.value] = str(exc)
                logger.error(
                    "pending_queue_sync_storage_failed",
                    extra={"kind": kind.value, "slot": self.queue(kind).slot, "error": str(exc)},
                )
                continue
            full.results[kind.value] = result
            full.total_success += result.success_count
            full.total_errors += result.error_count

        full.duration_seconds = round(time.perf_counter() - start_time, 3)
        return full

    async def clear_all(self) -> None:
        for queue in self._queues.values():
            await queue.clear()
