"""Synchronization engine draining one pending queue into the note service."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from cardqueue.adapters.ankiconnect.note_builder import build_note
from cardqueue.application.queue_sync.constants import LOG_PREVIEW_LENGTH
from cardqueue.application.queue_sync.errors import (
    SyncErrorKind,
    classify_error,
    error_message,
)
from cardqueue.application.queue_sync.models import BatchResult
from cardqueue.application.queue_sync.queue import UnreadableEntry
from cardqueue.config import NoteDefaultsConfig, SyncConfig
from cardqueue.core.logging_utils import generate_correlation_id, truncate_log_content

if TYPE_CHECKING:
    from collections.abc import Callable

    from cardqueue.adapters.ankiconnect.models import AnkiNote
    from cardqueue.application.queue_sync.protocols import NoteServiceProtocol
    from cardqueue.application.queue_sync.queue import PendingQueue
    from cardqueue.domain.models import PendingItem

logger = logging.getLogger(__name__)


class QueueSyncEngine:
    """Runs synchronization passes over one ``PendingQueue``.

    A pass submits the queued items one at a time, in queue order. An item is
    removed as soon as the note service confirms it, so a crash mid-pass only
    re-sends items that were never confirmed. Per-item failures are recorded
    in the result and the item stays queued for the next pass; only a
    ``StorageError`` ends a pass early. A stored entry that cannot be read is
    reported as a validation failure at its position and left in place.
    """

    def __init__(
        self,
        queue: PendingQueue,
        note_service: NoteServiceProtocol,
        *,
        defaults: NoteDefaultsConfig | None = None,
        sync_config: SyncConfig | None = None,
        note_builder: Callable[[PendingItem, NoteDefaultsConfig], AnkiNote] = build_note,
    ) -> None:
        self.queue = queue
        self.note_service = note_service
        self.defaults = defaults or NoteDefaultsConfig()
        self.sync_config = sync_config or SyncConfig()
        self._build_note = note_builder

    async def sync(self) -> BatchResult:
        """Drain the queue once.

        Returns:
            BatchResult with counts and per-item errors. Error positions are
            the items' positions when the pass started.

        Raises:
            StorageError: The queue could not be loaded or updated.
        """
        correlation_id = generate_correlation_id()
        result = BatchResult(slot=self.queue.slot, correlation_id=correlation_id)
        start_time = time.perf_counter()

        async with self.queue.pass_lock:
            snapshot = await self.queue.entries()
            if not snapshot:
                logger.debug(
                    "pending_queue_sync_skipped_empty",
                    extra={"slot": self.queue.slot, "correlation_id": correlation_id},
                )
                return result

            logger.info(
                "pending_queue_sync_started",
                extra={
                    "slot": self.queue.slot,
                    "queue_length": len(snapshot),
                    "correlation_id": correlation_id,
                },
            )

            failed_ids: list[str] = []
            for position, entry in enumerate(snapshot):
                if isinstance(entry, UnreadableEntry):
                    self._record_unreadable(result, position, entry)
                elif not await self._sync_item(position, entry, result):
                    failed_ids.append(entry.id)

            if failed_ids and self.sync_config.quarantine_after_failures > 0:
                result.quarantined_count = await self._quarantine_repeat_failures(
                    failed_ids, correlation_id
                )

            result.remaining_count = await self.queue.count()

        result.duration_seconds = round(time.perf_counter() - start_time, 3)
        log = logger.warning if result.errors else logger.info
        log(
            "pending_queue_sync_completed",
            extra={
                "slot": self.queue.slot,
                "success_count": result.success_count,
                "error_count": result.error_count,
                "quarantined_count": result.quarantined_count,
                "remaining_count": result.remaining_count,
                "duration_seconds": result.duration_seconds,
                "correlation_id": correlation_id,
            },
        )
        return result

    async def _sync_item(self, position: int, item: PendingItem, result: BatchResult) -> bool:
        """Validate and submit one item. Returns ``True`` once it left the queue."""
        validation = self.queue.validator.validate(item)
        if not validation.valid:
            self._record_failure(
                result, position, item, validation.message, SyncErrorKind.VALIDATION
            )
            return False

        try:
            note = self._build_note(item, self.defaults)
            note_id = await asyncio.wait_for(
                self.note_service.add_note(note),
                timeout=self.sync_config.submit_timeout_sec,
            )
        except Exception as exc:
            self._record_failure(result, position, item, error_message(exc), classify_error(exc))
            return False

        # StorageError here ends the pass
        await self.queue.remove(item.id)
        result.success_count += 1
        result.note_ids.append(note_id)
        logger.debug(
            "pending_item_synced",
            extra={
                "slot": self.queue.slot,
                "position": position,
                "item_id": item.id,
                "note_id": note_id,
                "correlation_id": result.correlation_id,
            },
        )
        return True

    def _record_failure(
        self,
        result: BatchResult,
        position: int,
        item: PendingItem,
        message: str,
        kind: SyncErrorKind,
    ) -> None:
        result.add_error(position=position, item_id=item.id, message=message, kind=kind)
        logger.warning(
            "pending_item_sync_failed",
            extra={
                "slot": self.queue.slot,
                "position": position,
                "item_id": item.id,
                "kind": kind.value,
                "error": message,
                "front_preview": truncate_log_content(item.front, LOG_PREVIEW_LENGTH),
                "correlation_id": result.correlation_id,
            },
        )

    def _record_unreadable(
        self, result: BatchResult, position: int, entry: UnreadableEntry
    ) -> None:
        message = f"Stored entry cannot be read: {entry.reason}"
        result.add_error(
            position=position,
            item_id=entry.id,
            message=message,
            kind=SyncErrorKind.VALIDATION,
        )
        logger.warning(
            "pending_item_unreadable",
            extra={
                "slot": self.queue.slot,
                "position": position,
                "item_id": entry.id,
                "error": message,
                "correlation_id": result.correlation_id,
            },
        )

    async def _quarantine_repeat_failures(self, failed_ids: list[str], correlation_id: str) -> int:
        threshold = self.sync_config.quarantine_after_failures
        counts = await self.queue.record_failures(failed_ids)
        exhausted = [item_id for item_id, count in counts.items() if count >= threshold]
        if not exhausted:
            return 0

        moved = await self.queue.quarantine(exhausted)
        logger.warning(
            "pending_items_quarantined",
            extra={
                "slot": self.queue.slot,
                "count": moved,
                "threshold": threshold,
                "correlation_id": correlation_id,
            },
        )
        return moved
