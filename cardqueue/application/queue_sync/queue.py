"""Pending queue operations over one store slot.

Each operation loads the whole slot, changes it, and writes the whole slot
back. All of that happens under the slot's mutation lock so concurrent
callers in the process run one after the other instead of overwriting each
other's changes.

A stored entry that does not convert to a ``PendingItem`` (for example after
a hand edit of the store) is loaded as an ``UnreadableEntry``. It keeps its
position and is written back verbatim.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from cardqueue.application.queue_sync.constants import (
    LOG_PREVIEW_LENGTH,
    failures_slot,
    quarantine_slot,
)
from cardqueue.application.queue_sync.locks import SlotLockRegistry
from cardqueue.core.logging_utils import truncate_log_content
from cardqueue.domain.exceptions import QueueIndexError, StorageError, ValidationError
from cardqueue.domain.models import PendingItem, PendingItemKind, new_item_id
from cardqueue.domain.services.item_validator import ItemValidator

if TYPE_CHECKING:
    import asyncio

    from cardqueue.application.queue_sync.protocols import QueueStoreProtocol
    from cardqueue.config import QueueLimitsConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnreadableEntry:
    """A stored queue entry that could not be read as a ``PendingItem``."""

    raw: Any
    reason: str

    @property
    def id(self) -> str | None:
        if isinstance(self.raw, Mapping) and self.raw.get("id"):
            return str(self.raw["id"])
        return None

    def to_storage(self) -> Any:
        return self.raw


QueueEntry = PendingItem | UnreadableEntry


def _describe_validation_error(exc: PydanticValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "entry"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


class PendingQueue:
    """Ordered pending items for one capture source, persisted under ``slot``."""

    def __init__(
        self,
        store: QueueStoreProtocol,
        slot: str,
        *,
        limits: QueueLimitsConfig | None = None,
        locks: SlotLockRegistry | None = None,
        kind: PendingItemKind | None = None,
    ) -> None:
        self._store = store
        self.slot = slot
        self.kind = kind
        self.validator = limits.validator() if limits is not None else ItemValidator()
        self._locks = locks or SlotLockRegistry()

    @property
    def mutation_lock(self) -> asyncio.Lock:
        return self._locks.mutation_lock(self.slot)

    @property
    def pass_lock(self) -> asyncio.Lock:
        return self._locks.pass_lock(self.slot)

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    async def entries(self) -> list[QueueEntry]:
        """Return every stored entry in order, unreadable ones included.

        Positions in this list are the positions ``remove_at`` and sync
        errors refer to.
        """
        async with self.mutation_lock:
            return await self._load_entries()

    async def list(self) -> list[PendingItem]:
        """Return the readable queued items in order; ``[]`` for a slot never written."""
        return [entry for entry in await self.entries() if isinstance(entry, PendingItem)]

    async def count(self) -> int:
        return len(await self.entries())

    async def append(self, item: PendingItem) -> PendingItem:
        """Validate ``item`` and add it to the end of the queue.

        Returns:
            The stored item. It differs from ``item`` only when the id was
            already taken in this slot and a fresh one had to be assigned.

        Raises:
            ValidationError: The item breaks a field constraint or belongs to
                another kind of queue. The store is not touched.
            StorageError: The slot could not be read or written.
        """
        if self.kind is not None and item.kind is not self.kind:
            msg = f"Item kind {item.kind.value} does not match queue kind {self.kind.value}"
            raise ValidationError(msg, details={"errors": [msg], "slot": self.slot})

        validation = self.validator.validate(item)
        if not validation.valid:
            raise ValidationError(
                validation.message,
                details={"errors": validation.errors, "slot": self.slot},
            )

        async with self.mutation_lock:
            entries = await self._load_entries()
            if any(entry.id == item.id for entry in entries):
                item = item.model_copy(update={"id": new_item_id()})
            entries.append(item)
            await self._save_entries(entries)

        logger.info(
            "pending_item_queued",
            extra={
                "slot": self.slot,
                "item_id": item.id,
                "queue_length": len(entries),
                "front_preview": truncate_log_content(item.front, LOG_PREVIEW_LENGTH),
            },
        )
        return item

    async def remove_at(self, index: int) -> QueueEntry:
        """Remove the entry at ``index``, readable or not.

        Raises:
            QueueIndexError: ``index`` is outside ``[0, len)``.
            StorageError: The slot could not be read or written.
        """
        async with self.mutation_lock:
            entries = await self._load_entries()
            if index < 0 or index >= len(entries):
                msg = f"Queue index {index} out of range for {len(entries)} pending item(s)"
                raise QueueIndexError(msg, details={"slot": self.slot, "index": index})
            removed = entries.pop(index)
            await self._save_entries(entries)
            if removed.id:
                await self._forget_failures([removed.id])

        logger.info(
            "pending_item_removed",
            extra={"slot": self.slot, "item_id": removed.id, "position": index},
        )
        return removed

    async def remove(self, item_id: str) -> bool:
        """Remove the item with ``item_id``; ``False`` if it is no longer queued."""
        async with self.mutation_lock:
            entries = await self._load_entries()
            remaining = [entry for entry in entries if entry.id != item_id]
            if len(remaining) == len(entries):
                return False
            await self._save_entries(remaining)
            await self._forget_failures([item_id])
        return True

    async def clear(self) -> None:
        async with self.mutation_lock:
            await self._write(self.slot, [])
            await self._forget_failures(None)
        logger.info("pending_queue_cleared", extra={"slot": self.slot})

    # ------------------------------------------------------------------
    # Failure tracking and quarantine
    # ------------------------------------------------------------------

    async def failure_counts(self) -> dict[str, int]:
        async with self.mutation_lock:
            return await self._load_failures()

    async def record_failures(self, item_ids: list[str]) -> dict[str, int]:
        """Count one more consecutive failed pass for each of ``item_ids``.

        Counts of items that are no longer queued are dropped.

        Returns:
            Updated counts for ``item_ids`` that are still queued.
        """
        async with self.mutation_lock:
            queued_ids = {entry.id for entry in await self._load_entries() if entry.id}
            counts = {
                item_id: count
                for item_id, count in (await self._load_failures()).items()
                if item_id in queued_ids
            }
            updated: dict[str, int] = {}
            for item_id in item_ids:
                if item_id not in queued_ids:
                    continue
                counts[item_id] = counts.get(item_id, 0) + 1
                updated[item_id] = counts[item_id]
            await self._write(failures_slot(self.slot), counts)
        return updated

    async def quarantine(self, item_ids: list[str]) -> int:
        """Move the given items, in queue order, to the quarantine slot."""
        wanted = set(item_ids)
        async with self.mutation_lock:
            entries = await self._load_entries()
            moving = [
                entry
                for entry in entries
                if isinstance(entry, PendingItem) and entry.id in wanted
            ]
            if not moving:
                return 0
            quarantined = await self._load_slot(quarantine_slot(self.slot))
            await self._write(
                quarantine_slot(self.slot),
                [entry.to_storage() for entry in [*quarantined, *moving]],
            )
            moved_ids = {item.id for item in moving}
            await self._save_entries([entry for entry in entries if entry.id not in moved_ids])
            await self._forget_failures(list(moved_ids))
        return len(moving)

    async def quarantined(self) -> list[PendingItem]:
        async with self.mutation_lock:
            entries = await self._load_slot(quarantine_slot(self.slot))
        return [entry for entry in entries if isinstance(entry, PendingItem)]

    async def requeue_quarantined(self) -> int:
        """Put quarantined entries back at the end of the queue."""
        async with self.mutation_lock:
            quarantined = await self._load_slot(quarantine_slot(self.slot))
            if not quarantined:
                return 0
            entries = await self._load_entries()
            await self._save_entries([*entries, *quarantined])
            await self._write(quarantine_slot(self.slot), [])

        logger.info(
            "pending_items_requeued", extra={"slot": self.slot, "count": len(quarantined)}
        )
        return len(quarantined)

    async def clear_quarantine(self) -> None:
        async with self.mutation_lock:
            await self._write(quarantine_slot(self.slot), [])

    # ------------------------------------------------------------------
    # Store access (callers hold the mutation lock)
    # ------------------------------------------------------------------

    async def _load_entries(self) -> list[QueueEntry]:
        raw = await self._read(self.slot)
        entries, backfilled = self._parse_entries(raw, self.slot)
        if backfilled:
            # Persist generated ids before anything is removed by id
            await self._save_entries(entries)
            logger.info("pending_item_ids_backfilled", extra={"slot": self.slot})
        return entries

    async def _load_slot(self, key: str) -> list[QueueEntry]:
        entries, _ = self._parse_entries(await self._read(key), key)
        return entries

    async def _save_entries(self, entries: list[QueueEntry]) -> None:
        await self._write(self.slot, [entry.to_storage() for entry in entries])

    async def _load_failures(self) -> dict[str, int]:
        raw = await self._read(failures_slot(self.slot))
        if not raw:
            return {}
        if not isinstance(raw, Mapping):
            msg = f"Failure counts in {failures_slot(self.slot)} are not an object"
            raise StorageError(msg, details={"slot": failures_slot(self.slot)})
        try:
            return {str(item_id): int(count) for item_id, count in raw.items()}
        except (TypeError, ValueError) as exc:
            msg = f"Failure counts in {failures_slot(self.slot)} are malformed"
            raise StorageError(msg, details={"slot": failures_slot(self.slot)}) from exc

    async def _forget_failures(self, item_ids: list[str] | None) -> None:
        """Drop failure counts for ``item_ids`` (all counts when ``None``)."""
        counts = await self._load_failures()
        if not counts:
            return
        if item_ids is None:
            remaining: dict[str, int] = {}
        else:
            remaining = {key: value for key, value in counts.items() if key not in item_ids}
        if remaining != counts:
            await self._write(failures_slot(self.slot), remaining)

    def _parse_entries(self, raw: Any, key: str) -> tuple[list[QueueEntry], bool]:
        if raw is None:
            return [], False
        if not isinstance(raw, list):
            msg = f"Queue slot {key} does not hold a list"
            raise StorageError(msg, details={"slot": key, "type": type(raw).__name__})

        entries: list[QueueEntry] = []
        backfilled = False
        for entry in raw:
            if not isinstance(entry, Mapping):
                entries.append(UnreadableEntry(entry, "entry is not an object"))
                continue
            data = dict(entry)
            if self.kind is not None and "kind" not in data:
                data["kind"] = self.kind.value
            try:
                item = PendingItem.from_storage(data)
            except PydanticValidationError as exc:
                entries.append(UnreadableEntry(entry, _describe_validation_error(exc)))
                continue
            if not data.get("id"):
                backfilled = True
            entries.append(item)
        return entries, backfilled

    async def _read(self, key: str) -> Any | None:
        try:
            return await self._store.get(key)
        except StorageError:
            raise
        except Exception as exc:
            msg = f"Failed to read queue slot {key}: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc

    async def _write(self, key: str, value: Any) -> None:
        try:
            await self._store.set(key, value)
        except StorageError:
            raise
        except Exception as exc:
            msg = f"Failed to write queue slot {key}: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc
