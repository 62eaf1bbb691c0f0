"""Tests for the multi-queue PendingQueueService facade."""

from __future__ import annotations

import unittest
from typing import Any
from unittest.mock import AsyncMock

from cardqueue.application.queue_sync import PendingQueueService
from cardqueue.config import load_config
from cardqueue.domain.exceptions import StorageError, ValidationError
from cardqueue.domain.models import PendingItem, PendingItemKind
from cardqueue.infrastructure.persistence import InMemoryQueueStore


class _ClipSlotBroken(InMemoryQueueStore):
    async def get(self, key: str) -> Any | None:
        if key.startswith("pendingClips"):
            raise StorageError("slot unreadable")
        return await super().get(key)


class TestPendingQueueService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = InMemoryQueueStore()
        self.note_service = AsyncMock()
        self.note_service.add_note.return_value = 99
        self.service = PendingQueueService(self.store, self.note_service, config=load_config())

    async def test_enqueue_routes_by_kind(self):
        await self.service.enqueue(PendingItem(kind=PendingItemKind.CLIP, front="c", back="C"))
        await self.service.enqueue(PendingItem(kind=PendingItemKind.PDF_CARD, front="p", back="P"))
        await self.service.enqueue(PendingItem(front="q", back="A"))

        assert len(await self.store.get("pendingClips")) == 1
        assert len(await self.store.get("pendingPdfCards")) == 1
        assert len(await self.store.get("pendingCards")) == 1
        assert await self.service.pending_counts() == {
            PendingItemKind.CARD: 1,
            PendingItemKind.CLIP: 1,
            PendingItemKind.PDF_CARD: 1,
        }
        assert await self.service.total_pending() == 3

    async def test_on_enqueue_receives_stored_item(self):
        seen: list[PendingItem] = []
        service = PendingQueueService(self.store, self.note_service, on_enqueue=seen.append)

        stored = await service.enqueue(PendingItem(front="q", back="A"))

        assert seen == [stored]

    async def test_on_enqueue_not_called_for_rejected_item(self):
        seen: list[PendingItem] = []
        service = PendingQueueService(self.store, self.note_service, on_enqueue=seen.append)

        with self.assertRaises(ValidationError):
            await service.enqueue(PendingItem(front="", back="A"))

        assert seen == []

    async def test_queue_accepts_kind_strings(self):
        assert self.service.queue("clip").slot == "pendingClips"
        assert self.service.queue().slot == "pendingCards"

    async def test_sync_single_kind(self):
        await self.service.enqueue(PendingItem(front="q", back="A"))
        await self.service.enqueue(PendingItem(kind=PendingItemKind.CLIP, front="c", back="C"))

        result = await self.service.sync(PendingItemKind.CARD)

        assert result.slot == "pendingCards"
        assert result.success_count == 1
        assert await self.service.queue(PendingItemKind.CLIP).count() == 1

    async def test_sync_all_totals(self):
        await self.service.enqueue(PendingItem(front="q", back="A"))
        await self.service.enqueue(PendingItem(kind=PendingItemKind.CLIP, front="c", back="C"))
        await self.store.set(
            "pendingPdfCards", [PendingItem(kind=PendingItemKind.PDF_CARD, back="x").to_storage()]
        )

        full = await self.service.sync_all()

        assert full.total_success == 2
        assert full.total_errors == 1
        assert set(full.results) == {"card", "clip", "pdf_card"}
        assert full.results["pdf_card"].errors[0].kind.value == "ValidationError"
        assert not full.ok

    async def test_storage_error_on_one_queue_does_not_stop_others(self):
        store = _ClipSlotBroken()
        service = PendingQueueService(store, self.note_service)
        await service.enqueue(PendingItem(front="q", back="A"))

        full = await service.sync_all()

        assert "clip" in full.storage_errors
        assert full.results["card"].success_count == 1
        assert "clip" not in full.results

    async def test_custom_slot_names(self):
        service = PendingQueueService(
            self.store, self.note_service, slots={PendingItemKind.CARD: "cards_v2"}
        )

        await service.enqueue(PendingItem(front="q", back="A"))

        assert len(await self.store.get("cards_v2")) == 1

    async def test_clear_all(self):
        await self.service.enqueue(PendingItem(front="q", back="A"))
        await self.service.enqueue(PendingItem(kind=PendingItemKind.CLIP, front="c", back="C"))

        await self.service.clear_all()

        assert await self.service.total_pending() == 0
