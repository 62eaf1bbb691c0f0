"""Pending-item queue and its synchronization into the note service."""

from cardqueue.application.queue_sync.engine import QueueSyncEngine
from cardqueue.application.queue_sync.errors import SyncErrorKind, classify_error
from cardqueue.application.queue_sync.locks import SlotLockRegistry
from cardqueue.application.queue_sync.models import BatchResult, FullSyncResult, SyncItemError
from cardqueue.application.queue_sync.queue import PendingQueue, QueueEntry, UnreadableEntry
from cardqueue.application.queue_sync.service import PendingQueueService

__all__ = [
    "BatchResult",
    "FullSyncResult",
    "PendingQueue",
    "PendingQueueService",
    "QueueEntry",
    "QueueSyncEngine",
    "SlotLockRegistry",
    "SyncErrorKind",
    "SyncItemError",
    "UnreadableEntry",
    "classify_error",
]
