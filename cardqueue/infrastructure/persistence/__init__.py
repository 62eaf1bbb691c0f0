"""Queue store implementations."""

from cardqueue.infrastructure.persistence.memory_store import InMemoryQueueStore
from cardqueue.infrastructure.persistence.sqlite.queue_store import SqliteQueueStore

__all__ = ["InMemoryQueueStore", "SqliteQueueStore"]
