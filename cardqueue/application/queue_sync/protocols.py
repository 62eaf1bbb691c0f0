"""Protocol definitions (ports) for pending-queue synchronization.

The engine depends only on these, so the persistent store and the note
service can be swapped (SQLite, in-memory, a fake note service in tests).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from cardqueue.adapters.ankiconnect.models import AnkiNote


class QueueStoreProtocol(Protocol):
    """Key-value store holding whole queue slots.

    ``get`` returns ``None`` for a key that was never written. Both methods
    raise ``StorageError`` when the underlying store fails.
    """

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class NoteServiceProtocol(Protocol):
    """Note service accepting one note per call.

    ``add_note`` returns the service-assigned note id, or raises
    ``NetworkError`` / ``ServiceError``.
    """

    async def add_note(self, note: AnkiNote) -> int: ...
