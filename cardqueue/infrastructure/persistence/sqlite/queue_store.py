"""SQLite implementation of the queue store."""

from __future__ import annotations

import json
import sqlite3
from typing import TYPE_CHECKING, Any

import peewee

from cardqueue.core.time_utils import utc_now
from cardqueue.db.models import QueueSlot
from cardqueue.domain.exceptions import StorageError
from cardqueue.infrastructure.persistence.sqlite.base import SqliteBaseRepository

if TYPE_CHECKING:
    from cardqueue.db.session import DatabaseSessionManager

_STORE_ERRORS = (peewee.PeeweeException, sqlite3.Error, TimeoutError, ValueError)


class SqliteQueueStore(SqliteBaseRepository):
    """Key-value queue store backed by the ``queue_slot`` table.

    Values are kept as JSON text, one row per slot.
    """

    def __init__(
        self, session_manager: DatabaseSessionManager, *, timeout: float | None = None
    ) -> None:
        super().__init__(session_manager)
        self._timeout = timeout

    async def get(self, key: str) -> Any | None:
        def _get() -> str | None:
            row = QueueSlot.get_or_none(QueueSlot.key == key)
            return row.value if row is not None else None

        try:
            raw = await self._execute(
                _get, timeout=self._timeout, operation_name="queue_slot_get", read_only=True
            )
            return None if raw is None else json.loads(raw)
        except _STORE_ERRORS as exc:
            msg = f"Failed to read queue slot {key}: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc

    async def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            msg = f"Queue slot {key} value is not JSON-serializable: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc

        def _set() -> None:
            QueueSlot.replace(key=key, value=payload, updated_at=utc_now()).execute()

        try:
            await self._execute(_set, timeout=self._timeout, operation_name="queue_slot_set")
        except _STORE_ERRORS as exc:
            msg = f"Failed to write queue slot {key}: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc

    async def keys(self) -> list[str]:
        def _keys() -> list[str]:
            return [row.key for row in QueueSlot.select(QueueSlot.key).order_by(QueueSlot.key)]

        try:
            return await self._execute(_keys, operation_name="queue_slot_keys", read_only=True)
        except _STORE_ERRORS as exc:
            msg = f"Failed to list queue slots: {exc}"
            raise StorageError(msg) from exc
