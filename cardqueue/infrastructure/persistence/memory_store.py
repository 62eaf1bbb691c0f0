"""In-memory queue store."""

from __future__ import annotations

import json
from typing import Any

from cardqueue.domain.exceptions import StorageError


class InMemoryQueueStore:
    """Dict-backed queue store keeping JSON copies of every value.

    Callers never share mutable state with the store: values are serialized
    on ``set`` and deserialized on every ``get``.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = self._dump(key, value)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = self._dump(key, value)

    async def keys(self) -> list[str]:
        return sorted(self._data)

    @staticmethod
    def _dump(key: str, value: Any) -> str:
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as exc:
            msg = f"Queue slot {key} value is not JSON-serializable: {exc}"
            raise StorageError(msg, details={"slot": key}) from exc
