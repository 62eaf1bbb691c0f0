"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from cardqueue.infrastructure.persistence import InMemoryQueueStore

# Environment variables read by cardqueue.config
CONFIG_ENV_VARS = (
    "ANKI_CONNECT_URL",
    "ANKI_CONNECT_API_KEY",
    "ANKI_CONNECT_VERSION",
    "ANKI_CONNECT_TIMEOUT_SEC",
    "ANKI_CONNECT_MAX_RETRIES",
    "ANKI_DEFAULT_DECK",
    "ANKI_DEFAULT_MODEL",
    "ANKI_DEFAULT_TAGS",
    "ANKI_APPEND_SOURCE",
    "ANKI_ALLOW_DUPLICATE",
    "QUEUE_MAX_FRONT_LENGTH",
    "QUEUE_MAX_BACK_LENGTH",
    "QUEUE_MAX_TAGS_LENGTH",
    "SYNC_SUBMIT_TIMEOUT_SEC",
    "SYNC_QUARANTINE_AFTER_FAILURES",
    "SYNC_AUTO_ENABLED",
    "SYNC_INTERVAL_MINUTES",
    "SYNC_DEBOUNCE_SECONDS",
    "DB_PATH",
    "LOG_LEVEL",
    "LOG_JSON",
    "LOG_FILE",
    "LOG_USE_LOGURU",
)


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep host environment and any local .env out of config-dependent tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class RecordingStore(InMemoryQueueStore):
    """In-memory store that records every write."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.writes: list[tuple[str, Any]] = []

    async def set(self, key: str, value: Any) -> None:
        self.writes.append((key, value))
        await super().set(key, value)


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()
