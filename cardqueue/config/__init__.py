from __future__ import annotations

from .integrations import AnkiConnectConfig, NoteDefaultsConfig
from .queue import QueueLimitsConfig, SyncConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "AnkiConnectConfig",
    "AppConfig",
    "NoteDefaultsConfig",
    "QueueLimitsConfig",
    "RuntimeConfig",
    "Settings",
    "SyncConfig",
    "load_config",
]
