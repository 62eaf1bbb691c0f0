"""Tests for configuration loading from the environment."""

from __future__ import annotations

import pytest

from cardqueue.config import AnkiConnectConfig, NoteDefaultsConfig, SyncConfig, load_config


def test_defaults_without_environment() -> None:
    cfg = load_config()

    assert cfg.anki.url == "http://127.0.0.1:8765"
    assert cfg.anki.api_key is None
    assert cfg.anki.api_version == 6
    assert cfg.note_defaults.deck_name == "Default"
    assert cfg.note_defaults.model_name == "Basic"
    assert cfg.note_defaults.tags == ()
    assert cfg.note_defaults.append_source is True
    assert cfg.note_defaults.allow_duplicate is False
    assert cfg.queue_limits.max_front_length == 1000
    assert cfg.queue_limits.max_tags_length == 100
    assert cfg.sync.submit_timeout_sec == 10.0
    assert cfg.sync.quarantine_after_failures == 0
    assert cfg.sync.sync_interval_minutes == 5
    assert cfg.sync.debounce_seconds == 6.0
    assert cfg.runtime.db_path == "data/cardqueue.db"
    assert cfg.runtime.log_level == "INFO"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANKI_CONNECT_URL", "http://localhost:9999/")
    monkeypatch.setenv("ANKI_CONNECT_API_KEY", "  secret  ")
    monkeypatch.setenv("ANKI_DEFAULT_DECK", "Inbox")
    monkeypatch.setenv("ANKI_DEFAULT_TAGS", "clip, web,clip")
    monkeypatch.setenv("ANKI_ALLOW_DUPLICATE", "true")
    monkeypatch.setenv("QUEUE_MAX_FRONT_LENGTH", "500")
    monkeypatch.setenv("SYNC_QUARANTINE_AFTER_FAILURES", "3")
    monkeypatch.setenv("SYNC_AUTO_ENABLED", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = load_config()

    assert cfg.anki.url == "http://localhost:9999"
    assert cfg.anki.api_key == "secret"
    assert cfg.note_defaults.deck_name == "Inbox"
    assert cfg.note_defaults.tags == ("clip", "web")
    assert cfg.note_defaults.allow_duplicate is True
    assert cfg.queue_limits.max_front_length == 500
    assert cfg.queue_limits.validator().max_front_length == 500
    assert cfg.sync.quarantine_after_failures == 3
    assert cfg.sync.auto_sync_enabled is False
    assert cfg.runtime.log_level == "DEBUG"


def test_explicit_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_SUBMIT_TIMEOUT_SEC", "30")

    cfg = load_config(sync={"submit_timeout_sec": 2})

    assert cfg.sync.submit_timeout_sec == 2.0


def test_dotenv_file_fills_nested_sections(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text(
        "ANKI_DEFAULT_DECK=Inbox\nSYNC_INTERVAL_MINUTES=15\nDB_PATH=from-dotenv.db\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DB_PATH", "from-env.db")

    cfg = load_config()

    assert cfg.note_defaults.deck_name == "Inbox"
    assert cfg.sync.sync_interval_minutes == 15
    # The process environment wins over .env
    assert cfg.runtime.db_path == "from-env.db"

@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("ANKI_CONNECT_URL", "ftp://anki"),
        ("ANKI_CONNECT_VERSION", "7"),
        ("SYNC_INTERVAL_MINUTES", "0"),
        ("SYNC_SUBMIT_TIMEOUT_SEC", "abc"),
        ("ANKI_DEFAULT_TAGS", "has space"),
        ("LOG_LEVEL", "verbose"),
    ],
)
def test_invalid_values_raise_runtime_error(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match="Configuration validation failed"):
        load_config()


def test_sections_are_frozen() -> None:
    cfg = SyncConfig()

    with pytest.raises(ValueError):
        cfg.quarantine_after_failures = 5  # type: ignore[misc]


def test_blank_names_fall_back_to_defaults() -> None:
    defaults = NoteDefaultsConfig(deck_name="  ", model_name="")

    assert defaults.deck_name == "Default"
    assert defaults.model_name == "Basic"


def test_blank_url_falls_back_to_default() -> None:
    assert AnkiConnectConfig(url="").url == "http://127.0.0.1:8765"
