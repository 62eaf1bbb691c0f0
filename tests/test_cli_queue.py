"""Tests for the queue command-line interface."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock

import pytest

from cardqueue.cli.queue import build_parser, main, run
from cardqueue.config import load_config
from cardqueue.domain.exceptions import ServiceError
from cardqueue.domain.models import PendingItem
from cardqueue.infrastructure.persistence import InMemoryQueueStore


def _note_service(*, fail: bool = False) -> AsyncMock:
    service = AsyncMock()
    if fail:
        service.add_note.side_effect = ServiceError("deck was not found: Missing")
    else:
        service.add_note.return_value = 1234
    return service


async def _run(argv: list[str], store: InMemoryQueueStore, note_service: AsyncMock) -> int:
    args = build_parser().parse_args(argv)
    return await run(args, cfg=load_config(), store=store, note_service=note_service)


@pytest.mark.asyncio
async def test_add_then_list(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore()
    service = _note_service()

    assert await _run(["add", "--front", "What is ATP?", "--back", "Energy"], store, service) == 0
    assert "1 pending" in capsys.readouterr().out

    assert await _run(["list"], store, service) == 0
    out = capsys.readouterr().out
    assert "0. What is ATP?" in out


@pytest.mark.asyncio
async def test_list_empty_queue(capsys: pytest.CaptureFixture[str]) -> None:
    assert await _run(["list", "--kind", "clip"], InMemoryQueueStore(), _note_service()) == 0
    assert "Queue is empty" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_add_invalid_item_fails(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore()

    code = await _run(["add", "--front", "  ", "--back", "A"], store, _note_service())

    assert code == 1
    assert "ERROR:" in capsys.readouterr().err
    assert await store.get("pendingCards") is None


@pytest.mark.asyncio
async def test_remove_out_of_range_fails(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore({"pendingCards": [PendingItem(front="Q", back="A").to_storage()]})

    assert await _run(["remove", "3"], store, _note_service()) == 1
    assert "ERROR:" in capsys.readouterr().err
    assert len(await store.get("pendingCards")) == 1


@pytest.mark.asyncio
async def test_remove_by_position() -> None:
    store = InMemoryQueueStore(
        {
            "pendingCards": [
                PendingItem(front="Q1", back="A1").to_storage(),
                PendingItem(front="Q2", back="A2").to_storage(),
            ]
        }
    )

    assert await _run(["remove", "0"], store, _note_service()) == 0
    assert [entry["front"] for entry in await store.get("pendingCards")] == ["Q2"]


@pytest.mark.asyncio
async def test_clear_all(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore(
        {
            "pendingCards": [PendingItem(front="Q", back="A").to_storage()],
            "pendingClips": [PendingItem(kind="clip", front="C", back="c").to_storage()],
        }
    )

    assert await _run(["clear", "--all"], store, _note_service()) == 0
    assert await store.get("pendingCards") == []
    assert await store.get("pendingClips") == []


@pytest.mark.asyncio
async def test_sync_success_exits_zero(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore({"pendingCards": [PendingItem(front="Q", back="A").to_storage()]})
    service = _note_service()

    assert await _run(["sync"], store, service) == 0
    assert "card: 1 of 1 saved" in capsys.readouterr().out
    assert await store.get("pendingCards") == []
    service.add_note.assert_awaited_once()


@pytest.mark.asyncio
async def test_sync_failure_exits_one(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore({"pendingCards": [PendingItem(front="Q", back="A").to_storage()]})

    assert await _run(["sync", "--kind", "card"], store, _note_service(fail=True)) == 1
    assert "deck was not found" in capsys.readouterr().out
    assert len(await store.get("pendingCards")) == 1


@pytest.mark.asyncio
async def test_json_output(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore()
    service = _note_service()

    await _run(["--json", "add", "--front", "Q", "--back", "A", "--tag", "bio"], store, service)
    added = json.loads(capsys.readouterr().out)
    assert added["front"] == "Q"
    assert added["tags"] == ["bio"]

    assert await _run(["--json", "status"], store, service) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["pending"] == {"card": 1, "clip": 0, "pdf_card": 0}
    assert "anki" not in status


@pytest.mark.asyncio
async def test_list_and_remove_unreadable_entry(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore(
        {"pendingCards": [{"id": "x", "front": 42}, PendingItem(front="Q", back="A").to_storage()]}
    )

    assert await _run(["list"], store, _note_service()) == 0
    out = capsys.readouterr().out
    assert "0. (unreadable: front" in out
    assert "1. Q" in out

    assert await _run(["remove", "0"], store, _note_service()) == 0
    assert [entry["front"] for entry in await store.get("pendingCards")] == ["Q"]


@pytest.mark.asyncio
async def test_watch_drains_pending_items_then_stops(capsys: pytest.CaptureFixture[str]) -> None:
    store = InMemoryQueueStore({"pendingCards": [PendingItem(front="Q", back="A").to_storage()]})
    service = _note_service()
    args = build_parser().parse_args(["--json", "watch", "--max-runtime", "1.0"])

    code = await run(
        args,
        cfg=load_config(sync={"debounce_seconds": 0.05}),
        store=store,
        note_service=service,
    )

    assert code == 0
    service.add_note.assert_awaited_once()
    assert await store.get("pendingCards") == []
    assert json.loads(capsys.readouterr().out) == {
        "pending": {"card": 0, "clip": 0, "pdf_card": 0}
    }

def test_main_with_sqlite_database(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = str(tmp_path / "queue.db")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        assert main(["--db", db_path, "add", "--front", "Q", "--back", "A"]) == 0
        assert main(["--db", db_path, "--json", "list"]) == 0
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    out = capsys.readouterr().out
    listed = json.loads(out[out.index("[") :])
    assert [entry["front"] for entry in listed] == ["Q"]
    assert (tmp_path / "queue.db").exists()
