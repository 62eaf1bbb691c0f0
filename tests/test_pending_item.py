"""Tests for the PendingItem model and its stored representation."""

from __future__ import annotations

from datetime import datetime

import pytest

from cardqueue.domain.models import PendingItem, PendingItemKind


def test_new_items_get_distinct_ids() -> None:
    first = PendingItem(front="Q", back="A")
    second = PendingItem(front="Q", back="A")

    assert len(first.id) == 32
    assert first.id != second.id


def test_storage_uses_camel_case_names() -> None:
    item = PendingItem(
        front="Q",
        back="A",
        deck_name="Biology",
        model_name="Basic",
        page_title="Cells",
        page_url="https://example.com/cells",
        image_html='<img src="cell.png">',
    )

    stored = item.to_storage()

    assert stored["deckName"] == "Biology"
    assert stored["modelName"] == "Basic"
    assert stored["pageTitle"] == "Cells"
    assert stored["pageUrl"] == "https://example.com/cells"
    assert stored["imageHtml"] == '<img src="cell.png">'
    assert stored["kind"] == "card"
    assert isinstance(stored["createdAt"], str)


def test_from_storage_accepts_legacy_entries() -> None:
    item = PendingItem.from_storage(
        {"front": "Q", "backHtml": "ignored", "back": "A", "deckName": "", "tags": "a b"}
    )

    assert item.id
    assert item.deck_name is None
    assert item.tags == ["a", "b"]
    assert isinstance(item.created_at, datetime)


def test_storage_round_trip_preserves_fields() -> None:
    item = PendingItem(kind=PendingItemKind.CLIP, front="Q", back="A", tags=["x"])

    restored = PendingItem.from_storage(item.to_storage())

    assert restored.model_dump() == item.model_dump()


def test_empty_content_is_representable() -> None:
    item = PendingItem(front="", back="A2")

    assert item.front == ""


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        PendingItem(kind="audio", front="Q", back="A")


def test_clip_back_html_is_read_as_back() -> None:
    item = PendingItem.from_storage(
        {"kind": "clip", "front": "Selection", "backHtml": "<b>Answer</b>", "pageTitle": "Cells"}
    )

    assert item.back == "<b>Answer</b>"
    assert item.to_storage()["back"] == "<b>Answer</b>"
    assert "backHtml" not in item.to_storage()
    # The plain name wins when both are present
    assert PendingItem.from_storage({"front": "Q", "back": "A", "backHtml": "B"}).back == "A"
