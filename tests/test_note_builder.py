"""Tests for building AnkiConnect notes from pending items."""

from __future__ import annotations

import unittest

from cardqueue.adapters.ankiconnect.note_builder import (
    IMAGE_SOURCE_SEPARATOR,
    build_note,
    is_cloze_model,
    merge_tags,
    render_source_footer,
)
from cardqueue.config import NoteDefaultsConfig
from cardqueue.domain.models import PendingItem, PendingItemKind


class TestBuildNote(unittest.TestCase):
    def setUp(self):
        self.defaults = NoteDefaultsConfig(append_source=False)

    def test_basic_note_maps_front_and_back(self):
        note = build_note(PendingItem(front="Q", back="<b>A</b>"), self.defaults)

        assert note.deck_name == "Default"
        assert note.model_name == "Basic"
        assert note.fields == {"Front": "Q", "Back": "<b>A</b>"}
        assert note.options == {"allowDuplicate": False}

    def test_item_deck_and_model_win_over_defaults(self):
        item = PendingItem(front="Q", back="A", deck_name="Biology", model_name="Basic (reversed)")

        note = build_note(item, self.defaults)

        assert note.deck_name == "Biology"
        assert note.model_name == "Basic (reversed)"

    def test_source_footer_appended_to_back(self):
        defaults = NoteDefaultsConfig(append_source=True)
        item = PendingItem(
            front="Q", back="A", page_title="Cells & <Life>", page_url="https://ex.com/?a=1&b=2"
        )

        back = build_note(item, defaults).fields["Back"]

        assert back.startswith("A\n")
        assert "<strong>Source:</strong>" in back
        assert 'href="https://ex.com/?a=1&amp;b=2"' in back
        assert "Cells &amp; &lt;Life&gt;" in back

    def test_no_footer_without_source(self):
        note = build_note(PendingItem(front="Q", back="A"), NoteDefaultsConfig())

        assert note.fields["Back"] == "A"

    def test_cloze_note_uses_text_and_extra(self):
        defaults = NoteDefaultsConfig(append_source=True)
        item = PendingItem(
            kind=PendingItemKind.CLIP,
            front="",
            back="{{c1::Mitochondria}} make ATP",
            model_name="Cloze",
            page_title="Cells",
            page_url="https://ex.com/cells",
            image_html='<img src="cell.png">',
        )

        note = build_note(item, defaults)

        assert note.fields["Text"] == "{{c1::Mitochondria}} make ATP"
        extra = note.fields["Extra"]
        assert extra.startswith('<img src="cell.png">' + IMAGE_SOURCE_SEPARATOR)
        assert extra.endswith(render_source_footer("Cells", "https://ex.com/cells"))

    def test_cloze_text_falls_back_to_front(self):
        item = PendingItem(front="{{c1::x}}", back="", model_name="my cloze type")

        note = build_note(item, self.defaults)

        assert note.fields == {"Text": "{{c1::x}}", "Extra": ""}

    def test_cloze_image_without_url_has_no_separator(self):
        item = PendingItem(front="Q", back="T", model_name="Cloze", image_html="<img>")

        note = build_note(item, NoteDefaultsConfig())

        assert note.fields["Extra"] == "<img>"

    def test_tags_merge_with_defaults(self):
        defaults = NoteDefaultsConfig(tags="clip,web", allow_duplicate=True)
        item = PendingItem(front="Q", back="A", tags=["web", "bio"])

        note = build_note(item, defaults)

        assert note.tags == ["web", "bio", "clip"]
        assert note.options == {"allowDuplicate": True}


class TestHelpers(unittest.TestCase):
    def test_is_cloze_model_is_case_insensitive(self):
        assert is_cloze_model("Cloze")
        assert is_cloze_model("AnKing CLOZE")
        assert not is_cloze_model("Basic")

    def test_merge_tags_skips_empty(self):
        assert merge_tags(["a", "", "a"], ("b",)) == ["a", "b"]

    def test_footer_uses_url_when_title_missing(self):
        footer = render_source_footer(None, "https://ex.com")

        assert ">https://ex.com</a>" in footer

    def test_footer_empty_without_source(self):
        assert render_source_footer(None, None) == ""
