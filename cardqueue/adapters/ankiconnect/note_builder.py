"""Map pending items to AnkiConnect note payloads."""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING

from cardqueue.adapters.ankiconnect.models import AnkiNote

if TYPE_CHECKING:
    from cardqueue.config import NoteDefaultsConfig
    from cardqueue.domain.models import PendingItem

_CLOZE_MODEL_RE = re.compile("cloze", re.IGNORECASE)

IMAGE_SOURCE_SEPARATOR = "<br><hr><br>"

_SOURCE_STYLE = (
    "margin-top: 1em; padding-top: 1em; border-top: 1px solid #eee; font-size: 0.9em; color: #666;"
)


def is_cloze_model(model_name: str) -> bool:
    return bool(_CLOZE_MODEL_RE.search(model_name))


def render_source_footer(page_title: str | None, page_url: str | None) -> str:
    """Render the "Source:" block appended to the answer side.

    Returns an empty string when neither a title nor a URL is known.
    """
    if not page_title and not page_url:
        return ""
    title = html.escape(page_title or page_url or "")
    if page_url:
        link = (
            f'<a href="{html.escape(page_url, quote=True)}" target="_blank" '
            f'rel="noopener noreferrer">{title}</a>'
        )
    else:
        link = title
    return f'<div class="source-info" style="{_SOURCE_STYLE}"><strong>Source:</strong> {link}</div>'


def merge_tags(item_tags: list[str], default_tags: tuple[str, ...] | list[str]) -> list[str]:
    """Item tags followed by configured tags, without duplicates."""
    merged: list[str] = []
    for tag in [*item_tags, *default_tags]:
        if tag and tag not in merged:
            merged.append(tag)
    return merged


def build_note(item: PendingItem, defaults: NoteDefaultsConfig) -> AnkiNote:
    """Build the ``addNote`` payload for one pending item.

    Args:
        item: Queued item
        defaults: Fallback deck/model names, extra tags and note options

    Returns:
        AnkiNote ready for submission
    """
    deck_name = item.deck_name or defaults.deck_name
    model_name = item.model_name or defaults.model_name

    footer = ""
    if defaults.append_source:
        footer = render_source_footer(item.page_title, item.page_url)

    if is_cloze_model(model_name):
        extra = ""
        if item.image_html:
            extra += item.image_html
            if item.page_url and footer:
                extra += IMAGE_SOURCE_SEPARATOR
        extra += footer
        fields = {"Text": item.back or item.front, "Extra": extra}
    else:
        back = f"{item.back}\n{footer}" if footer else item.back
        fields = {"Front": item.front, "Back": back}

    return AnkiNote(
        deck_name=deck_name,
        model_name=model_name,
        fields=fields,
        tags=merge_tags(item.tags, defaults.tags),
        options={"allowDuplicate": defaults.allow_duplicate},
    )
