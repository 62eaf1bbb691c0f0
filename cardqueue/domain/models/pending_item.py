"""Pending item domain model.

A pending item is a captured card (or clip, or PDF card) that has not yet
been durably submitted to the note service. Items are stored in the queue
store using their camelCase wire names.
"""

from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from cardqueue.core.time_utils import utc_now


class PendingItemKind(StrEnum):
    """Capture source of a pending item; each kind has its own queue slot."""

    CARD = "card"
    CLIP = "clip"
    PDF_CARD = "pdf_card"


def new_item_id() -> str:
    return uuid.uuid4().hex


class PendingItem(BaseModel):
    """One queued unit of work.

    The model performs no content validation: an item with an empty front is
    representable so that it can be loaded from the store and reported by a
    synchronization pass. Use ``validate_item`` for the queueing rules.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_item_id)
    kind: PendingItemKind = PendingItemKind.CARD
    front: str = ""
    # Clips captured by the browser extension store their answer side as backHtml
    back: str = Field(default="", validation_alias=AliasChoices("back", "backHtml"))
    deck_name: str | None = Field(default=None, alias="deckName")
    model_name: str | None = Field(default=None, alias="modelName")
    tags: list[str] = Field(default_factory=list)
    page_title: str | None = Field(default=None, alias="pageTitle")
    page_url: str | None = Field(default=None, alias="pageUrl")
    image_html: str | None = Field(default=None, alias="imageHtml")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    @field_validator("front", "back", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            return value.split()
        return value

    @field_validator("deck_name", "model_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("id", mode="before")
    @classmethod
    def _ensure_id(cls, value: Any) -> Any:
        if value in (None, ""):
            return new_item_id()
        return str(value)

    def to_storage(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible dict kept in the queue store."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_storage(cls, raw: dict[str, Any]) -> PendingItem:
        return cls.model_validate(raw)
