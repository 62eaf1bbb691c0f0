"""Pydantic models for the AnkiConnect API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AnkiNote(BaseModel):
    """Payload of an ``addNote`` request."""

    model_config = ConfigDict(populate_by_name=True)

    deck_name: str = Field(alias="deckName")
    model_name: str = Field(alias="modelName")
    fields: dict[str, str]
    tags: list[str] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)

    def to_params(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        if not payload["options"]:
            payload.pop("options")
        return payload


class AnkiConnectRequest(BaseModel):
    """Envelope shared by every AnkiConnect action."""

    action: str
    version: int = 6
    params: dict[str, Any] = Field(default_factory=dict)
    key: str | None = None


class NoteFieldValue(BaseModel):
    value: str = ""
    order: int = 0


class NoteInfo(BaseModel):
    """One entry of a ``notesInfo`` response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    note_id: int = Field(alias="noteId")
    model_name: str = Field(default="", alias="modelName")
    tags: list[str] = Field(default_factory=list)
    fields: dict[str, NoteFieldValue] = Field(default_factory=dict)
    cards: list[int] = Field(default_factory=list)

    def field_text(self, name: str) -> str | None:
        field = self.fields.get(name)
        return field.value if field else None


class AnkiStatus(BaseModel):
    """Reachability of the note service plus the collections it offers."""

    is_online: bool
    decks: list[str] = Field(default_factory=list)
    models: list[str] = Field(default_factory=list)
    error: str | None = None
