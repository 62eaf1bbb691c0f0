from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_csv_list, _parse_float, _parse_int

logger = logging.getLogger(__name__)

DEFAULT_ANKI_CONNECT_URL = "http://127.0.0.1:8765"


class AnkiConnectConfig(BaseModel):
    """AnkiConnect (local Anki add-on) connection settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(default=DEFAULT_ANKI_CONNECT_URL, validation_alias="ANKI_CONNECT_URL")
    api_key: str | None = Field(default=None, validation_alias="ANKI_CONNECT_API_KEY")
    api_version: int = Field(default=6, validation_alias="ANKI_CONNECT_VERSION")
    timeout_sec: float = Field(default=10.0, validation_alias="ANKI_CONNECT_TIMEOUT_SEC")
    max_retries: int = Field(default=2, validation_alias="ANKI_CONNECT_MAX_RETRIES")

    @field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        url = str(value or DEFAULT_ANKI_CONNECT_URL).strip()
        if not url:
            return DEFAULT_ANKI_CONNECT_URL
        if not url.startswith(("http://", "https://")):
            msg = "AnkiConnect URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("api_key", mode="before")
    @classmethod
    def _validate_api_key(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        key = str(value).strip()
        if len(key) > 500:
            msg = "AnkiConnect API key appears to be too long"
            raise ValueError(msg)
        return key or None

    @field_validator("api_version", mode="before")
    @classmethod
    def _validate_api_version(cls, value: Any) -> int:
        return _parse_int(value, default=6, name="AnkiConnect version", minimum=1, maximum=6)

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        return _parse_float(
            value, default=10.0, name="AnkiConnect timeout", minimum=0.1, maximum=300.0
        )

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        return _parse_int(value, default=2, name="AnkiConnect max retries", minimum=0, maximum=10)


class NoteDefaultsConfig(BaseModel):
    """Fallbacks applied when a queued item is turned into a note."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    deck_name: str = Field(default="Default", validation_alias="ANKI_DEFAULT_DECK")
    model_name: str = Field(default="Basic", validation_alias="ANKI_DEFAULT_MODEL")
    tags: tuple[str, ...] = Field(default=(), validation_alias="ANKI_DEFAULT_TAGS")
    append_source: bool = Field(default=True, validation_alias="ANKI_APPEND_SOURCE")
    allow_duplicate: bool = Field(default=False, validation_alias="ANKI_ALLOW_DUPLICATE")

    @field_validator("deck_name", "model_name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any, info: ValidationInfo) -> str:
        default = cls.model_fields[info.field_name].default
        name = str(value if value is not None else default).strip()
        if not name:
            return default
        if len(name) > 200:
            msg = f"{info.field_name.replace('_', ' ')} is too long"
            raise ValueError(msg)
        return name

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> tuple[str, ...]:
        tags = _parse_csv_list(value)
        for tag in tags:
            if any(ch.isspace() for ch in tag):
                msg = f"Default tag cannot contain whitespace: {tag!r}"
                raise ValueError(msg)
        return tags
