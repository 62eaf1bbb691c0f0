from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from cardqueue.domain.services.item_validator import (
    MAX_BACK_LENGTH,
    MAX_FRONT_LENGTH,
    MAX_TAGS_LENGTH,
    ItemValidator,
)

from ._validators import _parse_float, _parse_int


class QueueLimitsConfig(BaseModel):
    """Field limits enforced on pending items."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_front_length: int = Field(
        default=MAX_FRONT_LENGTH, validation_alias="QUEUE_MAX_FRONT_LENGTH"
    )
    max_back_length: int = Field(default=MAX_BACK_LENGTH, validation_alias="QUEUE_MAX_BACK_LENGTH")
    max_tags_length: int = Field(default=MAX_TAGS_LENGTH, validation_alias="QUEUE_MAX_TAGS_LENGTH")

    @field_validator("max_front_length", "max_back_length", "max_tags_length", mode="before")
    @classmethod
    def _validate_limit(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        return _parse_int(
            value,
            default=default,
            name=info.field_name.replace("_", " ").capitalize(),
            minimum=1,
            maximum=1_000_000,
        )

    def validator(self) -> ItemValidator:
        return ItemValidator(
            max_front_length=self.max_front_length,
            max_back_length=self.max_back_length,
            max_tags_length=self.max_tags_length,
        )


class SyncConfig(BaseModel):
    """Synchronization pass and scheduling settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    submit_timeout_sec: float = Field(default=10.0, validation_alias="SYNC_SUBMIT_TIMEOUT_SEC")
    quarantine_after_failures: int = Field(
        default=0,
        validation_alias="SYNC_QUARANTINE_AFTER_FAILURES",
        description="Move an item aside after this many consecutive failed passes (0 disables)",
    )
    auto_sync_enabled: bool = Field(default=True, validation_alias="SYNC_AUTO_ENABLED")
    sync_interval_minutes: int = Field(default=5, validation_alias="SYNC_INTERVAL_MINUTES")
    debounce_seconds: float = Field(default=6.0, validation_alias="SYNC_DEBOUNCE_SECONDS")

    @field_validator("submit_timeout_sec", mode="before")
    @classmethod
    def _validate_submit_timeout(cls, value: Any) -> float:
        return _parse_float(
            value, default=10.0, name="Submit timeout", minimum=0.1, maximum=600.0
        )

    @field_validator("quarantine_after_failures", mode="before")
    @classmethod
    def _validate_quarantine(cls, value: Any) -> int:
        return _parse_int(
            value, default=0, name="Quarantine threshold", minimum=0, maximum=1000
        )

    @field_validator("sync_interval_minutes", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> int:
        return _parse_int(value, default=5, name="Sync interval", minimum=1, maximum=10080)

    @field_validator("debounce_seconds", mode="before")
    @classmethod
    def _validate_debounce(cls, value: Any) -> float:
        return _parse_float(value, default=6.0, name="Sync debounce", minimum=0.0, maximum=3600.0)
