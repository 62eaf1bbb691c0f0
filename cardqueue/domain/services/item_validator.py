"""Pending item validation domain service.

Validation is pure: it never raises and never touches storage. It runs
before an item is queued and again before each submission attempt, since a
stored item may have been edited after it was queued.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardqueue.domain.models.pending_item import PendingItem

MAX_FRONT_LENGTH = 1000
MAX_BACK_LENGTH = 1000
MAX_TAGS_LENGTH = 100


@dataclass(frozen=True)
class ItemValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "; ".join(self.errors)


@dataclass(frozen=True)
class ItemValidator:
    """Field constraints for pending items."""

    max_front_length: int = MAX_FRONT_LENGTH
    max_back_length: int = MAX_BACK_LENGTH
    max_tags_length: int = MAX_TAGS_LENGTH

    def validate(self, item: PendingItem) -> ItemValidationResult:
        errors: list[str] = []

        _check_text(errors, "Front", item.front, self.max_front_length)
        _check_text(errors, "Back", item.back, self.max_back_length)

        tags_length = len("".join(item.tags))
        if tags_length > self.max_tags_length:
            errors.append(f"Tags exceed maximum length of {self.max_tags_length} characters")

        return ItemValidationResult(valid=not errors, errors=errors)


def _check_text(errors: list[str], label: str, value: str, limit: int) -> None:
    if not value or not value.strip():
        errors.append(f"{label} field is required")
    elif len(value) > limit:
        errors.append(f"{label} field exceeds maximum length of {limit} characters")


def validate_item(
    item: PendingItem, validator: ItemValidator | None = None
) -> ItemValidationResult:
    """Check one item against the queueing rules (default limits unless given)."""
    return (validator or ItemValidator()).validate(item)
