"""Result models for pending-queue synchronization."""

from __future__ import annotations

from pydantic import BaseModel, Field

from cardqueue.application.queue_sync.errors import SyncErrorKind


class SyncItemError(BaseModel):
    """One item that could not be submitted during a pass."""

    position: int  # pre-pass position in the queue
    item_id: str | None = None
    message: str
    kind: SyncErrorKind


class BatchResult(BaseModel):
    """Result of one synchronization pass over a queue slot."""

    slot: str = ""
    success_count: int = 0
    error_count: int = 0
    errors: list[SyncItemError] = Field(default_factory=list)
    note_ids: list[int] = Field(default_factory=list)
    quarantined_count: int = 0
    remaining_count: int = 0
    duration_seconds: float = 0.0
    correlation_id: str | None = None

    def add_error(
        self, *, position: int, item_id: str | None, message: str, kind: SyncErrorKind
    ) -> None:
        self.errors.append(
            SyncItemError(position=position, item_id=item_id, message=message, kind=kind)
        )
        self.error_count = len(self.errors)

    @property
    def attempted_count(self) -> int:
        return self.success_count + self.error_count

    def summary(self) -> str:
        """Human-readable outcome, e.g. ``3 of 5 saved, 2 failed: <reasons>``."""
        if not self.attempted_count:
            return "Nothing to sync"
        text = f"{self.success_count} of {self.attempted_count} saved"
        if not self.errors:
            return text
        reasons = "; ".join(
            f"#{error.position + 1} {error.kind.value}: {error.message}" for error in self.errors
        )
        return f"{text}, {self.error_count} failed: {reasons}"


class FullSyncResult(BaseModel):
    """Result of draining every pending queue."""

    results: dict[str, BatchResult] = Field(default_factory=dict)
    storage_errors: dict[str, str] = Field(default_factory=dict)
    total_success: int = 0
    total_errors: int = 0
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.total_errors and not self.storage_errors
