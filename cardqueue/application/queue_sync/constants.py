"""Constants for pending-queue synchronization."""

from cardqueue.domain.models import PendingItemKind

# Store keys of the pending queues, one per capture source
SLOT_PENDING_CARDS = "pendingCards"
SLOT_PENDING_CLIPS = "pendingClips"
SLOT_PENDING_PDF_CARDS = "pendingPdfCards"

DEFAULT_SLOTS: dict[PendingItemKind, str] = {
    PendingItemKind.CARD: SLOT_PENDING_CARDS,
    PendingItemKind.CLIP: SLOT_PENDING_CLIPS,
    PendingItemKind.PDF_CARD: SLOT_PENDING_PDF_CARDS,
}

# Companion slots kept next to each queue
FAILURES_SUFFIX = ":failures"
QUARANTINE_SUFFIX = ":quarantine"

# Length of item front text in log records
LOG_PREVIEW_LENGTH = 60


def failures_slot(slot: str) -> str:
    return f"{slot}{FAILURES_SUFFIX}"


def quarantine_slot(slot: str) -> str:
    return f"{slot}{QUARANTINE_SUFFIX}"
