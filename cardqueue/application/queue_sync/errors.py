"""Error classification for per-item sync failures."""

from __future__ import annotations

from enum import StrEnum

from cardqueue.domain.exceptions import NetworkError, ValidationError


class SyncErrorKind(StrEnum):
    """Per-item failure kinds recovered inside a pass."""

    VALIDATION = "ValidationError"
    NETWORK = "NetworkError"
    SERVICE = "ServiceError"


def classify_error(exc: BaseException) -> SyncErrorKind:
    """Map an exception raised while handling one item to its reported kind.

    Timeouts count as transport failures. Anything else the adapter raises,
    ``ServiceError`` or not, is reported as a service rejection.
    """
    if isinstance(exc, ValidationError):
        return SyncErrorKind.VALIDATION
    if isinstance(exc, NetworkError | TimeoutError):
        return SyncErrorKind.NETWORK
    return SyncErrorKind.SERVICE


def error_message(exc: BaseException) -> str:
    message = str(exc).strip()
    if message:
        return message
    if isinstance(exc, TimeoutError):
        return "Note service did not respond in time"
    return type(exc).__name__
