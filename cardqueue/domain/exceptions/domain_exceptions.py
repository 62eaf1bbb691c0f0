"""Domain-specific exceptions.

``ValidationError``, ``NetworkError`` and ``ServiceError`` are recovered per
item inside a synchronization pass and reported in its batch result.
``StorageError`` and ``QueueIndexError`` propagate to the caller of the
queue operation that raised them.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class QueueError(DomainException):
    """Base exception for pending-queue operations."""

    pass


class ValidationError(QueueError):
    """Raised when a pending item fails its field constraints."""

    @property
    def errors(self) -> list[str]:
        return list(self.details.get("errors", []))


class NetworkError(QueueError):
    """Raised when the transport to the note service failed or timed out."""

    pass


class ServiceError(QueueError):
    """Raised when the note service was reached but rejected the request."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class StorageError(QueueError):
    """Raised when the queue store could not be read or written."""

    pass


class QueueIndexError(QueueError, IndexError):
    """Raised when removing by a position outside the queue."""

    pass
