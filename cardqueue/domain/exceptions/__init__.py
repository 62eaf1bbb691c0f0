from cardqueue.domain.exceptions.domain_exceptions import (
    DomainException,
    NetworkError,
    QueueError,
    QueueIndexError,
    ServiceError,
    StorageError,
    ValidationError,
)

__all__ = [
    "DomainException",
    "NetworkError",
    "QueueError",
    "QueueIndexError",
    "ServiceError",
    "StorageError",
    "ValidationError",
]
