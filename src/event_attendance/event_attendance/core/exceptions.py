class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a lifecycle or read call references an unknown event."""


class ConcurrentModificationError(DomainError):
    """Raised when a guarded session close finds the row already closed."""
