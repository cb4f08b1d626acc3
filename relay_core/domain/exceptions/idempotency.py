"""Idempotency-related domain exceptions."""

from .base import DomainException


class InvalidIdempotencyKeyException(DomainException):
    """Raised when the idempotency key header is malformed."""

    def __init__(self, max_length: int = 255):
        super().__init__(
            message=f"Idempotency key must be between 1 and {max_length} characters",
            code="INVALID_IDEMPOTENCY_KEY",
        )


class RequestInProgressException(DomainException):
    """Raised when the original request for a key has not completed yet."""

    def __init__(self):
        super().__init__(
            message="A request with this idempotency key is already in progress",
            code="REQUEST_IN_PROGRESS",
        )


class IdempotencyKeyConflictException(DomainException):
    """Raised when a claimed key vanished before it could be read back."""

    def __init__(self):
        super().__init__(
            message="Idempotency key state changed concurrently; retry the request",
            code="IDEMPOTENCY_KEY_CONFLICT",
        )
