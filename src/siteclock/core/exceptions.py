from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class InvalidStateError(DomainError):
    """A clock transition the state machine forbids."""

    code = "INVALID_STATE"


class AlreadyClockedIn(InvalidStateError):
    code = "ALREADY_CLOCKED_IN"

    def __init__(self, open_record, message: str = "Already clocked in. Clock out first."):
        super().__init__(message)
        self.open_record = open_record


class NotClockedIn(InvalidStateError):
    code = "NOT_CLOCKED_IN"

    def __init__(self, message: str = "Not clocked in. Clock in first."):
        super().__init__(message)


class WorksiteUnavailable(DomainError):
    """Requested worksite does not exist or is inactive."""

    def __init__(self, worksite_id):
        super().__init__(f"Worksite {worksite_id} not found or inactive")
        self.worksite_id = worksite_id


class ConstraintViolation(DomainError):
    """The store rejected a write because a unique key already exists."""

    def __init__(self, message: str, *, idempotency_key: Optional[str] = None):
        super().__init__(message)
        self.idempotency_key = idempotency_key


class StoreFailure(DomainError):
    """Underlying persistence error (timeout, connection loss). Safe to retry."""

    retryable = True
