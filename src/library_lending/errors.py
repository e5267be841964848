"""
Error taxonomy for lending operations.

Every failure a lending operation can report is a subclass of ``LendingError``
carrying a stable machine-readable ``code`` and the HTTP-equivalent ``status``
the JSON surface reports. Validation failures are raised before any mutation,
so catching one of these never leaves partial state behind.

Server faults (``InvariantViolationError``, ``PersistenceError``) signal data
corruption or infrastructure trouble rather than a bad request.
"""


class LendingError(Exception):
    """Base exception for lending operations."""

    code = "lending_error"
    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_server_fault(self) -> bool:
        return self.status >= 500

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "status": self.status, "message": self.message}


class NotFoundError(LendingError):
    """Raised when a book, borrow, booking or user does not exist."""

    code = "not_found"
    status = 404


class OutOfStockError(LendingError):
    """Raised when a book has no available copies to hand out."""

    code = "out_of_stock"
    status = 422


class LimitExceededError(LendingError):
    """Raised when a borrow, extension or booking ceiling has been reached."""

    code = "limit_exceeded"
    status = 422


class DurationExceededError(LendingError):
    """Raised when a requested date falls outside the policy window."""

    code = "duration_exceeded"
    status = 422


class ConflictError(LendingError):
    """Raised when the request collides with existing state."""

    code = "conflict"
    status = 409


class AlreadyReservedError(ConflictError):
    """Raised when another booking already waits on the same borrow."""


class UnauthorizedError(LendingError):
    """Raised when the actor neither owns the record nor is an admin."""

    code = "unauthorized"
    status = 403


class InvalidStateError(LendingError):
    """Raised when a transition is attempted from the wrong state."""

    code = "invalid_state"
    status = 409


class InvalidRequestError(LendingError):
    """Raised for malformed input, e.g. a return date in the past."""

    code = "invalid_request"
    status = 422


class InvariantViolationError(LendingError):
    """Raised when a mutation would break a ledger invariant."""

    code = "invariant_violation"
    status = 500


class PersistenceError(LendingError):
    """Raised when the database fails unexpectedly; the cause is chained."""

    code = "server_error"
    status = 500


# Booking-specific name for a return date beyond the booking window
ReturnTooFarOutError = DurationExceededError


__all__ = [
    "AlreadyReservedError",
    "ConflictError",
    "DurationExceededError",
    "InvalidRequestError",
    "InvalidStateError",
    "InvariantViolationError",
    "LendingError",
    "LimitExceededError",
    "NotFoundError",
    "OutOfStockError",
    "PersistenceError",
    "ReturnTooFarOutError",
    "UnauthorizedError",
]
