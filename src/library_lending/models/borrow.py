"""
Borrow model for the lending service.

A borrow tracks one user's possession of one copy of a book:

    pending ──approve──▶ borrowed ──return──▶ returned
       │                   │
       └──reject──▶ rejected └──extend (return_date pushed, extension_count + 1)

``pending`` is only used when the approval workflow is switched on.
``returned`` and ``rejected`` are terminal; borrow records are never deleted.

The transition methods only enforce the state machine. Ceilings (how many
extensions, how far out a date may be) are checked by the limit policy before
a transition is attempted, and persistence is the repository's business.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import InvalidStateError


class BorrowStatus(str, Enum):
    """Status of a borrow record."""

    PENDING = "pending"
    BORROWED = "borrowed"
    RETURNED = "returned"
    REJECTED = "rejected"


# Statuses in which the borrow holds a copy out of the pool
ACTIVE_BORROW_STATUSES = (BorrowStatus.PENDING, BorrowStatus.BORROWED)


class Borrow(BaseModel):
    """Represents one user's loan of one copy."""

    id: int = Field(..., description="Borrow identifier", ge=1)
    user_id: int = Field(..., description="Borrowing user", ge=1)
    book_id: int = Field(..., description="Borrowed book", ge=1)

    borrowed_at: date = Field(
        ...,
        description="Date the copy left the shelf",
    )

    return_date: date | None = Field(
        None,
        description="Date the copy is due back",
        examples=["2025-08-30"],
    )

    status: BorrowStatus = Field(
        default=BorrowStatus.BORROWED,
        description="Current status of the borrow",
    )

    returned_at: date | None = Field(
        None,
        description="Date the copy actually came back",
    )

    extension_count: int = Field(
        default=0,
        description="Number of times the due date has been pushed back",
        ge=0,
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "Borrow":
        """Validate date relationships."""
        if self.return_date and self.return_date < self.borrowed_at:
            raise ValueError("Return date cannot be before the borrow date")
        if self.returned_at and self.returned_at < self.borrowed_at:
            raise ValueError("Returned date cannot be before the borrow date")
        return self

    @property
    def is_active(self) -> bool:
        """True while the borrow holds a copy (pending or borrowed)."""
        return self.status in ACTIVE_BORROW_STATUSES

    def is_overdue(self, today: date | None = None) -> bool:
        """A borrowed copy is overdue once its return date has passed."""
        today = today or date.today()
        return (
            self.status == BorrowStatus.BORROWED
            and self.return_date is not None
            and self.return_date < today
        )

    def days_overdue(self, today: date | None = None) -> int:
        today = today or date.today()
        if not self.is_overdue(today):
            return 0
        return (today - self.return_date).days

    def approve(self) -> None:
        """Admit a pending borrow; the copy is already held."""
        self._require(BorrowStatus.PENDING, "approve")
        self.status = BorrowStatus.BORROWED

    def reject(self) -> None:
        """Refuse a pending borrow; the caller releases the held copy."""
        self._require(BorrowStatus.PENDING, "reject")
        self.status = BorrowStatus.REJECTED

    def extend(self, new_return_date: date) -> None:
        """Push the due date to ``new_return_date`` and count the extension."""
        self._require(BorrowStatus.BORROWED, "extend")
        self.return_date = new_return_date
        self.extension_count += 1

    def mark_returned(self, on: date) -> None:
        """Close the borrow. Succeeds exactly once."""
        self._require(BorrowStatus.BORROWED, "return")
        self.status = BorrowStatus.RETURNED
        self.returned_at = on

    def _require(self, expected: BorrowStatus, action: str) -> None:
        if self.status != expected:
            raise InvalidStateError(
                f"Cannot {action} borrow {self.id} - status is '{self.status}', "
                f"expected '{expected.value}'"
            )

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": 7,
                "user_id": 5,
                "book_id": 10,
                "borrowed_at": "2025-08-01",
                "return_date": "2025-08-15",
                "status": "borrowed",
                "returned_at": None,
                "extension_count": 0,
            }
        },
    )
