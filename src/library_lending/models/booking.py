"""
Booking model for the lending service.

A booking reserves the copy held by one specific borrow. It is anchored to
that borrow's due date and moves through:

    in_progress ──anchor returned──▶ available ──picked up──▶ collected
         │                               │
         └──cancel──▶ cancelled          └──pickup window passed──▶ expired

At most one ``in_progress`` booking may wait on a given borrow.
"""

from datetime import date, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import InvalidStateError


class BookingStatus(str, Enum):
    """Status of a booking."""

    IN_PROGRESS = "in_progress"
    AVAILABLE = "available"
    COLLECTED = "collected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Bookings a user still has a stake in
OPEN_BOOKING_STATUSES = (BookingStatus.IN_PROGRESS, BookingStatus.AVAILABLE)


class Booking(BaseModel):
    """Represents a reservation on the copy held by an existing borrow."""

    id: int = Field(..., description="Booking identifier", ge=1)
    user_id: int = Field(..., description="Reserving user", ge=1)
    book_id: int = Field(..., description="Reserved book", ge=1)
    borrow_id: int = Field(..., description="Borrow whose copy this booking waits for", ge=1)

    booking_date: date = Field(
        ...,
        description="The anchoring borrow's expected return date",
    )

    expiry_date: date = Field(
        ...,
        description="Last day the copy can be collected",
    )

    status: BookingStatus = Field(
        default=BookingStatus.IN_PROGRESS,
        description="Current status of the booking",
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "Booking":
        if self.expiry_date < self.booking_date:
            raise ValueError("Expiry date cannot be before the booking date")
        return self

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_BOOKING_STATUSES

    def is_past_expiry(self, today: date | None = None) -> bool:
        today = today or date.today()
        return self.expiry_date < today

    def make_available(self, today: date, grace_days: int) -> None:
        """
        Hand the returned copy to this booking.

        The pickup window never ends before ``today + grace_days`` so a copy
        that came back late still gets a full window.
        """
        self._require(BookingStatus.IN_PROGRESS, "make available")
        self.status = BookingStatus.AVAILABLE
        self.expiry_date = max(self.expiry_date, today + timedelta(days=grace_days))

    def collect(self) -> None:
        self._require(BookingStatus.AVAILABLE, "collect")
        self.status = BookingStatus.COLLECTED

    def expire(self) -> None:
        self._require(BookingStatus.AVAILABLE, "expire")
        self.status = BookingStatus.EXPIRED

    def cancel(self) -> None:
        self._require(BookingStatus.IN_PROGRESS, "cancel")
        self.status = BookingStatus.CANCELLED

    def _require(self, expected: BookingStatus, action: str) -> None:
        if self.status != expected:
            raise InvalidStateError(
                f"Cannot {action} booking {self.id} - status is '{self.status}', "
                f"expected '{expected.value}'"
            )

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": 5,
                "book_id": 12,
                "borrow_id": 7,
                "booking_date": "2025-08-04",
                "expiry_date": "2025-08-11",
                "status": "in_progress",
            }
        },
    )
