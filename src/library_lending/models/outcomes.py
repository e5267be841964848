"""Composite results of multi-record lending operations."""

from pydantic import BaseModel, Field

from .book import Book
from .booking import Booking
from .borrow import Borrow


class ReturnOutcome(BaseModel):
    """A closed borrow and, if one was waiting, the booking that received the copy."""

    borrow: Borrow
    booking: Booking | None = None

    @property
    def copy_released(self) -> bool:
        """True when the copy went back on the shelf instead of to a booking."""
        return self.booking is None


class CollectOutcome(BaseModel):
    """A collected booking and the borrow opened for its holder."""

    booking: Booking
    borrow: Borrow


class ExpirySweepResult(BaseModel):
    """Bookings expired by one sweep and the copies handed back to the shelf."""

    expired: list[Booking] = Field(default_factory=list)

    @property
    def released_copies(self) -> int:
        return len(self.expired)


class BookAvailability(BaseModel):
    book: Book
    is_available: bool
    copies_on_loan: int
