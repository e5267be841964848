"""
Pydantic records for the lending service.

These are plain data records passed between the lending core and the
repositories:
- Book: title record with its copy counters
- Borrow: one user's loan of one copy, with its state machine
- Booking: a reservation on the copy held by a borrow, with its state machine
- LendingPolicy: the ceilings from the settings row
- Actor: the authenticated caller
- User: the account row borrows and bookings reference
"""

from .actor import Actor, Role
from .book import Book
from .booking import OPEN_BOOKING_STATUSES, Booking, BookingStatus
from .borrow import ACTIVE_BORROW_STATUSES, Borrow, BorrowStatus
from .outcomes import BookAvailability, CollectOutcome, ExpirySweepResult, ReturnOutcome
from .settings import LendingPolicy, LendingPolicyUpdate
from .user import User

__all__ = [
    "ACTIVE_BORROW_STATUSES",
    "OPEN_BOOKING_STATUSES",
    "Actor",
    "Book",
    "BookAvailability",
    "Booking",
    "BookingStatus",
    "Borrow",
    "BorrowStatus",
    "CollectOutcome",
    "ExpirySweepResult",
    "LendingPolicy",
    "LendingPolicyUpdate",
    "ReturnOutcome",
    "Role",
    "User",
]
