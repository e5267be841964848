"""
Limit policy: the configurable ceilings that gate lending transitions.

``LimitPolicy`` never touches storage. The caller gathers the counts (under
the appropriate row locks) and asks the policy whether a transition may go
ahead. The ``can_*`` methods answer yes or no; the ``ensure_*`` methods raise
the matching lending error so a refusal reads the same everywhere.
"""

from datetime import date, timedelta

from ..errors import (
    ConflictError,
    DurationExceededError,
    InvalidRequestError,
    LimitExceededError,
    ReturnTooFarOutError,
)
from ..models.borrow import Borrow
from ..models.settings import LendingPolicy


class LimitPolicy:
    """
    Evaluates the five policy ceilings for one operation.

    Args:
        policy: Ceilings read from the settings row
        today: The operation's clock reading
        grace_days: Length of a booking's pickup window
    """

    def __init__(self, policy: LendingPolicy, today: date, grace_days: int = 7):
        self.policy = policy
        self.today = today
        self.grace_days = grace_days

    # === Borrowing ===

    def can_borrow(self, active_borrows: int) -> bool:
        return active_borrows < self.policy.max_borrow_limit

    def max_return_date(self, borrowed_at: date) -> date:
        return borrowed_at + timedelta(days=self.policy.max_borrow_duration)

    def can_extend(self, borrow: Borrow, has_waiting_booking: bool) -> bool:
        return (
            borrow.extension_count < self.policy.max_extension_limit
            and not has_waiting_booking
        )

    def ensure_can_borrow(self, active_borrows: int) -> None:
        if not self.can_borrow(active_borrows):
            raise LimitExceededError(
                f"Borrow limit reached - {self.policy.max_borrow_limit} active borrows allowed"
            )

    def ensure_return_date_allowed(self, borrowed_at: date, return_date: date) -> None:
        """
        Check a requested due date against today and the borrow duration ceiling.

        Raises:
            InvalidRequestError: The date is already in the past
            DurationExceededError: The date is beyond ``borrowed_at + max_borrow_duration``
        """
        if return_date < self.today:
            raise InvalidRequestError(
                f"Return date {return_date.isoformat()} is in the past"
            )
        latest = self.max_return_date(borrowed_at)
        if return_date > latest:
            raise DurationExceededError(
                f"The return date cannot exceed {self.policy.max_borrow_duration} days "
                f"from the borrow date ({borrowed_at.isoformat()}); latest is {latest.isoformat()}"
            )

    def ensure_can_extend(self, borrow: Borrow, has_waiting_booking: bool) -> None:
        """
        Raises:
            ConflictError: Someone is waiting for this copy
            LimitExceededError: The borrow already used every extension
        """
        if has_waiting_booking:
            raise ConflictError(f"Borrow {borrow.id} is booked by another user - cannot extend")
        if not self.can_extend(borrow, has_waiting_booking):
            raise LimitExceededError(
                f"Extension limit reached - {self.policy.max_extension_limit} extensions allowed"
            )

    # === Booking ===

    def can_reserve(self, in_progress_bookings: int) -> bool:
        return in_progress_bookings < self.policy.max_booking_limit

    def max_booking_window(self) -> date:
        """Latest due date a borrow may have and still be booked today."""
        return self.today + timedelta(days=self.policy.max_booking_duration)

    def within_booking_window(self, return_date: date) -> bool:
        return return_date <= self.max_booking_window()

    def booking_expiry(self, booking_date: date) -> date:
        return booking_date + timedelta(days=self.grace_days)

    def ensure_can_reserve(self, in_progress_bookings: int) -> None:
        if not self.can_reserve(in_progress_bookings):
            raise LimitExceededError(
                f"Booking limit reached - {self.policy.max_booking_limit} bookings "
                "per book allowed"
            )

    def ensure_within_booking_window(self, return_date: date) -> None:
        if not self.within_booking_window(return_date):
            raise ReturnTooFarOutError(
                "This book will not be available within the allowed booking duration "
                f"({self.policy.max_booking_duration} days)"
            )
