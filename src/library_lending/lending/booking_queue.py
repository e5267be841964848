"""
Booking queue: reservations on copies that are out on loan.

A booking waits on one specific borrow. When that borrow comes back,
``on_borrow_returned`` is the single place that decides whether the copy goes
to a waiting booking or back on the shelf:

- a booking is ``in_progress`` for the borrow: it becomes ``available`` and
  the copy stays off the shelf, held for the booking's owner
- nothing is waiting: the caller releases the copy to the ledger

Only ``available -> expired`` puts a held copy back on the shelf; an
``in_progress`` booking never held one, so cancelling it has no inventory
effect.
"""

import logging

from ..database.booking_repository import BookingCreateSchema, BookingRepository
from ..database.borrow_repository import BorrowCreateSchema, BorrowRepository
from ..database.user_repository import UserRepository
from ..errors import AlreadyReservedError, InvalidStateError, UnauthorizedError
from ..models.actor import Actor
from ..models.booking import Booking, BookingStatus
from ..models.borrow import Borrow, BorrowStatus
from ..models.outcomes import CollectOutcome, ExpirySweepResult
from .inventory import InventoryLedger
from .policy import LimitPolicy

logger = logging.getLogger(__name__)


class BookingQueue:
    """Per-book waiting list anchored to borrows' due dates."""

    def __init__(
        self,
        bookings: BookingRepository,
        borrows: BorrowRepository,
        users: UserRepository,
        ledger: InventoryLedger,
        policy: LimitPolicy,
    ):
        self.bookings = bookings
        self.borrows = borrows
        self.users = users
        self.ledger = ledger
        self.policy = policy

    def reserve(self, actor: Actor, borrow_id: int) -> Booking:
        """
        Book the copy held by ``borrow_id`` for the actor.

        Raises:
            NotFoundError: No such user or borrow
            InvalidStateError: The borrow is not currently ``borrowed``
            AlreadyReservedError: Someone already waits on this borrow
            LimitExceededError: The actor has too many bookings on this book
            ReturnTooFarOutError: The copy is due back after the booking window
        """
        self.users.lock(actor.user_id)
        borrow = self.borrows.require(borrow_id, for_update=True)

        if borrow.status != BorrowStatus.BORROWED or borrow.return_date is None:
            raise InvalidStateError(
                f"Borrow {borrow.id} is '{borrow.status}' - only borrowed copies can be booked"
            )

        if self.bookings.find_in_progress_for_borrow(borrow.id) is not None:
            raise AlreadyReservedError(f"Borrow {borrow.id} already has a booking in progress")

        self.policy.ensure_can_reserve(
            self.bookings.count_in_progress(actor.user_id, borrow.book_id)
        )
        self.policy.ensure_within_booking_window(borrow.return_date)

        booking = self.bookings.create(
            BookingCreateSchema(
                user_id=actor.user_id,
                book_id=borrow.book_id,
                borrow_id=borrow.id,
                booking_date=borrow.return_date,
                expiry_date=self.policy.booking_expiry(borrow.return_date),
            )
        )
        logger.info(
            "User %s booked borrow %s of book %s", actor.user_id, borrow.id, borrow.book_id
        )
        return booking

    def has_waiting_booking(self, borrow_id: int) -> bool:
        return self.bookings.find_in_progress_for_borrow(borrow_id) is not None

    def on_borrow_returned(self, borrow: Borrow) -> Booking | None:
        """
        Hand a just-returned copy to the booking waiting on ``borrow``.

        Returns the booking, now ``available``, or None when nobody was
        waiting and the copy should go back on the shelf.
        """
        booking = self.bookings.find_in_progress_for_borrow(borrow.id)
        if booking is None:
            return None

        booking.make_available(self.policy.today, self.policy.grace_days)
        booking = self.bookings.save_transition(booking, BookingStatus.IN_PROGRESS)
        logger.info(
            "Copy from borrow %s handed to booking %s (collect by %s)",
            borrow.id,
            booking.id,
            booking.expiry_date.isoformat(),
        )
        return booking

    def collect(self, actor: Actor, booking_id: int) -> CollectOutcome:
        """
        Pick up a held copy.

        The copy never went back on the shelf, so the ledger is untouched; a
        new borrow is opened for the collector to track it from here on.

        Raises:
            NotFoundError: No such booking
            UnauthorizedError: The actor did not make the booking
            LimitExceededError: The actor already holds the maximum number of borrows;
                the booking stays ``available`` until a slot frees up or it expires
            InvalidStateError: The booking is not ``available``
        """
        booking = self.bookings.require(booking_id, for_update=True)
        if not actor.owns(booking.user_id):
            raise UnauthorizedError(f"Booking {booking.id} belongs to another user")

        self.users.lock(actor.user_id)
        self.policy.ensure_can_borrow(self.borrows.count_active(actor.user_id))

        booking.collect()
        booking = self.bookings.save_transition(booking, BookingStatus.AVAILABLE)

        today = self.policy.today
        borrow = self.borrows.create(
            BorrowCreateSchema(
                user_id=booking.user_id,
                book_id=booking.book_id,
                borrowed_at=today,
                return_date=self.policy.max_return_date(today),
                status=BorrowStatus.BORROWED,
            )
        )
        logger.info("Booking %s collected, opened borrow %s", booking.id, borrow.id)
        return CollectOutcome(booking=booking, borrow=borrow)

    def cancel(self, actor: Actor, booking_id: int) -> Booking:
        """
        Withdraw an ``in_progress`` booking. No inventory effect.

        Raises:
            NotFoundError: No such booking
            UnauthorizedError: The actor is neither the owner nor an admin
            InvalidStateError: The booking is no longer ``in_progress``
        """
        booking = self.bookings.require(booking_id, for_update=True)
        if not actor.can_access(booking.user_id):
            raise UnauthorizedError(f"Booking {booking.id} belongs to another user")

        booking.cancel()
        booking = self.bookings.save_transition(booking, BookingStatus.IN_PROGRESS)
        logger.info("Booking %s cancelled by user %s", booking.id, actor.user_id)
        return booking

    def expire_sweep(self) -> ExpirySweepResult:
        """
        Expire every ``available`` booking whose pickup window has closed.

        Each expired booking's held copy goes back on the shelf. A booking
        collected concurrently is skipped.
        """
        expired: list[Booking] = []
        for booking in self.bookings.list_expirable(self.policy.today):
            booking.expire()
            try:
                booking = self.bookings.save_transition(booking, BookingStatus.AVAILABLE)
            except InvalidStateError:
                logger.info("Booking %s changed during the expiry sweep, skipping", booking.id)
                continue
            self.ledger.release_copy(booking.book_id)
            expired.append(booking)

        if expired:
            logger.info("Expired %d bookings", len(expired))
        return ExpirySweepResult(expired=expired)
