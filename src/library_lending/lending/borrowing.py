"""
Borrow lifecycle: one user's possession of one copy.

Every method validates first and mutates last, so a refusal never leaves a
half-applied change behind. The enclosing transaction takes care of the case
where a later step (a ledger write, a compare-and-set) fails after an earlier
one succeeded.
"""

import logging
from datetime import date

from ..database.borrow_repository import BorrowCreateSchema, BorrowRepository
from ..database.user_repository import UserRepository
from ..errors import InvalidStateError, UnauthorizedError
from ..models.actor import Actor
from ..models.borrow import Borrow, BorrowStatus
from ..models.outcomes import ReturnOutcome
from .booking_queue import BookingQueue
from .inventory import InventoryLedger
from .policy import LimitPolicy

logger = logging.getLogger(__name__)


class BorrowLifecycle:
    """
    State machine driver for borrow records.

    Args:
        borrows: Borrow repository bound to the current transaction
        users: User repository, for locking the borrower's row
        ledger: Inventory ledger for copy acquisition and release
        queue: Booking queue consulted on extend and return
        policy: Ceilings and clock for this operation
        requires_approval: New borrows start ``pending`` instead of ``borrowed``
    """

    def __init__(
        self,
        borrows: BorrowRepository,
        users: UserRepository,
        ledger: InventoryLedger,
        queue: BookingQueue,
        policy: LimitPolicy,
        requires_approval: bool = False,
    ):
        self.borrows = borrows
        self.users = users
        self.ledger = ledger
        self.queue = queue
        self.policy = policy
        self.requires_approval = requires_approval

    def create(self, actor: Actor, book_id: int, return_date: date | None = None) -> Borrow:
        """
        Claim a copy of ``book_id`` for the actor.

        Without ``return_date`` the borrow is due at the latest date policy
        allows.

        Raises:
            NotFoundError: No such user or book
            InvalidRequestError: ``return_date`` is in the past
            DurationExceededError: ``return_date`` is beyond the borrow duration
            LimitExceededError: The actor already holds the maximum number of borrows
            OutOfStockError: No copy is on the shelf
        """
        self.users.lock(actor.user_id)

        today = self.policy.today
        due = return_date or self.policy.max_return_date(today)
        self.policy.ensure_return_date_allowed(today, due)
        self.policy.ensure_can_borrow(self.borrows.count_active(actor.user_id))

        self.ledger.acquire_copy(book_id)

        status = BorrowStatus.PENDING if self.requires_approval else BorrowStatus.BORROWED
        borrow = self.borrows.create(
            BorrowCreateSchema(
                user_id=actor.user_id,
                book_id=book_id,
                borrowed_at=today,
                return_date=due,
                status=status,
            )
        )
        logger.info(
            "User %s borrowed book %s (borrow %s, %s, due %s)",
            actor.user_id,
            book_id,
            borrow.id,
            borrow.status,
            due.isoformat(),
        )
        return borrow

    def approve(self, actor: Actor, borrow_id: int) -> Borrow:
        """Admit a pending borrow. The copy is already held."""
        self._require_admin(actor, "approve borrows")
        borrow = self.borrows.require(borrow_id, for_update=True)
        borrow.approve()
        borrow = self.borrows.save_transition(borrow, BorrowStatus.PENDING)
        logger.info("Borrow %s approved by %s", borrow.id, actor.user_id)
        return borrow

    def reject(self, actor: Actor, borrow_id: int) -> Borrow:
        """Refuse a pending borrow and put its held copy back on the shelf."""
        self._require_admin(actor, "reject borrows")
        borrow = self.borrows.require(borrow_id, for_update=True)
        borrow.reject()
        borrow = self.borrows.save_transition(borrow, BorrowStatus.PENDING)
        self.ledger.release_copy(borrow.book_id)
        logger.info("Borrow %s rejected by %s", borrow.id, actor.user_id)
        return borrow

    def extend(self, actor: Actor, borrow_id: int, new_return_date: date) -> Borrow:
        """
        Push a borrow's due date out.

        Raises:
            NotFoundError: No such borrow
            UnauthorizedError: The actor is not the borrower
            InvalidStateError: The borrow is not ``borrowed``
            ConflictError: A booking is waiting for this copy
            LimitExceededError: No extensions left
            InvalidRequestError: ``new_return_date`` is in the past
            DurationExceededError: ``new_return_date`` is beyond the borrow duration
        """
        borrow = self.borrows.require(borrow_id, for_update=True)
        self._require_owner(actor, borrow)
        self._require_status(borrow, BorrowStatus.BORROWED, "extend")

        self.policy.ensure_can_extend(borrow, self.queue.has_waiting_booking(borrow.id))
        self.policy.ensure_return_date_allowed(borrow.borrowed_at, new_return_date)

        borrow.extend(new_return_date)
        borrow = self.borrows.save_transition(borrow, BorrowStatus.BORROWED)
        logger.info(
            "Borrow %s extended to %s (%d extensions)",
            borrow.id,
            new_return_date.isoformat(),
            borrow.extension_count,
        )
        return borrow

    def return_book(self, actor: Actor, borrow_id: int) -> ReturnOutcome:
        """
        Close a borrow and route its copy.

        The copy goes to the booking waiting on this borrow if there is one,
        otherwise back on the shelf. Succeeds exactly once per borrow.

        Raises:
            NotFoundError: No such borrow
            UnauthorizedError: The actor is not the borrower
            InvalidStateError: The borrow is not ``borrowed`` (e.g. already returned)
        """
        borrow = self.borrows.require(borrow_id, for_update=True)
        self._require_owner(actor, borrow)

        borrow.mark_returned(self.policy.today)
        borrow = self.borrows.save_transition(borrow, BorrowStatus.BORROWED)

        booking = self.queue.on_borrow_returned(borrow)
        if booking is None:
            self.ledger.release_copy(borrow.book_id)

        logger.info(
            "Borrow %s returned; copy %s",
            borrow.id,
            f"held for booking {booking.id}" if booking else "back on the shelf",
        )
        return ReturnOutcome(borrow=borrow, booking=booking)

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise UnauthorizedError(f"Only admins may {action}")

    @staticmethod
    def _require_owner(actor: Actor, borrow: Borrow) -> None:
        if not actor.owns(borrow.user_id):
            raise UnauthorizedError(f"Borrow {borrow.id} belongs to another user")

    @staticmethod
    def _require_status(borrow: Borrow, expected: BorrowStatus, action: str) -> None:
        if borrow.status != expected:
            raise InvalidStateError(
                f"Cannot {action} borrow {borrow.id} - status is '{borrow.status}'"
            )
