"""
Lending service: the exposed operations of the lending core.

Each public method is one atomic unit. It opens a ``lending.<operation>``
span and a database transaction, builds the core components bound to that
transaction, runs them, and commits. Any error rolls the whole operation
back, so a borrow whose copy could not be acquired, or a return whose copy
could not be routed, leaves no trace.

The actor is always passed in explicitly; nothing here reads a "current
user" from ambient state.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from ..config import LendingConfig, get_config
from ..database.book_repository import BookCreateSchema, BookRepository
from ..database.booking_repository import BookingRepository
from ..database.borrow_repository import BorrowRepository
from ..database.repository import PaginatedResponse, PaginationParams
from ..database.session import DatabaseManager, get_db_manager
from ..database.settings_repository import SettingsRepository
from ..database.user_repository import UserRepository
from ..errors import LendingError, UnauthorizedError
from ..models.actor import Actor
from ..models.book import Book
from ..models.booking import Booking
from ..models.borrow import Borrow
from ..models.outcomes import BookAvailability, CollectOutcome, ExpirySweepResult, ReturnOutcome
from ..models.settings import LendingPolicy, LendingPolicyUpdate
from ..observability.context import trace_lending_operation
from ..observability.metrics import record_circulation_event, record_expired_bookings
from .booking_queue import BookingQueue
from .borrowing import BorrowLifecycle
from .inventory import InventoryLedger
from .policy import LimitPolicy

logger = logging.getLogger(__name__)


@dataclass
class LendingUnit:
    """The core components bound to one transaction."""

    session: Session
    policy: LimitPolicy
    books: BookRepository
    borrows: BorrowRepository
    bookings: BookingRepository
    settings: SettingsRepository
    users: UserRepository
    ledger: InventoryLedger
    queue: BookingQueue
    lifecycle: BorrowLifecycle


class LendingService:
    """
    Entry point for every lending operation.

    Args:
        db_manager: Database to work against (default: the global manager)
        config: Service configuration (default: ``get_config()``)
        clock: Returns today's date; injectable for tests and schedulers
    """

    def __init__(
        self,
        db_manager: DatabaseManager | None = None,
        config: LendingConfig | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.db = db_manager or get_db_manager()
        self.config = config or get_config()
        self.clock = clock

    # === Transaction plumbing ===

    def _build_unit(self, session: Session) -> LendingUnit:
        settings = SettingsRepository(session)
        policy = LimitPolicy(
            settings.get_policy(),
            today=self.clock(),
            grace_days=self.config.booking_grace_days,
        )
        books = BookRepository(session)
        borrows = BorrowRepository(session)
        bookings = BookingRepository(session)
        users = UserRepository(session)
        ledger = InventoryLedger(books)
        queue = BookingQueue(bookings, borrows, users, ledger, policy)
        lifecycle = BorrowLifecycle(
            borrows,
            users,
            ledger,
            queue,
            policy,
            requires_approval=self.config.borrow_requires_approval,
        )
        return LendingUnit(
            session=session,
            policy=policy,
            books=books,
            borrows=borrows,
            bookings=bookings,
            settings=settings,
            users=users,
            ledger=ledger,
            queue=queue,
            lifecycle=lifecycle,
        )

    @contextmanager
    def _unit(
        self, operation: str, actor: Actor | None = None, **attributes
    ) -> Generator[LendingUnit, None, None]:
        if actor is not None:
            attributes.update(actor_id=actor.user_id, actor_role=actor.role)
        with trace_lending_operation(operation, **attributes):
            try:
                with self.db.session_scope() as session:
                    yield self._build_unit(session)
            except LendingError as e:
                if e.is_server_fault:
                    logger.error("%s failed: %s (%s)", operation, e.message, e.code)
                else:
                    logger.info("%s refused: %s (%s)", operation, e.message, e.code)
                raise

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise UnauthorizedError(f"Only admins may {action}")

    @staticmethod
    def _require_access(actor: Actor, owner_id: int, what: str) -> None:
        if not actor.can_access(owner_id):
            raise UnauthorizedError(f"{what} belongs to another user")

    # === Borrowing ===

    def create_borrow(
        self, actor: Actor, book_id: int, return_date: date | None = None
    ) -> Borrow:
        with self._unit("borrow.create", actor, book_id=book_id) as unit:
            borrow = unit.lifecycle.create(actor, book_id, return_date)
        record_circulation_event("borrow_created", book_id)
        return borrow

    def approve_borrow(self, actor: Actor, borrow_id: int) -> Borrow:
        with self._unit("borrow.approve", actor, borrow_id=borrow_id) as unit:
            borrow = unit.lifecycle.approve(actor, borrow_id)
        record_circulation_event("borrow_approved", borrow.book_id)
        return borrow

    def reject_borrow(self, actor: Actor, borrow_id: int) -> Borrow:
        with self._unit("borrow.reject", actor, borrow_id=borrow_id) as unit:
            borrow = unit.lifecycle.reject(actor, borrow_id)
        record_circulation_event("borrow_rejected", borrow.book_id)
        return borrow

    def extend_borrow(self, actor: Actor, borrow_id: int, new_return_date: date) -> Borrow:
        with self._unit("borrow.extend", actor, borrow_id=borrow_id) as unit:
            borrow = unit.lifecycle.extend(actor, borrow_id, new_return_date)
        record_circulation_event("borrow_extended", borrow.book_id)
        return borrow

    def return_borrow(self, actor: Actor, borrow_id: int) -> ReturnOutcome:
        with self._unit("borrow.return", actor, borrow_id=borrow_id) as unit:
            outcome = unit.lifecycle.return_book(actor, borrow_id)
        record_circulation_event(
            "borrow_returned" if outcome.copy_released else "borrow_returned_to_booking",
            outcome.borrow.book_id,
        )
        return outcome

    def get_borrow(self, actor: Actor, borrow_id: int) -> Borrow:
        with self._unit("borrow.get", actor, borrow_id=borrow_id) as unit:
            borrow = unit.borrows.require(borrow_id)
            self._require_access(actor, borrow.user_id, f"Borrow {borrow_id}")
        return borrow

    def list_borrows(
        self,
        actor: Actor,
        book_id: int | None = None,
        user_id: int | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Borrow]:
        """Active borrows: every user's for admins, the actor's own otherwise."""
        if not actor.is_admin:
            if user_id is not None and user_id != actor.user_id:
                raise UnauthorizedError("Only admins may list other users' borrows")
            user_id = actor.user_id
        with self._unit("borrow.list", actor) as unit:
            return unit.borrows.list_active(
                user_id=user_id, book_id=book_id, pagination=pagination
            )

    def list_overdue(
        self, actor: Actor, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Borrow]:
        self._require_admin(actor, "list overdue borrows")
        with self._unit("borrow.list_overdue", actor) as unit:
            return unit.borrows.list_overdue(unit.policy.today, pagination=pagination)

    # === Booking ===

    def reserve_booking(self, actor: Actor, borrow_id: int) -> Booking:
        with self._unit("booking.reserve", actor, borrow_id=borrow_id) as unit:
            booking = unit.queue.reserve(actor, borrow_id)
        record_circulation_event("booking_reserved", booking.book_id)
        return booking

    def collect_booking(self, actor: Actor, booking_id: int) -> CollectOutcome:
        with self._unit("booking.collect", actor, booking_id=booking_id) as unit:
            outcome = unit.queue.collect(actor, booking_id)
        record_circulation_event("booking_collected", outcome.booking.book_id)
        return outcome

    def cancel_booking(self, actor: Actor, booking_id: int) -> Booking:
        with self._unit("booking.cancel", actor, booking_id=booking_id) as unit:
            booking = unit.queue.cancel(actor, booking_id)
        record_circulation_event("booking_cancelled", booking.book_id)
        return booking

    def expire_bookings(self, actor: Actor | None = None) -> ExpirySweepResult:
        """
        Run the booking expiry sweep.

        Schedulers call this without an actor; through the tool surface the
        caller must be an admin.
        """
        if actor is not None:
            self._require_admin(actor, "run the booking expiry sweep")
        with self._unit("booking.expire_sweep", actor) as unit:
            result = unit.queue.expire_sweep()
        record_expired_bookings(result.released_copies)
        return result

    def get_booking(self, actor: Actor, booking_id: int) -> Booking:
        with self._unit("booking.get", actor, booking_id=booking_id) as unit:
            booking = unit.bookings.require(booking_id)
            self._require_access(actor, booking.user_id, f"Booking {booking_id}")
        return booking

    def list_bookings(
        self,
        actor: Actor,
        book_id: int | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Booking]:
        """Open bookings: everyone's for admins, the actor's own otherwise."""
        user_id = None if actor.is_admin else actor.user_id
        with self._unit("booking.list", actor) as unit:
            return unit.bookings.list_open(
                user_id=user_id, book_id=book_id, pagination=pagination
            )

    # === Inventory and settings ===

    def register_book(self, actor: Actor, data: BookCreateSchema) -> Book:
        self._require_admin(actor, "register books")
        with self._unit("book.register", actor) as unit:
            book = unit.ledger.register(data)
        record_circulation_event("book_registered", book.id)
        return book

    def resize_book(self, actor: Actor, book_id: int, new_total: int) -> Book:
        self._require_admin(actor, "change copy counts")
        with self._unit("book.resize", actor, book_id=book_id, new_total=new_total) as unit:
            book = unit.ledger.resize(book_id, new_total)
        record_circulation_event("book_resized", book_id)
        return book

    def book_availability(self, book_id: int) -> BookAvailability:
        with self._unit("book.availability", book_id=book_id) as unit:
            return unit.ledger.availability(book_id)

    def get_policy(self) -> LendingPolicy:
        with self._unit("policy.get") as unit:
            return unit.policy.policy

    def update_policy(self, actor: Actor, changes: LendingPolicyUpdate) -> LendingPolicy:
        self._require_admin(actor, "change lending settings")
        with self._unit("policy.update", actor) as unit:
            policy = unit.settings.update_policy(changes)
        logger.info("Lending policy updated by %s: %s", actor.user_id, policy.model_dump())
        return policy


# Global service instance used by the tool and resource handlers
_service: LendingService | None = None


def get_lending_service() -> LendingService:
    """Get the global lending service, creating it on first use."""
    global _service  # noqa: PLW0603 - Singleton pattern for the service

    if _service is None:
        _service = LendingService()

    return _service


def set_lending_service(service: LendingService | None) -> None:
    """Install (or clear) the global lending service."""
    global _service  # noqa: PLW0603

    _service = service
