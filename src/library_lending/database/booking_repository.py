"""
Booking repository: reservations and the first-come lock.

The lock itself lives in the schema as a partial unique index on
``bookings(borrow_id) WHERE status = 'in_progress'``. ``create`` turns the
resulting ``IntegrityError`` into ``AlreadyReservedError`` so the loser of a
race gets the same answer as a requester who arrives after the winner.
"""

from datetime import date

from pydantic import BaseModel, Field
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyReservedError, InvalidStateError
from ..models.booking import OPEN_BOOKING_STATUSES, BookingStatus
from ..models.booking import Booking as BookingModel
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Booking as BookingDB
from .session import safe_query


class BookingCreateSchema(BaseModel):
    """Schema for placing a booking on a borrow."""

    user_id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1)
    borrow_id: int = Field(..., ge=1)
    booking_date: date
    expiry_date: date


class BookingRepository(BaseRepository[BookingDB, BookingModel]):
    """Repository for booking rows."""

    entity_name = "Booking"

    @property
    def model_class(self):
        return BookingDB

    @property
    def response_schema(self):
        return BookingModel

    def create(self, data: BookingCreateSchema) -> BookingModel:
        """
        Insert an ``in_progress`` booking.

        Raises:
            AlreadyReservedError: Another booking already waits on the borrow
        """
        booking = BookingDB(
            user_id=data.user_id,
            book_id=data.book_id,
            borrow_id=data.borrow_id,
            booking_date=data.booking_date,
            expiry_date=data.expiry_date,
            status=BookingStatus.IN_PROGRESS,
        )
        try:
            return self._add(booking)
        except IntegrityError as e:
            raise AlreadyReservedError(
                f"Borrow {data.borrow_id} already has a booking in progress"
            ) from e

    def find_in_progress_for_borrow(self, borrow_id: int) -> BookingModel | None:
        """The (at most one) booking waiting on ``borrow_id``."""
        query = (
            select(BookingDB)
            .where(
                BookingDB.borrow_id == borrow_id,
                BookingDB.status == BookingStatus.IN_PROGRESS,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to look up booking for borrow",
        )
        return self._to_response_model(row) if row is not None else None

    def count_in_progress(self, user_id: int, book_id: int) -> int:
        """Bookings ``user_id`` has waiting on copies of ``book_id``."""
        query = (
            select(func.count())
            .select_from(BookingDB)
            .where(
                BookingDB.user_id == user_id,
                BookingDB.book_id == book_id,
                BookingDB.status == BookingStatus.IN_PROGRESS,
            )
        )
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count bookings"
        ) or 0

    def list_expirable(self, today: date) -> list[BookingModel]:
        """Available bookings whose pickup window closed before ``today``."""
        return self._list(
            BookingDB.status == BookingStatus.AVAILABLE,
            BookingDB.expiry_date < today,
            order_by="expiry_date",
        )

    def save_transition(
        self, booking: BookingModel, expected_status: BookingStatus
    ) -> BookingModel:
        """
        Persist a booking whose state was changed in memory.

        Raises:
            InvalidStateError: The stored status is no longer ``expected_status``
        """
        statement = (
            update(BookingDB)
            .where(BookingDB.id == booking.id, BookingDB.status == expected_status)
            .values(status=booking.status, expiry_date=booking.expiry_date)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            raise InvalidStateError(
                f"Booking {booking.id} changed concurrently - expected status "
                f"'{BookingStatus(expected_status).value}'"
            )
        return self.require(booking.id)

    def list_open(
        self,
        user_id: int | None = None,
        book_id: int | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[BookingModel]:
        """In-progress and available bookings, optionally narrowed."""
        conditions = [BookingDB.status.in_(OPEN_BOOKING_STATUSES)]
        if user_id is not None:
            conditions.append(BookingDB.user_id == user_id)
        if book_id is not None:
            conditions.append(BookingDB.book_id == book_id)
        return self._list(
            *conditions,
            pagination=pagination or PaginationParams(),
            order_by="booking_date",
        )
