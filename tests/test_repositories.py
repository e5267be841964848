"""
Tests for the repositories.

These tests verify that repositories:
1. Guard the copy counters with conditional updates
2. Persist state transitions only from the expected status
3. Filter and paginate list queries
4. Seed and update the settings row
"""

from datetime import date, timedelta

import pytest

from library_lending.database import (
    BookCreateSchema,
    BookingCreateSchema,
    BookingRepository,
    BookRepository,
    BorrowCreateSchema,
    BorrowRepository,
    PaginationParams,
    SettingsRepository,
    UserCreateSchema,
    UserRepository,
)
from library_lending.errors import (
    AlreadyReservedError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from library_lending.models import BookingStatus, BorrowStatus, LendingPolicyUpdate

TODAY = date(2025, 8, 1)


@pytest.fixture
def session(db_manager):
    session = db_manager.create_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def user(session):
    return UserRepository(session).create(
        UserCreateSchema(name="Alice Reader", email="alice@example.com")
    )


@pytest.fixture
def book(session):
    return BookRepository(session).create(
        BookCreateSchema(title="Dune", author="Frank Herbert", total_copies=2)
    )


def open_borrow(session, user, book, days=5, status=BorrowStatus.BORROWED):
    return BorrowRepository(session).create(
        BorrowCreateSchema(
            user_id=user.id,
            book_id=book.id,
            borrowed_at=TODAY,
            return_date=TODAY + timedelta(days=days),
            status=status,
        )
    )


class TestBookRepository:
    def test_create_puts_every_copy_on_the_shelf(self, book):
        assert book.id is not None
        assert book.total_copies == 2
        assert book.available_copies == 2

    def test_acquire_until_empty(self, session, book):
        books = BookRepository(session)

        assert books.try_acquire(book.id)
        assert books.try_acquire(book.id)
        assert not books.try_acquire(book.id)
        assert books.require(book.id).available_copies == 0

    def test_release_stops_at_total(self, session, book):
        books = BookRepository(session)

        assert not books.try_release(book.id)

        books.try_acquire(book.id)
        assert books.try_release(book.id)
        assert books.require(book.id).available_copies == 2

    def test_resize_preserves_copies_on_loan(self, session, book):
        books = BookRepository(session)
        books.try_acquire(book.id)

        assert books.try_resize(book.id, 5)
        grown = books.require(book.id)
        assert (grown.total_copies, grown.available_copies) == (5, 4)

        assert books.try_resize(book.id, 1)
        shrunk = books.require(book.id)
        assert (shrunk.total_copies, shrunk.available_copies) == (1, 0)

    def test_resize_below_copies_on_loan_refused(self, session, book):
        books = BookRepository(session)
        books.try_acquire(book.id)
        books.try_acquire(book.id)

        assert not books.try_resize(book.id, 1)
        unchanged = books.require(book.id)
        assert (unchanged.total_copies, unchanged.available_copies) == (2, 0)

    def test_missing_book(self, session):
        books = BookRepository(session)

        assert not books.try_acquire(999)
        assert not books.exists(999)
        with pytest.raises(NotFoundError, match="Book 999 not found"):
            books.require(999)


class TestBorrowRepository:
    def test_count_active_includes_pending(self, session, user, book):
        open_borrow(session, user, book)
        open_borrow(session, user, book, status=BorrowStatus.PENDING)

        assert BorrowRepository(session).count_active(user.id) == 2

    def test_save_transition(self, session, user, book):
        borrows = BorrowRepository(session)
        borrow = open_borrow(session, user, book)

        borrow.mark_returned(TODAY + timedelta(days=1))
        saved = borrows.save_transition(borrow, BorrowStatus.BORROWED)

        assert saved.status == BorrowStatus.RETURNED
        assert saved.returned_at == TODAY + timedelta(days=1)
        assert borrows.count_active(user.id) == 0

    def test_save_transition_from_stale_status(self, session, user, book):
        borrows = BorrowRepository(session)
        borrow = open_borrow(session, user, book)

        stale = borrow.model_copy()
        borrow.mark_returned(TODAY)
        borrows.save_transition(borrow, BorrowStatus.BORROWED)

        stale.mark_returned(TODAY)
        with pytest.raises(InvalidStateError, match="changed concurrently"):
            borrows.save_transition(stale, BorrowStatus.BORROWED)

    def test_list_active_filters_and_paginates(self, session, user, book):
        for _ in range(3):
            open_borrow(session, user, book)

        page = BorrowRepository(session).list_active(
            user_id=user.id, pagination=PaginationParams(page=1, page_size=2)
        )

        assert page.total == 3
        assert len(page.items) == 2
        assert page.has_next
        assert page.total_pages == 2

    @pytest.mark.parametrize(
        "pagination",
        [PaginationParams(page=0), PaginationParams(page_size=0), PaginationParams(page_size=101)],
    )
    def test_bad_pagination_is_a_client_error(self, session, user, pagination):
        with pytest.raises(InvalidRequestError) as exc_info:
            BorrowRepository(session).list_active(user_id=user.id, pagination=pagination)

        assert exc_info.value.status == 422

    def test_list_overdue(self, session, user, book):
        open_borrow(session, user, book, days=2)
        open_borrow(session, user, book, days=10)

        page = BorrowRepository(session).list_overdue(TODAY + timedelta(days=5))

        assert [b.return_date for b in page.items] == [TODAY + timedelta(days=2)]


class TestBookingRepository:
    def _booking(self, user, borrow):
        return BookingCreateSchema(
            user_id=user.id,
            book_id=borrow.book_id,
            borrow_id=borrow.id,
            booking_date=borrow.return_date,
            expiry_date=borrow.return_date + timedelta(days=7),
        )

    def test_create_and_find(self, session, user, book):
        bookings = BookingRepository(session)
        borrow = open_borrow(session, user, book)

        booking = bookings.create(self._booking(user, borrow))

        assert booking.status == BookingStatus.IN_PROGRESS
        assert bookings.find_in_progress_for_borrow(borrow.id).id == booking.id
        assert bookings.count_in_progress(user.id, book.id) == 1

    def test_duplicate_in_progress_is_already_reserved(self, session, user, book):
        bookings = BookingRepository(session)
        borrow = open_borrow(session, user, book)
        bookings.create(self._booking(user, borrow))

        with pytest.raises(AlreadyReservedError):
            bookings.create(self._booking(user, borrow))

    def test_list_expirable(self, session, user, book):
        bookings = BookingRepository(session)
        borrow = open_borrow(session, user, book)
        booking = bookings.create(self._booking(user, borrow))

        booking.make_available(TODAY, grace_days=7)
        bookings.save_transition(booking, BookingStatus.IN_PROGRESS)

        expiry = booking.expiry_date
        assert bookings.list_expirable(expiry) == []
        assert [b.id for b in bookings.list_expirable(expiry + timedelta(days=1))] == [booking.id]


class TestSettingsRepository:
    def test_seeded_from_configuration(self, session, test_config):
        policy = SettingsRepository(session).get_policy()

        assert policy.max_borrow_duration == test_config.default_max_borrow_duration
        assert policy.max_borrow_limit == test_config.default_max_borrow_limit
        assert policy.max_booking_limit == test_config.default_max_booking_limit

    def test_partial_update(self, session):
        settings = SettingsRepository(session)

        policy = settings.update_policy(LendingPolicyUpdate(max_borrow_limit=5))

        assert policy.max_borrow_limit == 5
        assert policy.max_borrow_duration == 30
        assert settings.get_policy().max_borrow_limit == 5


class TestUserRepository:
    def test_lock_missing_user(self, session):
        with pytest.raises(NotFoundError, match="User 42 not found"):
            UserRepository(session).lock(42)

    def test_as_actor(self, user):
        actor = user.as_actor()

        assert actor.user_id == user.id
        assert not actor.is_admin
