"""
Concurrency tests for the copy counter and booking uniqueness.

Each worker thread runs a full lending operation in its own transaction
against the same SQLite file, started together behind a barrier. Whatever
order the database serializes them in, the counters and the
one-booking-per-borrow rule must hold afterwards.
"""

import threading
from collections.abc import Callable
from datetime import date, timedelta

import pytest

from library_lending.database import UserCreateSchema, UserRepository
from library_lending.errors import (
    AlreadyReservedError,
    InvalidStateError,
    LendingError,
    OutOfStockError,
)
from library_lending.models import Actor, BookingStatus

TODAY = date(2025, 8, 1)

pytestmark = pytest.mark.concurrency


def run_concurrently(*calls: Callable[[], object]) -> list[object]:
    """Run each call in its own thread; collect the result or the lending error raised."""
    barrier = threading.Barrier(len(calls))
    results: list[object] = [None] * len(calls)

    def worker(index: int, call: Callable[[], object]) -> None:
        barrier.wait()
        try:
            results[index] = call()
        except LendingError as e:
            results[index] = e

    threads = [
        threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


@pytest.fixture
def readers(db_manager) -> list[Actor]:
    """Six regular users."""
    with db_manager.session_scope() as session:
        users = UserRepository(session)
        return [
            users.create(
                UserCreateSchema(name=f"Reader {i}", email=f"reader{i}@example.com")
            ).as_actor()
            for i in range(6)
        ]


@pytest.fixture(autouse=True)
def seeded_settings(service):
    """Create the settings row up front so workers only read it."""
    service.get_policy()


class TestConcurrentBorrowing:
    def test_two_borrowers_one_copy(self, service, readers, make_book):
        book = make_book(total_copies=1)

        results = run_concurrently(
            lambda: service.create_borrow(readers[0], book.id),
            lambda: service.create_borrow(readers[1], book.id),
        )

        failures = [r for r in results if isinstance(r, LendingError)]
        assert len(failures) == 1
        assert isinstance(failures[0], OutOfStockError)
        assert service.book_availability(book.id).book.available_copies == 0

    def test_many_borrowers_few_copies(self, service, readers, make_book):
        book = make_book(total_copies=3)

        results = run_concurrently(
            *[lambda actor=actor: service.create_borrow(actor, book.id) for actor in readers]
        )

        successes = [r for r in results if not isinstance(r, LendingError)]
        failures = [r for r in results if isinstance(r, LendingError)]
        assert len(successes) == 3
        assert all(isinstance(f, OutOfStockError) for f in failures)
        assert service.book_availability(book.id).book.available_copies == 0

    def test_concurrent_returns_never_overflow(self, service, readers, make_book):
        book = make_book(total_copies=3)
        borrows = [service.create_borrow(actor, book.id) for actor in readers[:3]]

        results = run_concurrently(
            *[
                lambda actor=actor, borrow=borrow: service.return_borrow(actor, borrow.id)
                for actor, borrow in zip(readers[:3], borrows, strict=True)
            ]
        )

        assert not any(isinstance(r, LendingError) for r in results)
        availability = service.book_availability(book.id)
        assert availability.book.available_copies == 3
        assert availability.copies_on_loan == 0


class TestConcurrentBooking:
    def test_two_reservations_on_one_borrow(self, service, admin, readers, make_book):
        book = make_book(total_copies=1)
        borrow = service.create_borrow(readers[0], book.id, TODAY + timedelta(days=3))

        results = run_concurrently(
            lambda: service.reserve_booking(readers[1], borrow.id),
            lambda: service.reserve_booking(readers[2], borrow.id),
        )

        failures = [r for r in results if isinstance(r, LendingError)]
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadyReservedError)

        assert service.list_bookings(admin, book_id=book.id).total == 1

    def test_return_racing_reservation(self, service, readers, make_book):
        book = make_book(total_copies=1)
        borrow = service.create_borrow(readers[0], book.id, TODAY + timedelta(days=3))

        returned, reserved = run_concurrently(
            lambda: service.return_borrow(readers[0], borrow.id),
            lambda: service.reserve_booking(readers[1], borrow.id),
        )

        assert not isinstance(returned, LendingError)
        available = service.book_availability(book.id).book.available_copies
        if isinstance(reserved, LendingError):
            # The return won: nothing was waiting, the copy is back on the shelf
            assert isinstance(reserved, InvalidStateError)
            assert returned.copy_released
            assert available == 1
        else:
            # The reservation won: the copy is held for it
            assert returned.booking.id == reserved.id
            assert returned.booking.status == BookingStatus.AVAILABLE
            assert available == 0
