"""
Tests for the booking tools.

Covers the full booking path through the tool surface: reserve against a
borrow, return, collect, plus cancellation and the expiry sweep.
"""

from datetime import date, timedelta

import pytest

from library_lending.tools.bookings import (
    cancel_booking_handler,
    collect_booking_handler,
    expire_bookings_handler,
    get_booking_handler,
    list_bookings_handler,
    reserve_booking_handler,
)
from library_lending.tools.borrowing import return_borrow_handler

TODAY = date(2025, 8, 1)


@pytest.fixture
def lent_borrow(service, alice, make_book):
    """Alice holds the only copy of a book, due back in three days."""
    book = make_book(total_copies=1)
    return service.create_borrow(alice, book.id, TODAY + timedelta(days=3))


class TestReserveBookingTool:
    """Test the booking_reserve tool."""

    async def test_successful_reservation(self, service, bob, lent_borrow):
        result = await reserve_booking_handler(
            {"actor_id": bob.user_id, "borrow_id": lent_borrow.id}
        )

        assert "isError" not in result
        assert "Expected back August 04, 2025" in result["content"][0]["text"]
        booking = result["data"]["booking"]
        assert booking["status"] == "in_progress"
        assert booking["borrow_id"] == lent_borrow.id
        assert booking["booking_date"] == "2025-08-04"
        assert booking["expiry_date"] == "2025-08-11"

    async def test_double_reservation(self, service, bob, carol, lent_borrow):
        await reserve_booking_handler({"actor_id": bob.user_id, "borrow_id": lent_borrow.id})

        result = await reserve_booking_handler(
            {"actor_id": carol.user_id, "borrow_id": lent_borrow.id}
        )

        assert result["isError"] is True
        assert result["error"]["code"] == "conflict"
        assert "already has a booking in progress" in result["error"]["message"]

    async def test_outside_booking_window(self, service, alice, bob, make_book):
        book = make_book()
        borrow = service.create_borrow(alice, book.id)

        result = await reserve_booking_handler({"actor_id": bob.user_id, "borrow_id": borrow.id})

        assert result["error"]["code"] == "duration_exceeded"


class TestBookingFlowTools:
    async def test_reserve_return_collect(self, service, alice, bob, lent_borrow):
        reserved = await reserve_booking_handler(
            {"actor_id": bob.user_id, "borrow_id": lent_borrow.id}
        )
        booking_id = reserved["data"]["booking"]["id"]

        await return_borrow_handler({"actor_id": alice.user_id, "borrow_id": lent_borrow.id})
        result = await collect_booking_handler({"actor_id": bob.user_id, "booking_id": booking_id})

        assert result["data"]["booking"]["status"] == "collected"
        assert result["data"]["borrow"]["user_id"] == bob.user_id
        assert result["data"]["borrow"]["status"] == "borrowed"
        assert f"Booking {booking_id} collected" in result["content"][0]["text"]

        availability = service.book_availability(lent_borrow.book_id)
        assert availability.book.available_copies == 0

    async def test_collect_not_yet_returned(self, service, bob, lent_borrow):
        booking = service.reserve_booking(bob, lent_borrow.id)

        result = await collect_booking_handler({"actor_id": bob.user_id, "booking_id": booking.id})

        assert result["error"]["code"] == "invalid_state"

    async def test_cancel(self, service, bob, lent_borrow):
        booking = service.reserve_booking(bob, lent_borrow.id)

        result = await cancel_booking_handler({"actor_id": bob.user_id, "booking_id": booking.id})

        assert result["content"][0]["text"] == f"Booking {booking.id} cancelled"
        assert result["data"]["booking"]["status"] == "cancelled"

    async def test_expire_sweep(self, service, admin, alice, bob, lent_borrow, clock):
        booking = service.reserve_booking(bob, lent_borrow.id)
        service.return_borrow(alice, lent_borrow.id)
        clock.advance(30)

        result = await expire_bookings_handler({"actor_id": admin.user_id, "actor_role": "admin"})

        assert result["data"]["released_copies"] == 1
        assert [b["id"] for b in result["data"]["expired"]] == [booking.id]
        assert service.book_availability(lent_borrow.book_id).book.available_copies == 1

    async def test_expire_sweep_requires_admin(self, service, bob):
        result = await expire_bookings_handler({"actor_id": bob.user_id})

        assert result["error"]["code"] == "unauthorized"


class TestBookingReadTools:
    async def test_get_booking(self, service, bob, lent_borrow):
        booking = service.reserve_booking(bob, lent_borrow.id)

        result = await get_booking_handler({"actor_id": bob.user_id, "booking_id": booking.id})

        assert result["content"][0]["text"] == f"Booking {booking.id}: in_progress"

    async def test_get_booking_of_another_user(self, service, alice, bob, lent_borrow):
        booking = service.reserve_booking(bob, lent_borrow.id)

        result = await get_booking_handler({"actor_id": alice.user_id, "booking_id": booking.id})

        assert result["error"]["code"] == "unauthorized"

    async def test_list_bookings(self, service, bob, lent_borrow):
        service.reserve_booking(bob, lent_borrow.id)

        result = await list_bookings_handler({"actor_id": bob.user_id})

        assert result["data"]["total"] == 1
        assert result["data"]["bookings"][0]["user_id"] == bob.user_id
