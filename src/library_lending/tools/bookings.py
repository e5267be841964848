"""Booking Tools - Waiting List Management

Reserves copies that are out on loan and hands them over once returned.

Tools:
- booking_reserve: Book the copy held by a borrow (first come, first served)
- booking_collect: Pick up a copy held for the caller
- booking_cancel: Withdraw a booking that is still waiting
- booking_expire_sweep: Expire uncollected bookings and reshelve their copies (admins)
- booking_get / booking_list: Reads scoped to the caller
"""

from typing import Any

from pydantic import Field

from ..database.repository import PaginationParams
from ..lending.service import get_lending_service
from ..models.booking import Booking
from .common import ActorInput, PageInput, format_success_response, run_tool


def _booking_data(booking: Booking) -> dict[str, Any]:
    return booking.model_dump(mode="json", exclude={"created_at", "updated_at"})


class ReserveBookingInput(ActorInput):
    """Input schema for booking a borrowed copy."""

    borrow_id: int = Field(
        ...,
        description="Borrow whose copy should be held for the caller when it comes back",
        ge=1,
        examples=[7],
    )


class BookingIdInput(ActorInput):
    """Input schema for tools acting on one booking."""

    booking_id: int = Field(..., description="Booking id", ge=1, examples=[1])


class ListBookingsInput(PageInput):
    """Input schema for listing open bookings."""

    book_id: int | None = Field(default=None, description="Only bookings of this book", ge=1)


async def reserve_booking_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Book the copy held by a borrow.

    Only one booking may wait on a borrow; a second requester gets a
    conflict. The borrow must be due back within the booking window.
    """

    def action(params: ReserveBookingInput) -> dict[str, Any]:
        booking = get_lending_service().reserve_booking(params.actor, params.borrow_id)
        message = (
            f"Booked book {booking.book_id} (booking {booking.id}). Expected back "
            f"{booking.booking_date.strftime('%B %d, %Y')}"
        )
        return format_success_response(message, booking=_booking_data(booking))

    return run_tool("booking_reserve", ReserveBookingInput, arguments, action)


async def collect_booking_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Collect a copy held for the caller; opens a new borrow for it."""

    def action(params: BookingIdInput) -> dict[str, Any]:
        outcome = get_lending_service().collect_booking(params.actor, params.booking_id)
        message = (
            f"Booking {outcome.booking.id} collected. Borrow {outcome.borrow.id} is due "
            f"{outcome.borrow.return_date.strftime('%B %d, %Y')}"
        )
        return format_success_response(
            message,
            booking=_booking_data(outcome.booking),
            borrow=outcome.borrow.model_dump(mode="json", exclude={"created_at", "updated_at"}),
        )

    return run_tool("booking_collect", BookingIdInput, arguments, action)


async def cancel_booking_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Cancel a booking that is still waiting (its owner or an admin)."""

    def action(params: BookingIdInput) -> dict[str, Any]:
        booking = get_lending_service().cancel_booking(params.actor, params.booking_id)
        return format_success_response(
            f"Booking {booking.id} cancelled", booking=_booking_data(booking)
        )

    return run_tool("booking_cancel", BookingIdInput, arguments, action)


async def expire_bookings_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Run the booking expiry sweep (admins only)."""

    def action(params: ActorInput) -> dict[str, Any]:
        result = get_lending_service().expire_bookings(params.actor)
        return format_success_response(
            f"Expired {len(result.expired)} bookings; "
            f"{result.released_copies} copies back on the shelf",
            expired=[_booking_data(b) for b in result.expired],
            released_copies=result.released_copies,
        )

    return run_tool("booking_expire_sweep", ActorInput, arguments, action)


async def get_booking_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Get one booking (its owner or an admin)."""

    def action(params: BookingIdInput) -> dict[str, Any]:
        booking = get_lending_service().get_booking(params.actor, params.booking_id)
        return format_success_response(
            f"Booking {booking.id}: {booking.status}", booking=_booking_data(booking)
        )

    return run_tool("booking_get", BookingIdInput, arguments, action)


async def list_bookings_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """List open bookings: all of them for admins, the caller's own otherwise."""

    def action(params: ListBookingsInput) -> dict[str, Any]:
        page = get_lending_service().list_bookings(
            params.actor,
            book_id=params.book_id,
            pagination=PaginationParams(page=params.page, page_size=params.page_size),
        )
        return format_success_response(
            f"Found {page.total} open bookings",
            bookings=[_booking_data(b) for b in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
            has_next=page.has_next,
        )

    return run_tool("booking_list", ListBookingsInput, arguments, action)


booking_reserve = {
    "name": "booking_reserve",
    "description": (
        "Book the copy currently held by a borrow so it is set aside for the caller "
        "when returned. First come, first served: only one booking may wait on a borrow."
    ),
    "inputSchema": ReserveBookingInput.model_json_schema(),
    "handler": reserve_booking_handler,
}

booking_collect = {
    "name": "booking_collect",
    "description": (
        "Collect a copy held for the caller. Only available bookings can be collected, "
        "and only by the user who made them. Opens a new borrow for the copy."
    ),
    "inputSchema": BookingIdInput.model_json_schema(),
    "handler": collect_booking_handler,
}

booking_cancel = {
    "name": "booking_cancel",
    "description": "Cancel a booking that is still waiting for its copy.",
    "inputSchema": BookingIdInput.model_json_schema(),
    "handler": cancel_booking_handler,
}

booking_expire_sweep = {
    "name": "booking_expire_sweep",
    "description": (
        "Expire available bookings whose pickup window has closed and put their copies "
        "back on the shelf. Admins only."
    ),
    "inputSchema": ActorInput.model_json_schema(),
    "handler": expire_bookings_handler,
}

booking_get = {
    "name": "booking_get",
    "description": "Get one booking. Visible to the user who made it and to admins.",
    "inputSchema": BookingIdInput.model_json_schema(),
    "handler": get_booking_handler,
}

booking_list = {
    "name": "booking_list",
    "description": (
        "List in-progress and available bookings. Admins see everyone's, "
        "everyone else sees their own."
    ),
    "inputSchema": ListBookingsInput.model_json_schema(),
    "handler": list_bookings_handler,
}

booking_tools = [
    booking_reserve,
    booking_collect,
    booking_cancel,
    booking_expire_sweep,
    booking_get,
    booking_list,
]
