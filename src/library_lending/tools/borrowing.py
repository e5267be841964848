"""Borrowing Tools - Loan Lifecycle Management

Moves borrows through pending -> borrowed -> returned/rejected and reads them
back. Every call runs as one atomic lending operation.

Tools:
- borrow_create: Claim a copy of a book
- borrow_extend: Push a borrow's due date out
- borrow_return: Return a copy (hands it to a waiting booking if there is one)
- borrow_approve / borrow_reject: Admin decision on a pending borrow
- borrow_get / borrow_list / borrow_list_overdue: Reads scoped to the caller
"""

import logging
from datetime import date
from typing import Any

from pydantic import Field

from ..database.repository import PaginatedResponse, PaginationParams
from ..lending.service import get_lending_service
from ..models.borrow import Borrow
from .common import ActorInput, PageInput, format_success_response, run_tool

logger = logging.getLogger(__name__)


def _borrow_data(borrow: Borrow) -> dict[str, Any]:
    return borrow.model_dump(mode="json", exclude={"created_at", "updated_at"})


def _page_data(page: PaginatedResponse[Borrow]) -> dict[str, Any]:
    return {
        "borrows": [_borrow_data(b) for b in page.items],
        "total": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "total_pages": page.total_pages,
        "has_next": page.has_next,
    }


class CreateBorrowInput(ActorInput):
    """Input schema for borrowing a book."""

    book_id: int = Field(..., description="Book to borrow", ge=1, examples=[10])

    return_date: date | None = Field(
        default=None,
        description=(
            "Requested due date. If not provided, the longest duration the "
            "lending settings allow is used"
        ),
        examples=["2025-08-30"],
    )


class BorrowIdInput(ActorInput):
    """Input schema for tools acting on one borrow."""

    borrow_id: int = Field(..., description="Borrow record id", ge=1, examples=[7])


class ExtendBorrowInput(BorrowIdInput):
    """Input schema for extending a borrow."""

    return_date: date = Field(
        ...,
        description="New due date, at most the maximum borrow duration after the borrow date",
        examples=["2025-09-05"],
    )


class ListBorrowsInput(PageInput):
    """Input schema for listing active borrows."""

    book_id: int | None = Field(default=None, description="Only borrows of this book", ge=1)
    user_id: int | None = Field(
        default=None, description="Only this user's borrows (admins only)", ge=1
    )


async def create_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Borrow a copy of a book.

    Checks the caller's borrow ceiling and the requested due date, then takes
    one copy off the shelf. Fails with out_of_stock when every copy is out.
    """

    def action(params: CreateBorrowInput) -> dict[str, Any]:
        borrow = get_lending_service().create_borrow(
            params.actor, params.book_id, params.return_date
        )
        message = (
            f"Borrowed book {borrow.book_id} (borrow {borrow.id}). "
            f"Due back {borrow.return_date.strftime('%B %d, %Y')}"
        )
        if borrow.status == "pending":
            message += " - waiting for admin approval"
        return format_success_response(message, borrow=_borrow_data(borrow))

    return run_tool("borrow_create", CreateBorrowInput, arguments, action)


async def extend_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Extend a borrow's due date.

    Refused when someone has booked the copy, when the extension limit is
    reached, or when the new date is beyond the maximum borrow duration.
    """

    def action(params: ExtendBorrowInput) -> dict[str, Any]:
        borrow = get_lending_service().extend_borrow(
            params.actor, params.borrow_id, params.return_date
        )
        message = (
            f"Borrow {borrow.id} extended to {borrow.return_date.strftime('%B %d, %Y')} "
            f"(extension {borrow.extension_count})"
        )
        return format_success_response(message, borrow=_borrow_data(borrow))

    return run_tool("borrow_extend", ExtendBorrowInput, arguments, action)


async def return_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Return a borrowed copy.

    If a booking was waiting on this borrow, the copy is held for it;
    otherwise it goes back on the shelf.
    """

    def action(params: BorrowIdInput) -> dict[str, Any]:
        outcome = get_lending_service().return_borrow(params.actor, params.borrow_id)
        if outcome.booking is not None:
            message = (
                f"Borrow {outcome.borrow.id} returned. The copy is held for booking "
                f"{outcome.booking.id} until {outcome.booking.expiry_date.isoformat()}"
            )
            booking = outcome.booking.model_dump(
                mode="json", exclude={"created_at", "updated_at"}
            )
        else:
            message = f"Borrow {outcome.borrow.id} returned. The copy is back on the shelf"
            booking = None
        return format_success_response(
            message,
            borrow=_borrow_data(outcome.borrow),
            booking=booking,
            copy_released=outcome.copy_released,
        )

    return run_tool("borrow_return", BorrowIdInput, arguments, action)


async def approve_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Approve a pending borrow (admins only)."""

    def action(params: BorrowIdInput) -> dict[str, Any]:
        borrow = get_lending_service().approve_borrow(params.actor, params.borrow_id)
        return format_success_response(
            f"Borrow {borrow.id} approved", borrow=_borrow_data(borrow)
        )

    return run_tool("borrow_approve", BorrowIdInput, arguments, action)


async def reject_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Reject a pending borrow and put its copy back (admins only)."""

    def action(params: BorrowIdInput) -> dict[str, Any]:
        borrow = get_lending_service().reject_borrow(params.actor, params.borrow_id)
        return format_success_response(
            f"Borrow {borrow.id} rejected; the copy is back on the shelf",
            borrow=_borrow_data(borrow),
        )

    return run_tool("borrow_reject", BorrowIdInput, arguments, action)


async def get_borrow_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Get one borrow (its owner or an admin)."""

    def action(params: BorrowIdInput) -> dict[str, Any]:
        borrow = get_lending_service().get_borrow(params.actor, params.borrow_id)
        message = f"Borrow {borrow.id}: {borrow.status}"
        if borrow.is_overdue():
            message += f", {borrow.days_overdue()} days overdue"
        return format_success_response(
            message, borrow=_borrow_data(borrow), is_overdue=borrow.is_overdue()
        )

    return run_tool("borrow_get", BorrowIdInput, arguments, action)


async def list_borrows_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """List active borrows: all of them for admins, the caller's own otherwise."""

    def action(params: ListBorrowsInput) -> dict[str, Any]:
        page = get_lending_service().list_borrows(
            params.actor,
            book_id=params.book_id,
            user_id=params.user_id,
            pagination=PaginationParams(page=params.page, page_size=params.page_size),
        )
        return format_success_response(
            f"Found {page.total} active borrows", **_page_data(page)
        )

    return run_tool("borrow_list", ListBorrowsInput, arguments, action)


async def list_overdue_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """List borrows past their due date (admins only)."""

    def action(params: PageInput) -> dict[str, Any]:
        page = get_lending_service().list_overdue(
            params.actor,
            pagination=PaginationParams(page=params.page, page_size=params.page_size),
        )
        return format_success_response(
            f"Found {page.total} overdue borrows", **_page_data(page)
        )

    return run_tool("borrow_list_overdue", PageInput, arguments, action)


borrow_create = {
    "name": "borrow_create",
    "description": (
        "Borrow a copy of a book. Checks the caller's active-borrow limit and the "
        "requested due date against the lending settings, then takes one copy off "
        "the shelf. New borrows wait for admin approval when that workflow is enabled."
    ),
    "inputSchema": CreateBorrowInput.model_json_schema(),
    "handler": create_borrow_handler,
}

borrow_extend = {
    "name": "borrow_extend",
    "description": (
        "Extend a borrow's due date. Only the borrower may extend, only while nobody "
        "has booked the copy, and only up to the extension limit and maximum duration."
    ),
    "inputSchema": ExtendBorrowInput.model_json_schema(),
    "handler": extend_borrow_handler,
}

borrow_return = {
    "name": "borrow_return",
    "description": (
        "Return a borrowed copy. If a booking is waiting on this borrow the copy is "
        "held for it, otherwise it becomes available to everyone."
    ),
    "inputSchema": BorrowIdInput.model_json_schema(),
    "handler": return_borrow_handler,
}

borrow_approve = {
    "name": "borrow_approve",
    "description": "Approve a pending borrow. Admins only.",
    "inputSchema": BorrowIdInput.model_json_schema(),
    "handler": approve_borrow_handler,
}

borrow_reject = {
    "name": "borrow_reject",
    "description": "Reject a pending borrow and release its copy. Admins only.",
    "inputSchema": BorrowIdInput.model_json_schema(),
    "handler": reject_borrow_handler,
}

borrow_get = {
    "name": "borrow_get",
    "description": "Get one borrow record. Visible to its borrower and to admins.",
    "inputSchema": BorrowIdInput.model_json_schema(),
    "handler": get_borrow_handler,
}

borrow_list = {
    "name": "borrow_list",
    "description": (
        "List pending and borrowed loans. Admins see every user's (optionally one "
        "user's), everyone else sees their own. Can be narrowed to one book."
    ),
    "inputSchema": ListBorrowsInput.model_json_schema(),
    "handler": list_borrows_handler,
}

borrow_list_overdue = {
    "name": "borrow_list_overdue",
    "description": "List borrowed copies whose due date has passed. Admins only.",
    "inputSchema": PageInput.model_json_schema(),
    "handler": list_overdue_handler,
}

borrowing_tools = [
    borrow_create,
    borrow_extend,
    borrow_return,
    borrow_approve,
    borrow_reject,
    borrow_get,
    borrow_list,
    borrow_list_overdue,
]
