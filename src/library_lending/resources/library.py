"""Library Resources - Public Lending Data

Read-only views that need no caller identity.

Resources:
- library://books/{book_id}/availability - Copy counters for one book
- library://settings - The current lending ceilings
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..errors import LendingError
from ..lending.service import get_lending_service
from ..observability.decorators import trace_resource

logger = logging.getLogger(__name__)


@trace_resource("book_availability")
async def book_availability_handler(book_id: str) -> dict[str, Any]:
    """Returns how many copies of a book are on the shelf and on loan.

    Client requests library://books/{book_id}/availability before borrowing
    or booking.
    """
    try:
        logger.debug("Resource request - books/%s/availability", book_id)
        try:
            numeric_id = int(book_id)
        except ValueError as e:
            raise ResourceError(f"Invalid book id: {book_id}") from e

        availability = get_lending_service().book_availability(numeric_id)
        return {
            "book_id": availability.book.id,
            "title": availability.book.title,
            "total_copies": availability.book.total_copies,
            "available_copies": availability.book.available_copies,
            "copies_on_loan": availability.copies_on_loan,
            "is_available": availability.is_available,
        }

    except ResourceError:
        raise
    except LendingError as e:
        logger.info("books/%s/availability failed: %s", book_id, e.message)
        raise ResourceError(e.message) from e
    except Exception as e:
        logger.exception("Error in books/{book_id}/availability resource")
        raise ResourceError(f"Failed to retrieve availability: {e!s}") from e


@trace_resource("settings")
async def settings_handler() -> dict[str, Any]:
    """Returns the lending ceilings every borrow and booking is checked against."""
    try:
        return get_lending_service().get_policy().model_dump()
    except LendingError as e:
        logger.info("settings resource failed: %s", e.message)
        raise ResourceError(e.message) from e
    except Exception as e:
        logger.exception("Error in settings resource")
        raise ResourceError(f"Failed to retrieve settings: {e!s}") from e


library_resources: list[dict[str, Any]] = [
    {
        "uri_template": "library://books/{book_id}/availability",
        "name": "Book Availability",
        "description": (
            "Total, available and on-loan copy counts for one book. Use before "
            "borrowing (needs an available copy) or booking (needs a copy on loan)."
        ),
        "mime_type": "application/json",
        "handler": book_availability_handler,
    },
    {
        "uri": "library://settings",
        "name": "Lending Settings",
        "description": (
            "Current lending ceilings: maximum borrow duration and count, extensions "
            "per borrow, booking window and bookings per book."
        ),
        "mime_type": "application/json",
        "handler": settings_handler,
    },
]
