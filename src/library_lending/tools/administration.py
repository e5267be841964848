"""Administration Tools - Inventory and Lending Settings

Admin-only writes to the copy counters and the lending ceilings.

Tools:
- book_register: Add a title with all its copies on the shelf
- book_resize: Change how many copies of a title the library owns
- policy_update: Change the lending ceilings
"""

from typing import Any

from pydantic import Field

from ..database.book_repository import BookCreateSchema
from ..lending.service import get_lending_service
from ..models.book import Book
from ..models.settings import LendingPolicyUpdate
from .common import ActorInput, format_success_response, run_tool


def _book_data(book: Book) -> dict[str, Any]:
    return book.model_dump(mode="json", exclude={"created_at", "updated_at"})


class RegisterBookInput(ActorInput):
    """Input schema for registering a book."""

    title: str = Field(..., min_length=1, max_length=500, examples=["The Great Gatsby"])
    author: str = Field(..., min_length=1, max_length=200, examples=["F. Scott Fitzgerald"])
    category_id: int | None = Field(default=None, description="Catalog category reference")
    total_copies: int = Field(..., description="Copies the library owns", ge=0, examples=[3])


class ResizeBookInput(ActorInput):
    """Input schema for changing a book's copy count."""

    book_id: int = Field(..., ge=1, examples=[10])
    total_copies: int = Field(
        ...,
        description=(
            "New number of copies. Copies on loan are preserved, so this cannot be "
            "lower than the number currently out"
        ),
        examples=[5],
    )


class UpdatePolicyInput(ActorInput, LendingPolicyUpdate):
    """Input schema for changing the lending ceilings; unset fields are left alone."""


async def register_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Register a book with every copy available."""

    def action(params: RegisterBookInput) -> dict[str, Any]:
        book = get_lending_service().register_book(
            params.actor,
            BookCreateSchema(
                title=params.title,
                author=params.author,
                category_id=params.category_id,
                total_copies=params.total_copies,
            ),
        )
        return format_success_response(
            f"Registered '{book.title}' (book {book.id}) with {book.total_copies} copies",
            book=_book_data(book),
        )

    return run_tool("book_register", RegisterBookInput, arguments, action)


async def resize_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Change a book's total copies, keeping the copies on loan."""

    def action(params: ResizeBookInput) -> dict[str, Any]:
        book = get_lending_service().resize_book(
            params.actor, params.book_id, params.total_copies
        )
        return format_success_response(
            f"Book {book.id} now has {book.total_copies} copies "
            f"({book.available_copies} available)",
            book=_book_data(book),
        )

    return run_tool("book_resize", ResizeBookInput, arguments, action)


async def update_policy_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Change one or more lending ceilings."""

    def action(params: UpdatePolicyInput) -> dict[str, Any]:
        changes = LendingPolicyUpdate.model_validate(
            params.model_dump(include=set(LendingPolicyUpdate.model_fields), exclude_unset=True)
        )
        policy = get_lending_service().update_policy(params.actor, changes)
        return format_success_response("Lending settings updated", settings=policy.model_dump())

    return run_tool("policy_update", UpdatePolicyInput, arguments, action)


book_register = {
    "name": "book_register",
    "description": "Register a book; every copy starts on the shelf. Admins only.",
    "inputSchema": RegisterBookInput.model_json_schema(),
    "handler": register_book_handler,
}

book_resize = {
    "name": "book_resize",
    "description": (
        "Change how many copies of a book the library owns. Available copies move by "
        "the same amount, and shrinking below the copies on loan is refused. Admins only."
    ),
    "inputSchema": ResizeBookInput.model_json_schema(),
    "handler": resize_book_handler,
}

policy_update = {
    "name": "policy_update",
    "description": (
        "Change the lending ceilings: max_borrow_duration, max_borrow_limit, "
        "max_extension_limit, max_booking_duration, max_booking_limit. Admins only."
    ),
    "inputSchema": UpdatePolicyInput.model_json_schema(),
    "handler": update_policy_handler,
}

administration_tools = [
    book_register,
    book_resize,
    policy_update,
]
