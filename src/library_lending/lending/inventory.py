"""
Inventory ledger: the single source of truth for free copies.

All three counter mutations delegate to conditional updates in the book
repository. A ``False`` from the repository means either the book does not
exist or its guard failed; the ledger tells the two apart and raises the
matching error.
"""

import logging

from ..database.book_repository import BookCreateSchema, BookRepository
from ..errors import (
    InvalidRequestError,
    InvariantViolationError,
    NotFoundError,
    OutOfStockError,
)
from ..models.book import Book
from ..models.outcomes import BookAvailability

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Owns ``total_copies`` and ``available_copies`` for every book."""

    def __init__(self, books: BookRepository):
        self.books = books

    def _ensure_exists(self, book_id: int) -> None:
        if not self.books.exists(book_id):
            raise NotFoundError(f"Book {book_id} not found")

    def register(self, data: BookCreateSchema) -> Book:
        """Add a title with every copy on the shelf."""
        book = self.books.create(data)
        logger.info("Registered book %s with %d copies", book.id, book.total_copies)
        return book

    def acquire_copy(self, book_id: int) -> None:
        """
        Take one copy off the shelf.

        Raises:
            NotFoundError: No such book
            OutOfStockError: Every copy is out
        """
        if self.books.try_acquire(book_id):
            return
        self._ensure_exists(book_id)
        raise OutOfStockError(f"No copies of book {book_id} are available")

    def release_copy(self, book_id: int) -> None:
        """
        Put one copy back on the shelf.

        Raises:
            NotFoundError: No such book
            InvariantViolationError: The shelf already holds every copy
        """
        if self.books.try_release(book_id):
            return
        self._ensure_exists(book_id)
        logger.error("Release would exceed total copies for book %s", book_id)
        raise InvariantViolationError(
            f"Releasing a copy of book {book_id} would exceed its total copies"
        )

    def resize(self, book_id: int, new_total: int) -> Book:
        """
        Change a book's capacity, keeping the number of copies on loan.

        Raises:
            InvalidRequestError: ``new_total`` is negative
            NotFoundError: No such book
            InvariantViolationError: More copies are on loan than ``new_total``
        """
        if new_total < 0:
            raise InvalidRequestError("Total copies cannot be negative")
        if not self.books.try_resize(book_id, new_total):
            self._ensure_exists(book_id)
            logger.error("Resize of book %s to %d would drive availability negative",
                         book_id, new_total)
            raise InvariantViolationError(
                f"Cannot resize book {book_id} to {new_total} copies - "
                "more copies than that are on loan"
            )
        book = self.books.require(book_id)
        logger.info("Resized book %s to %d copies (%d available)",
                    book_id, book.total_copies, book.available_copies)
        return book

    def availability(self, book_id: int) -> BookAvailability:
        book = self.books.require(book_id)
        return BookAvailability(
            book=book,
            is_available=book.is_available,
            copies_on_loan=book.copies_on_loan,
        )
