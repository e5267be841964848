"""
Book repository: title records and the two copy counters.

The counters are only ever changed with single conditional ``UPDATE``
statements. Each one re-checks its guard inside the database, so two workers
racing for the last copy cannot both see ``available_copies > 0`` and both
decrement it; exactly one statement matches a row.
"""

from pydantic import BaseModel, Field
from sqlalchemy import update

from ..models.book import Book as BookModel
from .repository import BaseRepository
from .schema import Book as BookDB


class BookCreateSchema(BaseModel):
    """Schema for registering a new book - every copy starts on the shelf."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=200)
    category_id: int | None = None
    total_copies: int = Field(..., ge=0)


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for book rows and their copy counters."""

    entity_name = "Book"

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def create(self, data: BookCreateSchema) -> BookModel:
        """Insert a book with ``available_copies == total_copies``."""
        book = BookDB(
            title=data.title,
            author=data.author,
            category_id=data.category_id,
            total_copies=data.total_copies,
            available_copies=data.total_copies,
        )
        return self._add(book)

    def _conditional_update(self, book_id: int, guard, **values) -> bool:
        statement = (
            update(BookDB)
            .where(BookDB.id == book_id, guard)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        return result.rowcount == 1

    def try_acquire(self, book_id: int) -> bool:
        """Take one copy off the shelf. False if none was available."""
        return self._conditional_update(
            book_id,
            BookDB.available_copies > 0,
            available_copies=BookDB.available_copies - 1,
        )

    def try_release(self, book_id: int) -> bool:
        """Put one copy back. False if the shelf was already full."""
        return self._conditional_update(
            book_id,
            BookDB.available_copies < BookDB.total_copies,
            available_copies=BookDB.available_copies + 1,
        )

    def try_resize(self, book_id: int, new_total: int) -> bool:
        """
        Set ``total_copies`` and shift ``available_copies`` by the same delta.

        False if the shift would drive ``available_copies`` negative, i.e. more
        copies are on loan than the new capacity.
        """
        shifted_available = BookDB.available_copies + (new_total - BookDB.total_copies)
        return self._conditional_update(
            book_id,
            shifted_available >= 0,
            total_copies=new_total,
            available_copies=shifted_available,
        )
