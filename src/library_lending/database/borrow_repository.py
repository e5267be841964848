"""
Borrow repository: loan records and their compare-and-set transitions.

A transition is persisted with ``UPDATE ... WHERE id = :id AND status =
:expected``. If another transaction moved the borrow first, no row matches and
the caller gets ``InvalidStateError`` instead of silently overwriting it.
"""

from datetime import date

from pydantic import BaseModel, Field
from sqlalchemy import func, select, update

from ..errors import InvalidStateError
from ..models.borrow import ACTIVE_BORROW_STATUSES, BorrowStatus
from ..models.borrow import Borrow as BorrowModel
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Borrow as BorrowDB
from .session import safe_query


class BorrowCreateSchema(BaseModel):
    """Schema for opening a borrow."""

    user_id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1)
    borrowed_at: date
    return_date: date | None = None
    status: BorrowStatus = BorrowStatus.BORROWED


class BorrowRepository(BaseRepository[BorrowDB, BorrowModel]):
    """Repository for borrow rows."""

    entity_name = "Borrow"

    @property
    def model_class(self):
        return BorrowDB

    @property
    def response_schema(self):
        return BorrowModel

    def create(self, data: BorrowCreateSchema) -> BorrowModel:
        borrow = BorrowDB(
            user_id=data.user_id,
            book_id=data.book_id,
            borrowed_at=data.borrowed_at,
            return_date=data.return_date,
            status=data.status,
            extension_count=0,
        )
        return self._add(borrow)

    def count_active(self, user_id: int) -> int:
        """Borrows holding a copy for ``user_id`` (pending or borrowed)."""
        query = (
            select(func.count())
            .select_from(BorrowDB)
            .where(BorrowDB.user_id == user_id, BorrowDB.status.in_(ACTIVE_BORROW_STATUSES))
        )
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count active borrows"
        ) or 0

    def save_transition(self, borrow: BorrowModel, expected_status: BorrowStatus) -> BorrowModel:
        """
        Persist a borrow whose state was changed in memory.

        Raises:
            InvalidStateError: The stored status is no longer ``expected_status``
        """
        statement = (
            update(BorrowDB)
            .where(BorrowDB.id == borrow.id, BorrowDB.status == expected_status)
            .values(
                status=borrow.status,
                return_date=borrow.return_date,
                returned_at=borrow.returned_at,
                extension_count=borrow.extension_count,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            raise InvalidStateError(
                f"Borrow {borrow.id} changed concurrently - expected status "
                f"'{BorrowStatus(expected_status).value}'"
            )
        return self.require(borrow.id)

    def list_active(
        self,
        user_id: int | None = None,
        book_id: int | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[BorrowModel]:
        """Pending and borrowed loans, optionally narrowed to one user or book."""
        conditions = [BorrowDB.status.in_(ACTIVE_BORROW_STATUSES)]
        if user_id is not None:
            conditions.append(BorrowDB.user_id == user_id)
        if book_id is not None:
            conditions.append(BorrowDB.book_id == book_id)
        return self._list(
            *conditions,
            pagination=pagination or PaginationParams(),
            order_by="borrowed_at",
        )

    def list_overdue(
        self, today: date, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[BorrowModel]:
        """Borrowed loans whose return date is before ``today``, oldest first."""
        return self._list(
            BorrowDB.status == BorrowStatus.BORROWED,
            BorrowDB.return_date.is_not(None),
            BorrowDB.return_date < today,
            pagination=pagination or PaginationParams(),
            order_by="return_date",
        )
