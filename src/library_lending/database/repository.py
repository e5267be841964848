"""
Repository pattern implementation for the lending service.

Repositories are the only code that touches SQLAlchemy rows. They take a
session owned by the caller, never commit on their own, and hand back plain
pydantic records, so the lending core can be exercised without knowing how
anything is stored.

Writes that guard an invariant are expressed as single conditional statements
(``UPDATE ... WHERE <guard>``) whose row count tells the caller whether the
guard held at the moment of the write.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from ..errors import InvalidRequestError, NotFoundError
from .schema import Base
from .session import safe_query

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise InvalidRequestError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise InvalidRequestError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list operations."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing the common read operations.

    Subclasses name their table and record type and add the domain-specific
    writes.
    """

    #: Human readable name used in NotFound messages
    entity_name = "Record"

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_row(self, id: int, for_update: bool = False) -> ModelType | None:
        # Always re-read: conditional UPDATEs bypass the identity map
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: int, for_update: bool = False) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID
            for_update: Lock the row until the transaction ends

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_row(id, for_update=for_update)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def require(self, id: int, for_update: bool = False) -> ResponseSchemaType:
        """Like ``get_by_id`` but raises ``NotFoundError`` when the row is absent."""
        record = self.get_by_id(id, for_update=for_update)
        if record is None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return record

    def exists(self, id: int) -> bool:
        query = (
            select(func.count()).select_from(self.model_class).where(self.model_class.id == id)
        )
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return count > 0

    def _add(self, db_obj: ModelType) -> ResponseSchemaType:
        """Insert a row and return it with its generated id."""
        self.session.add(db_obj)
        self.session.flush()
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def _list(
        self,
        *conditions: Any,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        List rows matching ``conditions`` with optional pagination and sorting.

        Returns a plain list without pagination, a ``PaginatedResponse`` with it.
        """
        query = select(self.model_class).where(*conditions)

        order_field = getattr(self.model_class, order_by or "id")
        query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        if pagination is None:
            results = safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                f"Failed to list {self.model_class.__name__}",
            )
            return [self._to_response_model(item) for item in results]

        pagination.validate_params()

        count_query = select(func.count()).select_from(self.model_class).where(*conditions)
        total = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to get total count",
            )
            or 0
        )

        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get paginated results",
        )

        return PaginatedResponse(
            items=[self._to_response_model(item) for item in results],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )
