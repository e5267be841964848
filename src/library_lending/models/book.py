"""
Book model for the lending service.

A book is a title record plus the two copy counters the inventory ledger owns:
``total_copies`` (capacity) and ``available_copies`` (copies on the shelf).
Everything else on the row (category, rating aggregates) belongs to the
catalog and is carried here only so records serialize completely.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Book(BaseModel):
    """Represents a book title and its copy counters."""

    id: int = Field(..., description="Book identifier", ge=1)

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    author: str = Field(
        ...,
        description="Author name as printed on the cover",
        min_length=1,
        max_length=200,
    )

    category_id: int | None = Field(
        None,
        description="Catalog category reference",
    )

    total_copies: int = Field(
        ...,
        description="Total number of copies owned by the library",
        ge=0,
        examples=[1, 3, 10],
    )

    available_copies: int = Field(
        ...,
        description="Number of copies currently on the shelf",
        ge=0,
        examples=[0, 1, 5],
    )

    rating_count: int = Field(default=0, ge=0)
    average_rating: float = Field(default=0.0, ge=0.0, le=5.0)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        """Check if the book has any copy on the shelf."""
        return self.available_copies > 0

    @property
    def copies_on_loan(self) -> int:
        """Copies currently out with borrowers or held for bookings."""
        return self.total_copies - self.available_copies

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 10,
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "category_id": 2,
                "total_copies": 3,
                "available_copies": 2,
            }
        },
    )
