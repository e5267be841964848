"""
User model for the lending service.

Accounts belong to the identity collaborator; lending keeps the row so that
borrows and bookings can reference it and so a user's ceiling checks can lock
it for the length of a transaction.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .actor import Actor, Role


class User(BaseModel):
    """A library account as seen by lending."""

    id: int = Field(..., description="User identifier", ge=1)

    name: str = Field(
        ...,
        description="Full name of the user",
        min_length=2,
        max_length=200,
        examples=["Jane Doe", "Maria Garcia"],
    )

    email: EmailStr = Field(
        ...,
        description="Contact address",
        examples=["jane.doe@example.com"],
    )

    role: Role = Field(default=Role.REGULAR, description="Admin or regular user")

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def as_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role)

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
