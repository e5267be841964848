"""
The authenticated caller of a lending operation.

Identity is established upstream; every core operation receives the actor
explicitly instead of reading a "current user" from ambient state.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    ADMIN = "admin"
    REGULAR = "regular"


class Actor(BaseModel):
    """Authenticated user id and role supplied by the identity collaborator."""

    user_id: int = Field(..., ge=1)
    role: Role = Role.REGULAR

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, user_id: int) -> bool:
        return self.user_id == user_id

    def can_access(self, user_id: int) -> bool:
        """Owners and admins may see a record."""
        return self.is_admin or self.owns(user_id)

    model_config = ConfigDict(frozen=True, use_enum_values=True)
