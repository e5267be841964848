"""User repository: the account rows lending references and locks."""

from pydantic import BaseModel, EmailStr, Field

from ..models.actor import Role
from ..models.user import User as UserModel
from .repository import BaseRepository
from .schema import User as UserDB


class UserCreateSchema(BaseModel):
    """Schema for registering a user."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    role: Role = Role.REGULAR


class UserRepository(BaseRepository[UserDB, UserModel]):
    """
    Repository for user rows.

    ``lock`` is taken before counting a user's borrows or bookings so two
    requests from the same user cannot both pass a ceiling check.
    """

    entity_name = "User"

    @property
    def model_class(self):
        return UserDB

    @property
    def response_schema(self):
        return UserModel

    def create(self, data: UserCreateSchema) -> UserModel:
        return self._add(UserDB(name=data.name, email=data.email, role=data.role))

    def lock(self, user_id: int) -> UserModel:
        """
        Lock the user row until the transaction ends.

        Raises:
            NotFoundError: No such user
        """
        return self.require(user_id, for_update=True)
