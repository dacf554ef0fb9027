from sqlmodel import Field, SQLModel
from app.models.base import IDModel, TimestampModel
from app.models.enums import UserRole, enum_column


class User(IDModel, TimestampModel, SQLModel, table=True):
    """Account that owns refresh-token families.

    ``role`` is the user's whole role set. Access tokens carry ``[role]`` and
    it is read again on every refresh, so a role change shows up on the next
    rotation.
    """

    __tablename__ = 'users'

    email: str = Field(index=True, unique=True, max_length=255)
    hashed_password: str = Field(max_length=255)
    is_active: bool = True
    role: UserRole = Field(default=UserRole.USER, sa_column=enum_column(UserRole, 'user_role'))
