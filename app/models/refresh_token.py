from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from app.models.base import CreatedAtModel, IDModel, ensure_utc, utc_datetime_type, utc_now


class RefreshToken(IDModel, CreatedAtModel, SQLModel, table=True):
    """One issued refresh token.

    Records descended from a single login share ``token_family``. Rotation
    links a parent to its child through ``replaced_by_token_id`` and
    ``parent_token_id``. Revocation is one-way and records are never deleted.
    """

    __tablename__ = 'refresh_tokens'

    token: str = Field(max_length=255, index=True, unique=True)
    user_id: str = Field(index=True)
    expires_at: datetime = Field(sa_type=utc_datetime_type(), sa_column_kwargs={"nullable": False})
    is_revoked: bool = Field(default=False, nullable=False)
    revoked_at: Optional[datetime] = Field(default=None, sa_type=utc_datetime_type())
    reason_revoked: Optional[str] = Field(default=None, max_length=255)
    token_family: str = Field(index=True)
    parent_token_id: Optional[str] = Field(default=None)
    replaced_by_token_id: Optional[str] = Field(default=None)

    def is_expired_at(self, now: datetime) -> bool:
        return now >= ensure_utc(self.expires_at)

    @property
    def is_expired(self) -> bool:
        return self.is_expired_at(utc_now())
