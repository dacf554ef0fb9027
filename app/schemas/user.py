from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel
from app.models.enums import UserRole


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserOut(_Response):
    id: str
    email: EmailStr
    is_active: bool
    role: UserRole


class RefreshTokenOut(_Response):
    id: str
    token: str
    created_at: datetime
    expires_at: datetime
    is_expired: bool
    is_revoked: bool
    revoked_at: Optional[datetime] = None
    reason_revoked: Optional[str] = None
    token_family: str
    parent_token_id: Optional[str] = None
    replaced_by_token_id: Optional[str] = None


class UserRefreshTokensOut(_Response):
    user_id: str
    user_email: EmailStr
    tokens: list[RefreshTokenOut]
