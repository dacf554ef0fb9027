from app.models.base import CreatedAtModel, IDModel, TimestampModel
from app.models.user import User
from app.models.refresh_token import RefreshToken

__all__ = [
    'IDModel',
    'CreatedAtModel',
    'TimestampModel',
    'User',
    'RefreshToken',
]
