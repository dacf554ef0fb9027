import base64
import secrets
from datetime import timedelta
from typing import Any, Optional, Protocol
from uuid import uuid4
from jose import JWTError, jwt
from app.core.config import settings
from app.models.base import utc_now
from app.models.user import User


class AccessTokenIssuer:
    """Signs short-lived HS256 access tokens carrying the user's roles."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        lifetime_seconds: Optional[int] = None,
    ) -> None:
        self.secret_key = secret_key or settings.SECRET_KEY
        self.algorithm = algorithm or settings.ALGORITHM
        self.lifetime_seconds = lifetime_seconds or settings.ACCESS_TOKEN_EXPIRE_SECONDS

    @property
    def expires_in(self) -> int:
        return self.lifetime_seconds

    def issue(self, user: User, roles: list[str]) -> str:
        now = utc_now()
        payload = {
            'sub': user.id,
            'email': user.email,
            'jti': str(uuid4()),
            'roles': list(roles),
            'type': 'access',
            'iat': now,
            'exp': now + timedelta(seconds=self.lifetime_seconds),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Return the claims of a valid access token, raising ``JWTError`` otherwise."""
        payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        if payload.get('type') != 'access':
            raise JWTError('Invalid token type')
        return payload


class RefreshTokenGenerator(Protocol):
    def generate(self) -> str:
        ...


class SecureRefreshTokenGenerator:
    def __init__(self, num_bytes: Optional[int] = None) -> None:
        self.num_bytes = num_bytes or settings.REFRESH_TOKEN_BYTES

    def generate(self) -> str:
        return base64.b64encode(secrets.token_bytes(self.num_bytes)).decode('ascii')


def get_access_token_issuer() -> AccessTokenIssuer:
    return AccessTokenIssuer()


def get_refresh_token_generator() -> RefreshTokenGenerator:
    return SecureRefreshTokenGenerator()
