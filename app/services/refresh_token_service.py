"""Refresh-token families: issuance, rotation and reuse containment.

Every login starts a token family. Each refresh retires the presented token
and mints its successor in the same family. Presenting a token that is
already revoked means a rotated credential was replayed, so the whole family
is revoked and the caller has to log in again.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from loguru import logger
from sqlalchemy import update
from sqlmodel import Session, col, select
from app.core.config import settings
from app.core.logging import mask_token
from app.models.base import new_id, utc_now
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services.auth_service import get_user, get_user_roles
from app.services.token_issuer import AccessTokenIssuer, RefreshTokenGenerator

ROTATION_REASON = 'Rotated to new token'
REUSE_REASON = 'Token reuse detected - potential security breach'
LOGOUT_REASON = 'User-initiated logout'
LOGOUT_ALL_REASON = 'User logout all'

refresh_tokens = RefreshToken.__table__


class RejectionReason(str, Enum):
    TOKEN_NOT_FOUND = 'token_not_found'
    USER_MISSING = 'user_missing'
    TOKEN_EXPIRED = 'token_expired'
    TOKEN_REPLAYED = 'token_replayed'


class RefreshRejected(Exception):
    """A refresh was refused. ``reason`` is for logs only, never for the client."""

    def __init__(self, reason: RejectionReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


def _refresh_expiry(now: datetime) -> datetime:
    return now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def _reject(reason: RejectionReason, **context) -> RefreshRejected:
    logger.warning('auth.refresh.rejected', reason=reason.value, **context)
    return RefreshRejected(reason)


def get_refresh_token(session: Session, token: str) -> Optional[RefreshToken]:
    return session.exec(select(RefreshToken).where(RefreshToken.token == token)).first()


def list_user_refresh_tokens(session: Session, user_id: str) -> list[RefreshToken]:
    statement = (
        select(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .order_by(col(RefreshToken.created_at).desc())
    )
    return list(session.exec(statement).all())


def issue_token_family(
    session: Session,
    user: User,
    issuer: AccessTokenIssuer,
    generator: RefreshTokenGenerator,
    now: Optional[datetime] = None,
) -> TokenPair:
    """Start a new token family for a freshly authenticated user."""
    now = now or utc_now()
    refresh_token = generator.generate()
    token_family = new_id()
    session.add(
        RefreshToken(
            token=refresh_token,
            user_id=user.id,
            created_at=now,
            expires_at=_refresh_expiry(now),
            token_family=token_family,
        )
    )
    access_token = issuer.issue(user, get_user_roles(user))
    session.commit()
    logger.info('auth.token_family.issued', user_id=user.id, token_family=token_family)
    return TokenPair(access_token=access_token, refresh_token=refresh_token, expires_in=issuer.expires_in)


def revoke_token_family(
    session: Session,
    token_family: str,
    user_id: str,
    reason: str = REUSE_REASON,
    now: Optional[datetime] = None,
) -> int:
    """Revoke every live token of one family. Already revoked tokens keep their reason."""
    statement = (
        update(refresh_tokens)
        .where(
            refresh_tokens.c.token_family == token_family,
            refresh_tokens.c.user_id == user_id,
            refresh_tokens.c.is_revoked == False,  # noqa: E712
        )
        .values(is_revoked=True, revoked_at=now or utc_now(), reason_revoked=reason)
    )
    revoked = session.connection().execute(statement).rowcount
    session.commit()
    logger.warning(
        'auth.token_family.revoked',
        user_id=user_id,
        token_family=token_family,
        reason=reason,
        revoked=revoked,
    )
    return revoked


def revoke_all_user_tokens(
    session: Session,
    user_id: str,
    reason: str = LOGOUT_ALL_REASON,
    now: Optional[datetime] = None,
) -> int:
    statement = (
        update(refresh_tokens)
        .where(refresh_tokens.c.user_id == user_id, refresh_tokens.c.is_revoked == False)  # noqa: E712
        .values(is_revoked=True, revoked_at=now or utc_now(), reason_revoked=reason)
    )
    revoked = session.connection().execute(statement).rowcount
    session.commit()
    logger.info('auth.user_tokens.revoked', user_id=user_id, reason=reason, revoked=revoked)
    return revoked


def logout(session: Session, presented: str) -> None:
    record = get_refresh_token(session, presented)
    if record is None:
        logger.info('auth.logout.unknown_token', token=mask_token(presented))
        return
    revoke_token_family(session, record.token_family, record.user_id, reason=LOGOUT_REASON)


def rotate_refresh_token(
    session: Session,
    presented: str,
    issuer: AccessTokenIssuer,
    generator: RefreshTokenGenerator,
    now: Optional[datetime] = None,
) -> TokenPair:
    """Exchange a live refresh token for a new access/refresh pair.

    Raises ``RefreshRejected`` when the token is unknown, its owner is gone,
    it has expired, or it was already revoked. The last case revokes the
    whole family before raising.

    The presented token is retired with a conditional update on
    ``is_revoked``, so of two concurrent refreshes with the same token only
    one can mint a child; the other is handled as a replay.
    """
    now = now or utc_now()
    record = get_refresh_token(session, presented)
    if record is None:
        raise _reject(RejectionReason.TOKEN_NOT_FOUND, token=mask_token(presented))

    token_id, token_family, user_id = record.id, record.token_family, record.user_id
    user = get_user(session, user_id)
    if user is None:
        raise _reject(RejectionReason.USER_MISSING, user_id=user_id)

    if record.is_expired_at(now):
        raise _reject(RejectionReason.TOKEN_EXPIRED, user_id=user_id, token_family=token_family)

    if record.is_revoked:
        revoke_token_family(session, token_family, user_id, now=now)
        raise _reject(RejectionReason.TOKEN_REPLAYED, user_id=user_id, token_family=token_family)

    child = RefreshToken(
        token=generator.generate(),
        user_id=user_id,
        created_at=now,
        expires_at=_refresh_expiry(now),
        token_family=token_family,
        parent_token_id=token_id,
    )
    child_id, child_token = child.id, child.token
    retire = (
        update(refresh_tokens)
        .where(refresh_tokens.c.id == token_id, refresh_tokens.c.is_revoked == False)  # noqa: E712
        .values(
            is_revoked=True,
            revoked_at=now,
            reason_revoked=ROTATION_REASON,
            replaced_by_token_id=child_id,
        )
    )
    if session.connection().execute(retire).rowcount != 1:
        # lost the race against another refresh of the same token
        session.rollback()
        revoke_token_family(session, token_family, user_id, now=now)
        raise _reject(RejectionReason.TOKEN_REPLAYED, user_id=user_id, token_family=token_family)

    access_token = issuer.issue(user, get_user_roles(user))
    session.add(child)
    session.commit()
    logger.info(
        'auth.refresh.rotated',
        user_id=user_id,
        token_family=token_family,
        parent_token_id=token_id,
        token_id=child_id,
    )
    return TokenPair(access_token=access_token, refresh_token=child_token, expires_in=issuer.expires_in)
