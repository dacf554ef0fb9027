from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.schemas.user import RefreshTokenOut, UserOut, UserRefreshTokensOut


def to_user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, is_active=user.is_active, role=user.role)


def to_refresh_token_out(record: RefreshToken) -> RefreshTokenOut:
    return RefreshTokenOut(
        id=record.id,
        token=record.token,
        created_at=record.created_at,
        expires_at=record.expires_at,
        is_expired=record.is_expired,
        is_revoked=record.is_revoked,
        revoked_at=record.revoked_at,
        reason_revoked=record.reason_revoked,
        token_family=record.token_family,
        parent_token_id=record.parent_token_id,
        replaced_by_token_id=record.replaced_by_token_id,
    )


def to_user_refresh_tokens_out(user: User, records: list[RefreshToken]) -> UserRefreshTokensOut:
    return UserRefreshTokensOut(
        user_id=user.id,
        user_email=user.email,
        tokens=[to_refresh_token_out(record) for record in records],
    )
