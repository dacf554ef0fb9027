from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
from app.db.session import get_session
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.user import UserOut, UserRefreshTokensOut
from app.services.auth_service import get_current_user, get_user
from app.services.refresh_token_service import list_user_refresh_tokens
from app.services.user_service import to_user_out, to_user_refresh_tokens_out

router = APIRouter(prefix='/users', tags=['users'])


@router.get('/me', response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> UserOut:
    return to_user_out(user)


@router.get('/{user_id}/refresh-tokens', response_model=UserRefreshTokensOut)
def list_refresh_tokens(
    user_id: str,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
) -> UserRefreshTokensOut:
    if user.role != UserRole.ADMIN and user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Not allowed')
    owner = get_user(session, user_id)
    if not owner:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')
    return to_user_refresh_tokens_out(owner, list_user_refresh_tokens(session, owner.id))
