from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlmodel import Session
from app.db.session import get_session
from app.models.user import User
from app.schemas.auth import LoginRequest, LogoutRequest, RefreshRequest, RegisterRequest, TokenResponse
from app.schemas.user import UserOut
from app.services.auth_service import authenticate_user, create_user, get_current_user, get_user_by_email
from app.services.refresh_token_service import (
    RefreshRejected,
    TokenPair,
    issue_token_family,
    logout,
    revoke_all_user_tokens,
    rotate_refresh_token,
)
from app.services.token_issuer import (
    AccessTokenIssuer,
    RefreshTokenGenerator,
    get_access_token_issuer,
    get_refresh_token_generator,
)
from app.services.user_service import to_user_out

router = APIRouter(tags=['auth'])


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')


def _to_token_response(pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post('/register', response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, session: Session = Depends(get_session)) -> UserOut:
    if get_user_by_email(session, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already registered')
    user = create_user(session, payload.email, payload.password)
    return to_user_out(user)


@router.post('/login', response_model=TokenResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    issuer: AccessTokenIssuer = Depends(get_access_token_issuer),
    generator: RefreshTokenGenerator = Depends(get_refresh_token_generator),
) -> TokenResponse:
    user = authenticate_user(session, payload.email, payload.password)
    if not user:
        logger.warning('auth.login.failed', email=payload.email)
        raise _unauthorized()
    return _to_token_response(issue_token_family(session, user, issuer, generator))


@router.post('/refresh', response_model=TokenResponse)
def refresh(
    payload: RefreshRequest,
    session: Session = Depends(get_session),
    issuer: AccessTokenIssuer = Depends(get_access_token_issuer),
    generator: RefreshTokenGenerator = Depends(get_refresh_token_generator),
) -> TokenResponse:
    try:
        pair = rotate_refresh_token(session, payload.refresh_token, issuer, generator)
    except RefreshRejected:
        # the rejection reason is already logged and must not reach the client
        raise _unauthorized() from None
    return _to_token_response(pair)


@router.post('/logout')
def logout_endpoint(payload: LogoutRequest, session: Session = Depends(get_session)) -> dict:
    logout(session, payload.refresh_token)
    return {'status': 'ok'}


@router.post('/logout-all')
def logout_all_endpoint(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
) -> dict:
    revoked = revoke_all_user_tokens(session, user.id)
    return {'status': 'ok', 'revoked': revoked}
