import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lumenpulse.config import settings
from lumenpulse.database import get_db
from lumenpulse.dependencies import get_current_user, get_session_issuer
from lumenpulse.errors import UnauthorizedError
from lumenpulse.middleware.rate_limit import get_client_ip, limiter
from lumenpulse.models.user import User
from lumenpulse.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from lumenpulse.services.refresh_token_service import (
    issue_refresh_token,
    revoke_all_for_user,
    revoke_refresh_token,
    rotate_refresh_token,
)
from lumenpulse.services.session_service import SessionIssuer
from lumenpulse.services.user_service import authenticate, create_user

router = APIRouter()
logger = structlog.get_logger()


def password_session_claims(user: User) -> dict:
    return {"sub": user.id, "email": user.email, "auth_type": "password"}


@router.post("/auth/register", response_model=UserResponse, status_code=201)
@limiter.limit(settings.rate_limit_register)
async def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create an email/password account."""
    user = create_user(db, body.email, body.password)
    return UserResponse(id=user.id, email=user.email, created_at=user.created_at)


@router.post("/auth/login", response_model=TokenResponse)
@limiter.limit(settings.rate_limit_login)
async def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """Exchange email and password for an access token and a refresh token."""
    user = authenticate(db, body.email, body.password)
    if user is None:
        logger.info("password_login_failed")
        raise UnauthorizedError("Invalid email or password")

    refresh_token = issue_refresh_token(db, user, ip_address=get_client_ip(request))
    logger.info("password_login", user_id=user.id)

    return TokenResponse(
        access_token=issuer.issue(password_session_claims(user)),
        refresh_token=refresh_token,
    )


@router.post("/auth/refresh", response_model=TokenResponse)
@limiter.limit(settings.rate_limit_login)
async def refresh(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """
    Rotate a refresh token.

    The presented refresh token is revoked and a new pair is returned.
    """
    user, new_refresh_token = rotate_refresh_token(
        db,
        body.refresh_token,
        device_info=body.device_info,
        ip_address=get_client_ip(request),
    )

    return TokenResponse(
        access_token=issuer.issue(password_session_claims(user)),
        refresh_token=new_refresh_token,
    )


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(body: LogoutRequest, db: Session = Depends(get_db)):
    """Revoke a refresh token. Unknown tokens are accepted silently."""
    revoke_refresh_token(db, body.refresh_token)
    return MessageResponse(message="Logged out successfully.")


@router.post("/auth/logout-all", response_model=MessageResponse)
async def logout_all(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Revoke every refresh token of the current user."""
    revoked = revoke_all_for_user(db, user.id)
    logger.info("logout_all", user_id=user.id, revoked=revoked)
    return MessageResponse(message="Logged out from all devices.")


@router.get("/auth/profile", response_model=ProfileResponse)
async def profile(user: User = Depends(get_current_user)):
    return ProfileResponse(
        id=user.id,
        email=user.email,
        stellar_public_key=user.stellar_public_key,
        first_name=user.first_name,
        last_name=user.last_name,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
