from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lumenpulse.config import settings
from lumenpulse.database import get_db
from lumenpulse.middleware.rate_limit import limiter
from lumenpulse.schemas.auth import ForgotPasswordRequest, MessageResponse, ResetPasswordRequest
from lumenpulse.services.password_reset_service import forgot_password, reset_password

router = APIRouter()


@router.post("/auth/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.rate_limit_password_reset)
async def request_password_reset(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    """
    Request a password reset link.

    Always answers with the same message so callers cannot probe which
    emails are registered.
    """
    result = await forgot_password(db, body.email)
    return MessageResponse(**result)


@router.post("/auth/reset-password", response_model=MessageResponse)
@limiter.limit(settings.rate_limit_password_reset)
async def redeem_password_reset(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Set a new password using a one-time reset token."""
    result = reset_password(db, body.token, body.new_password)
    return MessageResponse(**result)
