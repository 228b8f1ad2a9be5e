from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.orm import Session

from lumenpulse.config import settings
from lumenpulse.errors import InvalidTokenError, ResetTokenExpiredError, UserGoneError
from lumenpulse.models.password_reset_token import PasswordResetToken
from lumenpulse.services.crypto_utils import generate_token, hash_token
from lumenpulse.services.notification_service import send_password_reset_email
from lumenpulse.services.user_service import get_user_by_email, get_user_by_id, set_password

logger = structlog.get_logger()

FORGOT_PASSWORD_MESSAGE = "If that email is registered, a reset link has been sent."
RESET_SUCCESS_MESSAGE = "Password has been reset successfully."

Notifier = Callable[[str, str], Awaitable[bool]]


def invalidate_unused_tokens(db: Session, user_id: str, now: datetime) -> int:
    """Mark every outstanding token of a user as used. Caller commits."""
    return (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.used_at == None,  # noqa: E711 - SQLAlchemy requires ==
        )
        .update({"used_at": now}, synchronize_session=False)
    )


def issue_reset_token(db: Session, user_id: str) -> str:
    """
    Replace any outstanding tokens of a user with a fresh one.

    Invalidation and insert are committed together. Returns the raw token,
    which is never stored.
    """
    now = datetime.now(UTC).replace(tzinfo=None)

    invalidate_unused_tokens(db, user_id, now)

    raw_token = generate_token()
    db.add(
        PasswordResetToken(
            token_hash=hash_token(raw_token),
            user_id=user_id,
            expires_at=now + timedelta(minutes=settings.reset_token_ttl_minutes),
            created_at=now,
        )
    )
    db.commit()

    return raw_token


async def forgot_password(
    db: Session,
    email: str,
    notify: Notifier = send_password_reset_email,
) -> dict:
    """
    Start a password reset.

    The response is identical whether or not the email is registered.
    """
    user = get_user_by_email(db, email, for_update=True)

    if user is None:
        logger.debug("password_reset_unknown_email")
        return {"message": FORGOT_PASSWORD_MESSAGE}

    raw_token = issue_reset_token(db, user.id)
    logger.info("password_reset_requested", user_id=user.id)

    try:
        await notify(user.email, raw_token)
    except Exception:
        # The reply must not differ from the unknown-email branch
        logger.error("password_reset_notification_failed", user_id=user.id, exc_info=True)

    return {"message": FORGOT_PASSWORD_MESSAGE}


def reset_password(db: Session, raw_token: str, new_password: str) -> dict:
    """Redeem a reset token and set a new password. Tokens redeem at most once."""
    token = (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.token_hash == hash_token(raw_token),
            PasswordResetToken.used_at == None,  # noqa: E711
        )
        .first()
    )

    if token is None:
        raise InvalidTokenError()

    now = datetime.now(UTC).replace(tzinfo=None)

    if now > token.expires_at:
        # Burn it so it cannot be retried
        token.used_at = now
        db.commit()
        raise ResetTokenExpiredError()

    user = get_user_by_id(db, token.user_id)
    if user is None:
        raise UserGoneError()

    # Conditional claim: matches no row if another request already redeemed the token
    claimed = (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.id == token.id,
            PasswordResetToken.used_at == None,  # noqa: E711
        )
        .update({"used_at": now}, synchronize_session=False)
    )
    if claimed != 1:
        db.rollback()
        raise InvalidTokenError()

    set_password(db, user, new_password)
    db.commit()

    logger.info("password_reset_completed", user_id=user.id)

    return {"message": RESET_SUCCESS_MESSAGE}


def delete_stale_reset_tokens(db: Session) -> int:
    """Delete tokens that are used or past expiry. Returns count of deleted rows."""
    now = datetime.now(UTC).replace(tzinfo=None)
    result = (
        db.query(PasswordResetToken)
        .filter(
            (PasswordResetToken.used_at != None)  # noqa: E711
            | (PasswordResetToken.expires_at < now)
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return result
