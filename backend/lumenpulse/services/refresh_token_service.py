from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from lumenpulse.config import settings
from lumenpulse.errors import UnauthorizedError
from lumenpulse.models.refresh_token import RefreshToken
from lumenpulse.models.user import User
from lumenpulse.services.crypto_utils import generate_token, hash_token
from lumenpulse.services.user_service import get_user_by_id


def issue_refresh_token(
    db: Session,
    user: User,
    device_info: str | None = None,
    ip_address: str | None = None,
) -> str:
    """
    Create a refresh token for a user.

    Returns the raw token. Only its hash is persisted.
    """
    raw_token = generate_token()
    now = datetime.now(UTC).replace(tzinfo=None)

    db.add(
        RefreshToken(
            token_hash=hash_token(raw_token),
            user_id=user.id,
            expires_at=now + timedelta(days=settings.refresh_token_ttl_days),
            device_info=device_info,
            ip_address=ip_address,
            created_at=now,
        )
    )
    db.commit()

    return raw_token


def find_active_refresh_token(db: Session, raw_token: str) -> RefreshToken | None:
    return (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token_hash == hash_token(raw_token),
            RefreshToken.revoked_at == None,  # noqa: E711 - SQLAlchemy requires ==
        )
        .first()
    )


def rotate_refresh_token(
    db: Session,
    raw_token: str,
    device_info: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """
    Exchange a refresh token for a new one.

    The presented token is revoked. Returns (user, new_raw_token).
    """
    token = find_active_refresh_token(db, raw_token)
    if token is None:
        raise UnauthorizedError("Invalid or revoked refresh token")

    now = datetime.now(UTC).replace(tzinfo=None)
    if now >= token.expires_at:
        token.revoked_at = now
        db.commit()
        raise UnauthorizedError("Refresh token has expired")

    user = get_user_by_id(db, token.user_id)
    if user is None:
        raise UnauthorizedError("Invalid or revoked refresh token")

    token.revoked_at = now
    new_raw_token = issue_refresh_token(
        db,
        user,
        device_info=device_info or token.device_info,
        ip_address=ip_address,
    )

    return user, new_raw_token


def revoke_refresh_token(db: Session, raw_token: str) -> bool:
    """Revoke a single refresh token. Unknown tokens are ignored."""
    token = find_active_refresh_token(db, raw_token)
    if token is None:
        return False
    token.revoked_at = datetime.now(UTC).replace(tzinfo=None)
    db.commit()
    return True


def revoke_all_for_user(db: Session, user_id: str) -> int:
    """Revoke every active refresh token of a user. Returns count revoked."""
    result = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at == None,  # noqa: E711
        )
        .update({"revoked_at": datetime.now(UTC).replace(tzinfo=None)}, synchronize_session=False)
    )
    db.commit()
    return result


def delete_stale_refresh_tokens(db: Session) -> int:
    """Delete revoked or expired refresh tokens. Returns count of deleted rows."""
    now = datetime.now(UTC).replace(tzinfo=None)
    result = (
        db.query(RefreshToken)
        .filter(
            (RefreshToken.revoked_at != None)  # noqa: E711
            | (RefreshToken.expires_at < now)
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return result
