from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lumenpulse.errors import ConflictError
from lumenpulse.models.user import User
from lumenpulse.services.crypto_utils import hash_password, verify_password

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str, *, for_update: bool = False) -> User | None:
    query = db.query(User).filter(User.email == normalize_email(email))
    if for_update:
        # Serializes concurrent reset requests for one user where the backend supports row locks
        query = query.with_for_update()
    return query.first()


def get_user_by_public_key(db: Session, public_key: str) -> User | None:
    return db.query(User).filter(User.stellar_public_key == public_key).first()


def create_user(db: Session, email: str, password: str) -> User:
    """Register an email/password user. Raises ConflictError if the email is taken."""
    email = normalize_email(email)
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email is already registered")

    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email is already registered")
    db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return user


def get_or_create_wallet_user(db: Session, public_key: str) -> User:
    """
    Find the user owning ``public_key`` or create one.

    ``updated_at`` is refreshed on every wallet login.
    """
    now = datetime.now(UTC).replace(tzinfo=None)
    user = get_user_by_public_key(db, public_key)

    if user is None:
        user = User(stellar_public_key=public_key, updated_at=now)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("wallet_user_created", user_id=user.id)
    else:
        user.updated_at = now
        db.commit()
        logger.info("wallet_user_logged_in", user_id=user.id)

    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Return the user if the email/password pair is valid, else None."""
    user = get_user_by_email(db, email)
    if user is None or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def set_password(db: Session, user: User, new_password: str) -> None:
    """Store a new Argon2id password hash. Caller commits."""
    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.now(UTC).replace(tzinfo=None)
