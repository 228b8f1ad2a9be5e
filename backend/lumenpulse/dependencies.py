"""FastAPI dependencies for services built at startup and for bearer auth."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from lumenpulse.database import get_db
from lumenpulse.errors import UnauthorizedError
from lumenpulse.models.user import User
from lumenpulse.services.session_service import SessionIssuer
from lumenpulse.services.user_service import get_user_by_id
from lumenpulse.services.wallet_auth_service import WalletAuthService

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_wallet_auth(request: Request) -> WalletAuthService:
    return request.app.state.wallet_auth


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the user from an ``Authorization: Bearer <jwt>`` header."""
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")

    claims = issuer.decode(credentials.credentials)
    user = get_user_by_id(db, claims.get("sub", ""))
    if user is None:
        raise UnauthorizedError("User not found")
    return user
