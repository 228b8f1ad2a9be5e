from datetime import UTC, datetime, timedelta

import jwt

from lumenpulse.errors import ConfigurationError, UnauthorizedError


class SessionIssuer:
    """
    Signs and checks short-lived session tokens (JWT).

    Built once at startup from settings; every token carries ``iat`` and an
    ``exp`` of ``expires_minutes`` after issue.
    """

    def __init__(self, secret: str | None, algorithm: str = "HS256", expires_minutes: int = 60):
        if not secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=expires_minutes)

    def issue(self, claims: dict) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + self._ttl}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Session token has expired")
        except jwt.InvalidTokenError:
            raise UnauthorizedError("Invalid session token")
