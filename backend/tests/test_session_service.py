"""Tests for session token issuing and decoding."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from lumenpulse.errors import ConfigurationError, UnauthorizedError
from lumenpulse.services.session_service import SessionIssuer

SECRET = "session-test-secret-with-enough-bytes"


def test_issue_and_decode():
    issuer = SessionIssuer(SECRET)

    token = issuer.issue({"sub": "user-1", "auth_type": "wallet"})
    claims = issuer.decode(token)

    assert claims["sub"] == "user-1"
    assert claims["auth_type"] == "wallet"
    assert claims["exp"] - claims["iat"] == 3600


def test_custom_expiry():
    issuer = SessionIssuer(SECRET, expires_minutes=5)
    claims = issuer.decode(issuer.issue({"sub": "user-1"}))
    assert claims["exp"] - claims["iat"] == 300


def test_missing_secret():
    with pytest.raises(ConfigurationError):
        SessionIssuer(None)
    with pytest.raises(ConfigurationError):
        SessionIssuer("")


def test_expired_token_rejected():
    issuer = SessionIssuer(SECRET)
    past = datetime.now(UTC) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": "user-1", "iat": past, "exp": past + timedelta(hours=1)},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(UnauthorizedError, match="expired"):
        issuer.decode(token)


def test_wrong_secret_rejected():
    token = SessionIssuer("another-secret-with-enough-bytes!!").issue({"sub": "user-1"})

    with pytest.raises(UnauthorizedError, match="Invalid session token"):
        SessionIssuer(SECRET).decode(token)


def test_garbage_rejected():
    with pytest.raises(UnauthorizedError):
        SessionIssuer(SECRET).decode("not.a.jwt")
