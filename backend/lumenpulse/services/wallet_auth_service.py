import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.orm import Session

from lumenpulse.errors import ChallengeExpiredError, ChallengeNotFoundError, UnauthorizedError
from lumenpulse.services.challenge_store import Challenge, ChallengeStore
from lumenpulse.services.session_service import SessionIssuer
from lumenpulse.services.stellar_challenge import (
    build_challenge_transaction,
    parse_public_key,
    parse_signed_transaction,
    signature_bytes,
    verify_any,
)
from lumenpulse.services.user_service import get_or_create_wallet_user

logger = structlog.get_logger()

NONCE_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class WalletAuthService:
    """
    Stellar wallet challenge/response login.

    Challenges live in ``store`` keyed by public key. Verification removes
    the challenge before any other check, so each challenge gets exactly one
    verification attempt whatever its outcome.
    """

    def __init__(
        self,
        store: ChallengeStore,
        server_keypair,
        session_issuer: SessionIssuer,
        *,
        passphrase: str,
        home_domain: str,
        data_name: str,
        ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.server_keypair = server_keypair
        self.session_issuer = session_issuer
        self.passphrase = passphrase
        self.home_domain = home_domain
        self.data_name = data_name
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def generate_challenge(self, public_key: str) -> dict:
        """Issue and store a signed challenge for ``public_key``."""
        parse_public_key(public_key)

        nonce = secrets.token_hex(NONCE_BYTES)
        now = self.clock()

        envelope = build_challenge_transaction(
            self.server_keypair,
            public_key,
            nonce,
            home_domain=self.home_domain,
            data_name=self.data_name,
            passphrase=self.passphrase,
            issued_at=now,
            ttl_seconds=self.ttl_seconds,
        )
        payload = envelope.to_xdr()

        self.store.set(
            public_key,
            Challenge(
                nonce=nonce,
                created_at=now,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
                payload=payload,
                transaction_hash=envelope.hash(),
            ),
        )

        logger.debug("challenge_issued", public_key=public_key)

        return {
            "challenge": payload,
            "nonce": nonce,
            "expires_in": self.ttl_seconds,
        }

    def verify_challenge(self, db: Session, public_key: str, signed_challenge: str) -> dict:
        """Check a client-signed challenge and exchange it for a session token."""
        stored = self.store.pop(public_key)

        if stored is None:
            raise ChallengeNotFoundError()

        if stored.is_expired(self.clock()):
            raise ChallengeExpiredError()

        envelope = parse_signed_transaction(signed_challenge, self.passphrase)
        tx_hash = envelope.hash()

        if tx_hash != stored.transaction_hash:
            raise UnauthorizedError("Signed transaction does not match the issued challenge.")

        client_key = parse_public_key(public_key).raw_public_key()
        if not verify_any(tx_hash, signature_bytes(envelope), client_key):
            raise UnauthorizedError(
                "Invalid signature. Transaction was not signed by the provided public key."
            )

        user = get_or_create_wallet_user(db, public_key)

        token = self.session_issuer.issue(
            {"sub": user.id, "public_key": public_key, "auth_type": "wallet"}
        )

        logger.info("wallet_login", user_id=user.id)

        return {
            "success": True,
            "token": token,
            "user": {"id": user.id, "created_at": user.created_at},
        }
