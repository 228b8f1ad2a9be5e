"""
SEP-10 style challenge transactions.

A challenge is a Stellar transaction that is never submitted to the network.
It is sourced from the server account with sequence number 0 and carries two
manage-data operations:

    1. ``<data name> = <nonce>``        sourced from the client account
    2. ``web_auth_domain = <domain>``   sourced from the server account

The server signs it so the client can check where it came from; the client
proves control of its key by adding its own signature and returning it.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from stellar_sdk import Account, Keypair, Network, TransactionBuilder, TransactionEnvelope
from stellar_sdk.exceptions import (
    Ed25519PublicKeyInvalidError,
    Ed25519SecretSeedInvalidError,
)

from lumenpulse.errors import ConfigurationError, InvalidFormatError, InvalidInputError

WEB_AUTH_DOMAIN_KEY = "web_auth_domain"
BASE_FEE = 100


def network_passphrase(network: str) -> str:
    if network == "testnet":
        return Network.TESTNET_NETWORK_PASSPHRASE
    return Network.PUBLIC_NETWORK_PASSPHRASE


def parse_public_key(public_key: str) -> Keypair:
    """Parse a ``G...`` account id, raising InvalidInputError if malformed."""
    try:
        return Keypair.from_public_key(public_key)
    except (Ed25519PublicKeyInvalidError, ValueError, TypeError):
        raise InvalidInputError("Invalid Stellar public key format")


def load_server_keypair(secret: str | None) -> Keypair:
    """Load the server signing key from its ``S...`` secret seed."""
    if not secret:
        raise ConfigurationError("STELLAR_SERVER_SECRET is not configured")
    try:
        return Keypair.from_secret(secret)
    except (Ed25519SecretSeedInvalidError, ValueError) as e:
        raise ConfigurationError("STELLAR_SERVER_SECRET is not a valid secret seed") from e


def build_challenge_transaction(
    server_keypair: Keypair,
    client_public_key: str,
    nonce: str,
    *,
    home_domain: str,
    data_name: str,
    passphrase: str,
    issued_at: datetime,
    ttl_seconds: int,
) -> TransactionEnvelope:
    """Build and server-sign a challenge valid for ``ttl_seconds`` from ``issued_at``."""
    # Sequence -1 so the built transaction carries sequence 0 and can never be submitted
    source_account = Account(server_keypair.public_key, -1)

    issued_ts = int(issued_at.replace(tzinfo=UTC).timestamp())

    envelope = (
        TransactionBuilder(
            source_account=source_account,
            network_passphrase=passphrase,
            base_fee=BASE_FEE,
        )
        .add_time_bounds(0, issued_ts + ttl_seconds)
        .append_manage_data_op(
            data_name=data_name,
            data_value=nonce.encode(),
            source=client_public_key,
        )
        .append_manage_data_op(
            data_name=WEB_AUTH_DOMAIN_KEY,
            data_value=home_domain.encode(),
            source=server_keypair.public_key,
        )
        .build()
    )
    envelope.sign(server_keypair)
    return envelope


def parse_signed_transaction(xdr: str, passphrase: str) -> TransactionEnvelope:
    """Decode a base64 XDR transaction envelope, raising InvalidFormatError on failure."""
    try:
        return TransactionEnvelope.from_xdr(xdr, passphrase)
    except Exception as e:
        raise InvalidFormatError() from e


def verify_any(tx_hash: bytes, signatures: Iterable[bytes], expected_key: bytes) -> bool:
    """
    Return True if any of ``signatures`` is a valid Ed25519 signature of
    ``tx_hash`` by the raw 32-byte public key ``expected_key``.
    """
    try:
        public_key = Ed25519PublicKey.from_public_bytes(expected_key)
    except ValueError:
        return False

    for signature in signatures:
        try:
            public_key.verify(signature, tx_hash)
            return True
        except InvalidSignature:
            continue
    return False


def signature_bytes(envelope: TransactionEnvelope) -> list[bytes]:
    """Raw signature bytes attached to an envelope."""
    return [decorated.signature for decorated in envelope.signatures]
