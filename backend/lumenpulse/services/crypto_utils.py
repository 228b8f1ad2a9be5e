import hashlib
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

# Configure Argon2id with secure parameters
# time_cost=3, memory_cost=65536 (64MB), parallelism=4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its Argon2id hash."""
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def generate_token() -> str:
    """Generate a random bearer token (64 hex chars = 256 bits)."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest of a random bearer token.

    Tokens carry 256 bits of entropy, so a fast deterministic hash is enough
    and lets the hash itself be the lookup key.
    """
    return hashlib.sha256(token.encode()).hexdigest()
