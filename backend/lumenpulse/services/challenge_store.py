"""In-process storage for outstanding wallet-auth challenges."""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class Challenge:
    nonce: str
    created_at: datetime
    expires_at: datetime
    payload: str  # server-signed transaction envelope, base64 XDR
    transaction_hash: bytes

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class ChallengeStore(Protocol):
    """Keyed by the claimed Stellar public key. At most one live entry per key."""

    def get(self, public_key: str) -> Challenge | None: ...

    def set(self, public_key: str, challenge: Challenge) -> None: ...

    def delete(self, public_key: str) -> None: ...

    def pop(self, public_key: str) -> Challenge | None: ...

    def sweep_expired(self, now: datetime) -> int: ...


class InMemoryChallengeStore:
    """
    Lock-guarded dict implementation of ``ChallengeStore``.

    Contents are lost on restart; clients simply request a new challenge.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Challenge] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, public_key: str) -> Challenge | None:
        with self._lock:
            return self._entries.get(public_key)

    def set(self, public_key: str, challenge: Challenge) -> None:
        with self._lock:
            self._entries[public_key] = challenge

    def delete(self, public_key: str) -> None:
        with self._lock:
            self._entries.pop(public_key, None)

    def pop(self, public_key: str) -> Challenge | None:
        """Remove and return the entry for ``public_key`` in one step."""
        with self._lock:
            return self._entries.pop(public_key, None)

    def sweep_expired(self, now: datetime) -> int:
        """Evict entries past their expiry. Returns the number evicted."""
        with self._lock:
            expired = [key for key, challenge in self._entries.items() if challenge.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)
