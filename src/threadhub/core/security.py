"""Secret hashing primitives: account passwords and stored refresh tokens."""
from __future__ import annotations

import hashlib
import hmac

import bcrypt


class PasswordHasher:
    """bcrypt-backed secret hashing capability."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt digest for ``plaintext``."""
        digest = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        return digest.decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if ``plaintext`` matches ``digest``; False otherwise."""
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed digest in storage.
            return False


def hmac_digest(value: str, server_secret: str) -> str:
    """Return the hex HMAC-SHA256 of ``value`` keyed with ``server_secret``.

    Deterministic, so it is used for lookup-by-hash of refresh tokens. A leaked
    digest cannot be replayed without the server secret.
    """
    return hmac.new(
        server_secret.encode("utf-8"),
        value.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
