"""Password hashing and verification backed by bcrypt."""

from __future__ import annotations

import base64
import hashlib

import bcrypt


class PasswordHasher:
    """Salted one-way hashing with constant-time verification.

    Plaintexts are reduced with SHA-256 before bcrypt so inputs longer than
    bcrypt's 72-byte limit are neither truncated nor rejected.
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds

    @staticmethod
    def _prehash(plaintext: str) -> bytes:
        digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash(self, plaintext: str) -> str:
        """Return a freshly salted bcrypt hash of ``plaintext``."""
        return bcrypt.hashpw(self._prehash(plaintext), bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``hashed``; ``False`` on malformed hashes."""
        try:
            return bcrypt.checkpw(self._prehash(plaintext), hashed.encode("ascii"))
        except (ValueError, TypeError, UnicodeEncodeError, AttributeError):
            return False
