"""
auth/hashing.py -- Password hashing with bcrypt.

bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute force expensive. Each digest embeds its own random
salt and cost ("$2b$12$<22-char salt><31-char hash>"), so verification needs
nothing but the digest itself.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection hashes a password longer than 72 bytes, which current bcrypt
releases reject with an explicit error.

bcrypt only reads the first 72 bytes of its input: bcrypt 4 truncates the
rest silently, bcrypt 5 raises. The limit is enforced here so behaviour does
not depend on the installed release: hash() raises ValueError, verify()
returns False. AuthService reports it to callers as a ValidationError.
"""

from __future__ import annotations

import bcrypt

MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way digests with a configurable work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("Secret123!")
        hasher.verify("Secret123!", digest)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of the plaintext. Never deterministic across calls.

        Raises ValueError for passwords over MAX_PASSWORD_BYTES rather than
        letting older bcrypt releases truncate them.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if the plaintext matches the digest.

        checkpw re-derives the hash with the salt embedded in the digest and
        compares in constant time. A malformed or foreign digest ("Invalid
        salt"), an over-long password, or a non-string argument returns False
        -- it is never treated as a match.
        """
        try:
            encoded = plain.encode("utf-8")
            if len(encoded) > MAX_PASSWORD_BYTES:
                return False
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False
