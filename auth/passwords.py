"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The cost factor is a constructor argument (Settings.bcrypt_rounds at the
composition root). bcrypt embeds salt and cost in its output, so hashes made
with an older cost still verify after the setting changes.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Hash and verify passwords at a fixed bcrypt cost.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("password123")
        hasher.verify("password123", stored)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash. Computed once so an unknown-email
        # login pays the same bcrypt cost as a wrong-password login.
        self._dummy_hash = self.hash("authapi_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed stored hash or an over-long password makes bcrypt raise
        ValueError; both count as a mismatch. Anything else propagates.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, plain: str) -> None:
        """Burn one bcrypt check against the dummy hash. Always a mismatch."""
        self.verify(plain, self._dummy_hash)
