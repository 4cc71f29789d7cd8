"""Password hashing with bcrypt."""

from __future__ import annotations

import bcrypt

from ..utils.logger import get_logger

logger = get_logger(__name__)

MIN_ROUNDS = 12
# bcrypt only looks at the first 72 bytes; cut explicitly so hash and verify agree.
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """One-way salted hashing; verification is constant-time inside bcrypt."""

    def __init__(self, rounds: int = MIN_ROUNDS):
        if rounds < MIN_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False
