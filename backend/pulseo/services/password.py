"""Password hashing with argon2id."""

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


class PasswordHasher:
    """
    Memory-hard credential hashing.

    Every hash embeds its own random salt, so hashing the same password twice
    gives different strings. ``verify`` never raises.
    """

    def __init__(self, hasher: Argon2Hasher | None = None):
        self._hasher = hasher or Argon2Hasher()

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False
