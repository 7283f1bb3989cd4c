"""Password hashing, credential helpers, and random token generation."""

import base64
import hashlib
import secrets
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

import bcrypt

from accounts.config import get_settings
from accounts.models.user import User

Clock = Callable[[], datetime]
TokenSource = Callable[[], str]


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str: ...

    def verify(self, digest: str, plaintext: str) -> bool: ...


class BcryptHasher:
    """bcrypt-backed password hasher.

    bcrypt only reads 72 bytes of input, so passwords are first reduced to a
    base64 SHA-256 digest (44 bytes). Every byte of the password counts and
    no length is rejected.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    @staticmethod
    def _prehash(plaintext: str) -> bytes:
        return base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(self._prehash(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, digest: str, plaintext: str) -> bool:
        """Check plaintext against digest in constant time.

        The empty digest means no password has been set and never matches.
        """
        if not digest:
            return False
        try:
            return bcrypt.checkpw(self._prehash(plaintext), digest.encode("utf-8"))
        except ValueError:
            # Not a bcrypt digest
            return False


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_token() -> str:
    """Unpredictable URL-safe token for reset links and verification codes."""
    return secrets.token_urlsafe(get_settings().TOKEN_BYTES)


def set_password(user: User, plaintext: str, hasher: PasswordHasher) -> User:
    """Return a copy of ``user`` whose password hash matches ``plaintext``."""
    return user.copy(password_hash=hasher.hash(plaintext))


def password_valid(user: User, plaintext: str, hasher: PasswordHasher) -> bool:
    return hasher.verify(user.password_hash, plaintext)
