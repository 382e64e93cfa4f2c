"""
Password hashing and verification utilities.
"""

import os

import bcrypt

from subshare.utils.exceptions import ValidationFailedError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


class PasswordManager:
    """
    Manages password hashing and verification using bcrypt.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a plaintext password.

        Args:
            password: Plaintext password

        Returns:
            Hashed password string
        """
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailedError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        # Bcrypt only accepts up to 72 bytes
        password_bytes = password.encode('utf-8')[:72]
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode('utf-8')

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if password matches, False otherwise (including malformed hashes)
        """
        try:
            password_bytes = plain_password.encode('utf-8')[:72]
            return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification failed: {e}")
            return False


_password_manager = PasswordManager(rounds=int(os.getenv("BCRYPT_ROUNDS", "12")))


def hash_password(password: str) -> str:
    """Convenience function to hash password."""
    return _password_manager.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Convenience function to verify password."""
    return _password_manager.verify(plain_password, hashed_password)
