"""
Credential cipher for shared subscription logins.

Uses Fernet authenticated encryption with key rotation support. Any string
round-trips, including the empty string and non-ASCII text.
"""

from typing import List, Optional

from cryptography.fernet import Fernet, MultiFernet, InvalidToken

from subshare.utils.config import get_config
from subshare.utils.exceptions import ConfigurationError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)


class CredentialEncryptor:
    """
    Encrypts and decrypts shared credentials using Fernet.

    Supports key rotation through MultiFernet: the first key encrypts, every
    key is tried on decrypt.
    """

    def __init__(self, master_key: Optional[str] = None, secondary_key: Optional[str] = None):
        """
        Initialize encryptor with master key.

        Args:
            master_key: Base64-encoded Fernet key. If None, loads from config.
            secondary_key: Previous key still accepted for decryption.
        """
        config = get_config()
        self.master_key = master_key or config.encryption_master_key

        if not self.master_key:
            raise ConfigurationError(
                "ENCRYPTION_MASTER_KEY is required. "
                "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
            )

        self.keys = self._load_keys(secondary_key or config.encryption_secondary_key)
        try:
            self.fernet = MultiFernet([Fernet(key) for key in self.keys])
        except ValueError as e:
            raise ConfigurationError(f"Invalid encryption key: {e}")

        logger.info(f"Initialized credential encryptor with {len(self.keys)} key(s)")

    def _load_keys(self, secondary: Optional[str]) -> List[bytes]:
        keys = [self.master_key.encode() if isinstance(self.master_key, str) else self.master_key]

        if secondary:
            keys.append(secondary.encode() if isinstance(secondary, str) else secondary)
            logger.info("Secondary encryption key loaded for rotation")

        return keys

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext string.

        Args:
            plaintext: String to encrypt (may be empty)

        Returns:
            URL-safe base64 token
        """
        return self.fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a token produced by encrypt().

        Raises:
            InvalidToken: If the token is corrupted or was made with an unknown key
        """
        try:
            return self.fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except InvalidToken:
            logger.error("Decryption failed - invalid token or corrupted data")
            raise


_encryptor: Optional[CredentialEncryptor] = None


def get_encryptor() -> CredentialEncryptor:
    """Get or create global encryptor instance."""
    global _encryptor
    if _encryptor is None:
        _encryptor = CredentialEncryptor()
    return _encryptor


def encrypt_credential(plaintext: str) -> str:
    """Convenience function to encrypt credential."""
    return get_encryptor().encrypt(plaintext)


def decrypt_credential(ciphertext: str) -> str:
    """Convenience function to decrypt credential."""
    return get_encryptor().decrypt(ciphertext)
