"""
Security utilities for SubShare.
"""

from .encryption import (
    CredentialEncryptor,
    get_encryptor,
    encrypt_credential,
    decrypt_credential,
)

__all__ = [
    "CredentialEncryptor",
    "get_encryptor",
    "encrypt_credential",
    "decrypt_credential",
]
