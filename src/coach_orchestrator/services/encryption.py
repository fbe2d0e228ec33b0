"""Credential encryption using Fernet symmetric encryption.

Upstream API keys (Intervals.icu) are stored encrypted at rest and only
decrypted in memory for the duration of a tool call.
"""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import get_settings


class CredentialEncryptionError(Exception):
    """Raised when encryption/decryption operations fail."""
    pass


class CredentialEncryption:
    """Fernet (AES-128-CBC + HMAC) encryption for stored API keys.

    Usage:
        encryption = CredentialEncryption()
        stored = encryption.encrypt("intervals-api-key")
        api_key = encryption.decrypt(stored)
    """

    def __init__(self, key: Optional[str] = None):
        """
        Args:
            key: Fernet key. Defaults to settings.credential_encryption_key.

        Raises:
            CredentialEncryptionError: If no key is configured or it is malformed.
        """
        self._key = key or get_settings().credential_encryption_key
        if not self._key:
            raise CredentialEncryptionError(
                "CREDENTIAL_ENCRYPTION_KEY not set. "
                "Generate one with: CredentialEncryption.generate_key()"
            )

        try:
            self._fernet = Fernet(self._key.encode())
        except (ValueError, TypeError) as e:
            raise CredentialEncryptionError(
                f"Invalid encryption key format: {e}. "
                "Key must be a valid Fernet key (32 bytes, URL-safe base64 encoded)."
            )

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            raise CredentialEncryptionError("Cannot encrypt empty string")
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored value.

        Raises:
            CredentialEncryptionError: On a wrong key or tampered ciphertext.
        """
        if not ciphertext:
            raise CredentialEncryptionError("Cannot decrypt empty string")

        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            raise CredentialEncryptionError(
                "Decryption failed: invalid token. "
                "The data may be corrupted, tampered with, or encrypted with a different key."
            )

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")
