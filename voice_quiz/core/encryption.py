"""Fernet encryption of bearer tokens kept in local storage.

Only the session token is encrypted; the user record next to it is not
secret. A key change makes old tokens undecryptable, which the session
store treats as a logout.
"""
from cryptography.fernet import Fernet
from typing import Optional

from voice_quiz.config import settings

KEY_HINT = (
    "ENCRYPTION_KEY is not set. Create one with: "
    "python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
)


class TokenEncryption:
    """Symmetric cipher for session tokens."""

    def __init__(self, key: Optional[str] = None):
        """
        Args:
            key: Fernet key (urlsafe base64). Falls back to the configured
                ENCRYPTION_KEY when omitted.

        Raises:
            ValueError: No key given and none configured
        """
        key = key or settings.ENCRYPTION_KEY
        if not key:
            raise ValueError(KEY_HINT)
        self.cipher = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, token: str) -> str:
        """
        Args:
            token: Bearer token as issued by the API

        Returns:
            Fernet token text, safe to store in a TEXT column
        """
        if not token:
            return ""
        return self.cipher.encrypt(token.encode()).decode()

    def decrypt(self, stored: str) -> str:
        """
        Args:
            stored: Value previously returned by encrypt()

        Returns:
            The bearer token

        Raises:
            cryptography.fernet.InvalidToken: Written with another key or corrupted
        """
        if not stored:
            return ""
        return self.cipher.decrypt(stored.encode()).decode()


def generate_key() -> str:
    """Fresh Fernet key as text."""
    return Fernet.generate_key().decode()


# Shared instance, built from settings on first use
_encryptor: Optional[TokenEncryption] = None


def get_encryptor() -> TokenEncryption:
    global _encryptor
    if _encryptor is None:
        _encryptor = TokenEncryption()
    return _encryptor


def set_encryptor(encryptor: Optional[TokenEncryption]) -> None:
    """Install a shared instance (None makes the next use rebuild it from settings)."""
    global _encryptor
    _encryptor = encryptor


def encrypt(token: str) -> str:
    return get_encryptor().encrypt(token)


def decrypt(stored: str) -> str:
    return get_encryptor().decrypt(stored)
