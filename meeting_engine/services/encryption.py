"""
Encryption utilities for OAuth token storage.
"""
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from meeting_engine.config import settings
from meeting_engine.exceptions import ConfigurationError
from meeting_engine.logging_config import get_logger

logger = get_logger(__name__)


def encrypt_token(token: Optional[str], cipher: Optional[Fernet] = None) -> Optional[str]:
    """
    Encrypt a token for storage.

    Args:
        token: Plain text token
        cipher: Fernet instance (defaults to the configured key)

    Returns:
        Encrypted token as string
    """
    if token is None:
        return None
    if token == "":
        return ""
    cipher = cipher or settings.cipher
    return cipher.encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: Optional[str], cipher: Optional[Fernet] = None) -> Optional[str]:
    """
    Decrypt a token from storage.

    Raises:
        ConfigurationError: the value was not encrypted with the configured key
    """
    if encrypted_token is None:
        return None
    if encrypted_token == "":
        return ""
    cipher = cipher or settings.cipher
    try:
        return cipher.decrypt(encrypted_token.encode()).decode()
    except InvalidToken:
        logger.error("token_decryption_failed")
        raise ConfigurationError("Stored token could not be decrypted with the configured ENCRYPTION_KEY")
