"""
Encryption utilities

Provides encryption/decryption for access credentials (door codes, lock PINs).
Uses Fernet symmetric encryption keyed from settings.ENCRYPTION_KEY.
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)


def get_encryption_key() -> bytes:
    """
    Get encryption key from settings

    Any string is accepted; it is hashed down to the 32 bytes Fernet needs.
    In production, this should be stored in environment variables.
    """
    key = getattr(settings, 'ENCRYPTION_KEY', None)

    if not key:
        raise ImproperlyConfigured(
            "ENCRYPTION_KEY not configured in settings. "
            "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )

    if isinstance(key, str):
        key = key.encode()

    return base64.urlsafe_b64encode(hashlib.sha256(key).digest())


def _fernet() -> Fernet:
    return Fernet(get_encryption_key())


def encrypt_string(plaintext: str) -> str:
    """
    Encrypt a string

    Returns base64-encoded encrypted string.
    """
    if not plaintext:
        return ''

    return _fernet().encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    """
    Decrypt a string

    Raises cryptography.fernet.InvalidToken if the key changed or the
    value was tampered with.
    """
    if not encrypted:
        return ''

    return _fernet().decrypt(encrypted.encode()).decode()


def mask_secret(value: str, visible: int = 2) -> str:
    """'482913' -> '****13'. Used in logs and list endpoints."""
    if not value:
        return ''
    if len(value) <= visible:
        return '*' * len(value)
    return '*' * (len(value) - visible) + value[-visible:]


__all__ = ['encrypt_string', 'decrypt_string', 'mask_secret', 'get_encryption_key', 'InvalidToken']
