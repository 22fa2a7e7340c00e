"""
Encryption utilities

Symmetric (Fernet) encryption for personal data stored with bookings,
such as the contact phone number of a visitor or traveller.
"""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


def derive_fernet_key(secret: str | bytes) -> bytes:
    """
    Turn an arbitrary configured secret into a 32-byte url-safe key.

    Keys generated with Fernet.generate_key() are used as they are.
    """
    if isinstance(secret, bytes):
        secret = secret.decode()
    try:
        if len(base64.urlsafe_b64decode(secret.encode())) == 32:
            return secret.encode()
    except (ValueError, TypeError):
        pass
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())


@lru_cache(maxsize=4)
def _fernet_for(secret: str) -> Fernet:
    return Fernet(derive_fernet_key(secret))


def get_fernet() -> Fernet:
    secret = getattr(settings, 'ENCRYPTION_KEY', None)
    if not secret:
        raise ImproperlyConfigured(
            "ENCRYPTION_KEY is not configured. Generate one with: "
            "python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )
    return _fernet_for(secret)


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ''
    return get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    """Raises cryptography.fernet.InvalidToken for data sealed with another key."""
    if not encrypted:
        return ''
    return get_fernet().decrypt(encrypted.encode()).decode()


__all__ = ['InvalidToken', 'decrypt_string', 'derive_fernet_key', 'encrypt_string', 'get_fernet']
