"""Encryption of Shopify access tokens at rest.

Tokens are encrypted with the current ``ENCRYPTION_KEY``. Keys listed in
``PREVIOUS_ENCRYPTION_KEYS`` still decrypt, so the key can be changed without
forcing every shop to reinstall. A reinstall rewrites the token under the
current key.
"""

import base64
import hashlib
from collections.abc import Sequence
from functools import lru_cache

from cryptography.fernet import Fernet, MultiFernet

from custify.core.config import settings


def _derive_fernet(secret: str) -> Fernet:
    """Fernet keyed by the SHA-256 of an arbitrary secret string."""
    key_bytes = hashlib.sha256(secret.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def build_cipher(current_key: str, previous_keys: Sequence[str] = ()) -> MultiFernet:
    """Cipher that encrypts with ``current_key`` and decrypts with any listed key."""
    return MultiFernet([_derive_fernet(k) for k in (current_key, *previous_keys)])


@lru_cache(maxsize=1)
def _get_cipher() -> MultiFernet:
    return build_cipher(settings.encryption_key, settings.previous_encryption_keys)


def encrypt_token(token: str) -> str:
    """Encrypt a token string."""
    return _get_cipher().encrypt(token.encode()).decode()


def decrypt_token(encrypted: str) -> str:
    """Decrypt an encrypted token string.

    Raises:
        cryptography.fernet.InvalidToken: If no configured key produced the value.
    """
    return _get_cipher().decrypt(encrypted.encode()).decode()
