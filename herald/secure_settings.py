"""
Secure settings resolution.

Secure settings are stored as base64 of an encrypted envelope. Resolving a
value never fails: a missing key, undecodable base64 or a failed decryption
all yield the caller's fallback, so notification delivery degrades instead
of aborting when secret storage is unavailable.

Key derivation for the Fernet store follows the application secret key:
SHA-256 of the key, urlsafe-base64 encoded, is a valid Fernet key.
"""

import base64
import binascii
import hashlib
from typing import Callable, Mapping, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from herald.config import settings

DecryptFunc = Callable[[str, str], str]


class SecretStore(Protocol):
    """Turns stored ciphertext bytes into plaintext bytes, raising on failure."""

    def decrypt(self, payload: bytes) -> bytes: ...

    def encrypt(self, payload: bytes) -> bytes: ...


class FernetSecretStore:
    def __init__(self, secret_key: Optional[str] = None):
        secret = secret_key or settings.secrets.secret_key
        key_bytes = hashlib.sha256(secret.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def decrypt(self, payload: bytes) -> bytes:
        return self._fernet.decrypt(payload)

    def encrypt(self, payload: bytes) -> bytes:
        return self._fernet.encrypt(payload)


class PlaintextSecretStore:
    """Store whose ciphertext is the plaintext. Used by the conformance fixtures."""

    def decrypt(self, payload: bytes) -> bytes:
        return payload

    def encrypt(self, payload: bytes) -> bytes:
        return payload


def get_decrypted_value(
    secure_settings: Mapping[str, str],
    key: str,
    fallback: str,
    store: SecretStore,
) -> str:
    """Resolve one secret field, returning ``fallback`` when it cannot be resolved."""
    encoded = secure_settings.get(key)
    if encoded is None:
        return fallback
    try:
        payload = base64.b64decode(encoded, validate=True)
        return store.decrypt(payload).decode("utf-8")
    except (binascii.Error, ValueError, InvalidToken):
        # UnicodeDecodeError is a ValueError
        return fallback
    except Exception as e:
        # store unavailable or failing in its own way
        logger.debug(f"Secret store failed to decrypt secure setting {key!r}: {type(e).__name__}")
        return fallback


def decrypt_fn(secure_settings: Mapping[str, str], store: SecretStore) -> DecryptFunc:
    """Bind the resolver to one receiver's secure settings."""

    def decrypt(key: str, fallback: str) -> str:
        return get_decrypted_value(secure_settings, key, fallback, store)

    return decrypt


def encrypt_secure_settings(plain: Mapping[str, str], store: SecretStore) -> dict[str, str]:
    """Produce the at-rest form of a plaintext secret map."""
    return {
        key: base64.b64encode(store.encrypt(value.encode("utf-8"))).decode("ascii")
        for key, value in plain.items()
    }
