"""AES-256-GCM helpers for provider tokens at rest.

Encoded artifact: base64( IV (12 bytes) || auth tag (16 bytes) || ciphertext ).
A fresh random IV is drawn for every call to encrypt(), so the same plaintext
never encrypts to the same string twice.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionError

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32

_KEY_ERROR = "Encryption key must be 32 bytes (64 hex characters)"


def _key_bytes(key: str) -> bytes:
    try:
        raw = bytes.fromhex(key)
    except (TypeError, ValueError):
        raise ValueError(_KEY_ERROR) from None
    if len(raw) != KEY_LENGTH:
        raise ValueError(_KEY_ERROR)
    return raw


def encrypt(plaintext: str, key: str) -> str:
    """Encrypt `plaintext` with the hex-encoded 256-bit `key`."""
    aesgcm = AESGCM(_key_bytes(key))
    iv = os.urandom(IV_LENGTH)

    # cryptography appends the tag to the ciphertext; the stored layout puts it first.
    sealed = aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]

    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt(encrypted: str, key: str) -> str:
    """
    Decrypt a value produced by encrypt().

    Raises ValueError for a malformed key and DecryptionError when the input
    is not valid base64, is shorter than IV + tag, or fails authentication.
    """
    aesgcm = AESGCM(_key_bytes(key))

    try:
        combined = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecryptionError("Encrypted value is not valid base64") from exc

    if len(combined) < IV_LENGTH + AUTH_TAG_LENGTH:
        raise DecryptionError("Encrypted value is too short")

    iv = combined[:IV_LENGTH]
    tag = combined[IV_LENGTH : IV_LENGTH + AUTH_TAG_LENGTH]
    ciphertext = combined[IV_LENGTH + AUTH_TAG_LENGTH :]

    try:
        plaintext = aesgcm.decrypt(iv, ciphertext + tag, None)
    except InvalidTag as exc:
        raise DecryptionError(
            "Unable to authenticate encrypted value (wrong key or tampered data)"
        ) from exc

    return plaintext.decode("utf-8")


def generate_encryption_key() -> str:
    """Return a new random 256-bit key as 64 hex characters."""
    return os.urandom(KEY_LENGTH).hex()
