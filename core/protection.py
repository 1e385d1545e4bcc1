"""
Password protection for encoded secret data.

Key derivation  : PBKDF2-HMAC-SHA256
Encryption      : AES-256-GCM (authenticated encryption)

A protected token is URL-safe base64 of::

    [ salt (16) | nonce (12) | ciphertext+tag ]
"""

import base64
import binascii
import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.errors import ProtectionError

SALT_SIZE = 16
NONCE_SIZE = 12
KEY_SIZE = 32
PBKDF2_ITERATIONS = 480_000  # OWASP 2023 recommendation for PBKDF2-SHA256
PBKDF2_HASH = "sha256"

_TAG_SIZE = 16


def derive_key(password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """Derive a 256-bit AES key from ``password``."""
    return hashlib.pbkdf2_hmac(
        PBKDF2_HASH,
        password.encode("utf-8"),
        salt,
        iterations,
        dklen=KEY_SIZE,
    )


def protect(secret_data: str, password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """
    Encrypt encoded secret data with ``password``.

    Args:
        secret_data: Output of :func:`core.codec.encode`.
        password:    Non-empty password.
        iterations:  PBKDF2 rounds; must match on :func:`unprotect`.

    Returns:
        ASCII token safe for storage.
    """
    if not password:
        raise ProtectionError("A non-empty password is required.")
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    key = derive_key(password, salt, iterations)
    ciphertext = AESGCM(key).encrypt(nonce, secret_data.encode("utf-8"), None)
    return base64.urlsafe_b64encode(salt + nonce + ciphertext).decode("ascii")


def unprotect(token: str, password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """
    Decrypt a token produced by :func:`protect`.

    Raises:
        ProtectionError: Malformed token, wrong password or tampered data.
    """
    try:
        blob = base64.urlsafe_b64decode(token.encode("ascii"))
    except (binascii.Error, ValueError) as exc:
        raise ProtectionError(f"Protected data is not valid base64: {exc}") from exc
    if len(blob) < SALT_SIZE + NONCE_SIZE + _TAG_SIZE:
        raise ProtectionError("Protected data is truncated.")

    salt = blob[:SALT_SIZE]
    nonce = blob[SALT_SIZE : SALT_SIZE + NONCE_SIZE]
    ciphertext = blob[SALT_SIZE + NONCE_SIZE :]
    key = derive_key(password, salt, iterations)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise ProtectionError("Wrong password or corrupted data.") from None
    return plaintext.decode("utf-8")
