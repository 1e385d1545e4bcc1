"""
Utility helpers for authsync.
"""

import base64
import binascii
import re

from core.errors import ConfigurationError

MAX_DIGITS = 9


# ── Hex / base64 ──────────────────────────────────────────────────────────────

def bytes_to_hex(raw: bytes) -> str:
    """Encode bytes as upper-case hex, e.g. ``b"\\x00\\x1f"`` -> ``"001F"``."""
    return raw.hex().upper()


def hex_to_bytes(text: str) -> bytes:
    """
    Decode a hex string (either case) to bytes.

    Raises:
        ValueError: On odd length or non-hex characters.
    """
    text = text.strip()
    if not re.fullmatch(r"(?:[0-9A-Fa-f]{2})*", text):
        raise ValueError(f"Invalid hex string of length {len(text)}.")
    return bytes.fromhex(text)


def decode_base64_secret(secret: str) -> bytes:
    """
    Decode a base64-encoded secret to raw bytes.

    Raises:
        ConfigurationError: On invalid or empty base64 input.
    """
    try:
        raw = base64.b64decode(secret.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(f"Invalid base64 secret: {exc}") from exc
    if not raw:
        raise ConfigurationError("Secret key is empty.")
    return raw


# ── Formatting ────────────────────────────────────────────────────────────────

def format_code(code: str, group: int = 4) -> str:
    """
    Format a code with spaces for readability.

    Example::

        >>> format_code("12345678")
        "1234 5678"
    """
    return " ".join(code[i : i + group] for i in range(0, len(code), group))


# ── Validation ────────────────────────────────────────────────────────────────

def validate_digits(digits: int) -> None:
    if isinstance(digits, bool) or not isinstance(digits, int) or not 1 <= digits <= MAX_DIGITS:
        raise ConfigurationError(f"Digits must be between 1 and {MAX_DIGITS}, got {digits!r}.")


def validate_period(period: int) -> None:
    if isinstance(period, bool) or not isinstance(period, int) or period < 1:
        raise ConfigurationError(f"Period must be a positive number of seconds, got {period!r}.")
