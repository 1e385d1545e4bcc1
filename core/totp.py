"""
TOTP (Time-based One-Time Password) helpers following RFC 6238.

Time is handled in milliseconds since the Unix epoch so that a server clock
offset (also in milliseconds) can be added before bucketing into periods.
"""

import time
from enum import Enum
from typing import Optional, Union

from core.errors import UnsupportedHMACVariantError

DEFAULT_PERIOD = 30


class HMACVariant(str, Enum):
    """Supported HMAC hash functions."""

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @classmethod
    def parse(cls, value: Union[str, int, "HMACVariant"]) -> "HMACVariant":
        """
        Resolve a variant from its name (case-insensitive) or its ordinal.

        ``"sha256"``, ``"SHA256"`` and ``1`` all resolve to :attr:`SHA256`.

        Raises:
            UnsupportedHMACVariantError: For anything else.
        """
        if isinstance(value, cls):
            return value
        members = list(cls)
        text = str(value).strip()
        if text.isdigit():
            index = int(text)
            if index < len(members):
                return members[index]
        else:
            try:
                return cls(text.upper())
            except ValueError:
                pass
        raise UnsupportedHMACVariantError(
            f"Unsupported HMAC variant '{value}'. Supported: SHA1, SHA256, SHA512."
        )


_HASH_NAMES: dict[HMACVariant, str] = {
    HMACVariant.SHA1: "sha1",
    HMACVariant.SHA256: "sha256",
    HMACVariant.SHA512: "sha512",
}


def hash_name(variant: HMACVariant) -> str:
    """Return the :mod:`hashlib` name for ``variant``."""
    try:
        return _HASH_NAMES[variant]
    except KeyError:
        raise UnsupportedHMACVariantError(
            f"Unsupported HMAC variant '{variant}'. Supported: SHA1, SHA256, SHA512."
        ) from None


def current_time_millis() -> int:
    """Milliseconds since 1970-01-01 UTC (like Java's currentTimeMillis)."""
    return time.time_ns() // 1_000_000


def code_interval(
    period: int = DEFAULT_PERIOD,
    offset: int = 0,
    now_ms: Optional[int] = None,
) -> int:
    """
    Return the counter for the time step containing ``now_ms + offset``.

    Args:
        period: Seconds per step.
        offset: Server time offset in milliseconds.
        now_ms: Local time override in ms (uses the system clock if None).

    Returns:
        ``floor((now_ms + offset) / (period * 1000))``.
    """
    t = now_ms if now_ms is not None else current_time_millis()
    return (t + offset) // (period * 1000)


def remaining_seconds(
    period: int = DEFAULT_PERIOD,
    offset: int = 0,
    now_ms: Optional[int] = None,
) -> int:
    """Return whole seconds until the current step expires (1..period)."""
    t = now_ms if now_ms is not None else current_time_millis()
    return period - ((t + offset) // 1000) % period
