"""
HOTP (HMAC-based One-Time Password) computation following RFC 4226.
"""

import hmac
import struct

from core.errors import ConfigurationError
from core.totp import HMACVariant, hash_name
from core.utils import validate_digits


def compute_code(
    secret: bytes,
    variant: HMACVariant = HMACVariant.SHA1,
    digits: int = 6,
    counter: int = 0,
) -> str:
    """
    Compute a one-time code for ``counter``.

    Args:
        secret:  Raw shared key bytes.
        variant: HMAC hash function.
        digits:  Number of decimal digits to emit (1-9).
        counter: Unsigned 64-bit counter or time-step value.

    Returns:
        Zero-padded code string of exactly ``digits`` characters.

    Raises:
        ConfigurationError: Empty secret or invalid digit count.
        UnsupportedHMACVariantError: Unknown ``variant``.
    """
    if not secret:
        raise ConfigurationError("Secret key is empty.")
    validate_digits(digits)
    if counter < 0 or counter > 0xFFFFFFFFFFFFFFFF:
        raise ConfigurationError(f"Counter {counter} is outside the unsigned 64-bit range.")

    msg = struct.pack(">Q", counter)
    digest = hmac.new(secret, msg, hash_name(HMACVariant.parse(variant))).digest()

    # Dynamic truncation (RFC 4226 section 5.3)
    offset = digest[-1] & 0x0F
    full_code = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF

    return str(full_code % (10**digits)).zfill(digits)
