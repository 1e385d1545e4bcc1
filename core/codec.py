"""
Text serialisation of an authenticator's secret data.

Current format::

    HEX(secret) TAB digits TAB variant TAB period [ "|" HEX(utf8 identity) ]

Older releases wrote two other shapes, still accepted by :func:`decode`:

* ``HEX(secret) HEX(identity)`` with no separators, the secret being the
  first 40 hex characters;
* ``base | script | HEX(identity)`` with an unused middle segment.

Only the secret is mandatory.  Any other field that is missing or cannot be
parsed keeps the caller's default.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from core.errors import ConfigurationError, SecretFormatError
from core.totp import DEFAULT_PERIOD, HMACVariant
from core.utils import bytes_to_hex, hex_to_bytes, validate_digits, validate_period

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\t"
IDENTITY_SEPARATOR = "|"
LEGACY_SECRET_HEX_LENGTH = 40


class SecretFormat(str, Enum):
    """Shape an encoded string was recognised as."""

    BASE = "base"                      # no identity
    LEGACY = "legacy"                  # hex(secret) + hex(identity), no separators
    IDENTITY = "identity"              # base | hex(identity)
    IDENTITY_SCRIPT = "identity-script"  # base | ignored | hex(identity)


@dataclass(frozen=True)
class SecretBundle:
    """Provisioning data carried by the text format."""

    secret: bytes
    digits: int = 6
    variant: HMACVariant = HMACVariant.SHA1
    period: int = DEFAULT_PERIOD
    identity: Optional[str] = None


@dataclass(frozen=True)
class DecodeResult:
    bundle: SecretBundle
    format: SecretFormat


def encode(
    secret: bytes,
    digits: int = 6,
    variant: HMACVariant = HMACVariant.SHA1,
    period: int = DEFAULT_PERIOD,
    identity: Optional[str] = None,
) -> str:
    """
    Serialise secret data to the current text format.

    ``identity=None`` omits the ``|`` segment entirely; an empty string
    writes an empty one.

    Raises:
        ConfigurationError: Empty secret, bad digits or bad period.
    """
    if not secret:
        raise ConfigurationError("Secret key is empty.")
    validate_digits(digits)
    validate_period(period)
    variant = HMACVariant.parse(variant)

    text = FIELD_SEPARATOR.join(
        (bytes_to_hex(secret), str(digits), variant.value, str(period))
    )
    if identity is not None:
        text += IDENTITY_SEPARATOR + bytes_to_hex(identity.encode("utf-8"))
    return text


def encode_bundle(bundle: SecretBundle) -> str:
    return encode(bundle.secret, bundle.digits, bundle.variant, bundle.period, bundle.identity)


def decode(
    text: str,
    defaults: Optional[SecretBundle] = None,
    allow_legacy: bool = True,
) -> DecodeResult:
    """
    Parse secret data in any supported shape.

    Args:
        text:     Encoded string.
        defaults: Values for fields that are absent or unparsable.  Its
                  ``secret`` is ignored.
        allow_legacy: Recognise the separator-less legacy shape.  Without it
                  a single segment is always read as the base shape.

    Returns:
        The decoded bundle tagged with the recognised :class:`SecretFormat`.

    Raises:
        SecretFormatError: Empty input, missing or invalid secret hex, or an
            unrecognised number of ``|`` segments.
    """
    if not text or not text.strip():
        raise SecretFormatError("Secret data is empty.")
    base = defaults or SecretBundle(secret=b"")
    text = text.strip("\r\n")
    segments = text.split(IDENTITY_SEPARATOR)

    if len(segments) == 1:
        if allow_legacy and FIELD_SEPARATOR not in text and len(text) > LEGACY_SECRET_HEX_LENGTH:
            secret = _decode_secret(text[:LEGACY_SECRET_HEX_LENGTH])
            identity = _decode_identity(text[LEGACY_SECRET_HEX_LENGTH:], base.identity)
            return DecodeResult(replace(base, secret=secret, identity=identity), SecretFormat.LEGACY)
        return DecodeResult(_decode_fields(text, base), SecretFormat.BASE)

    if len(segments) == 2:
        bundle = _decode_fields(segments[0], base)
        identity = _decode_identity(segments[1], base.identity)
        return DecodeResult(replace(bundle, identity=identity), SecretFormat.IDENTITY)

    if len(segments) == 3:
        bundle = _decode_fields(segments[0], base)
        identity = _decode_identity(segments[2], base.identity)
        return DecodeResult(replace(bundle, identity=identity), SecretFormat.IDENTITY_SCRIPT)

    raise SecretFormatError(
        f"Expected at most 2 '{IDENTITY_SEPARATOR}' separators, found {len(segments) - 1}."
    )


# ── Internals ─────────────────────────────────────────────────────────────────

def _decode_secret(hex_text: str) -> bytes:
    try:
        secret = hex_to_bytes(hex_text)
    except ValueError as exc:
        raise SecretFormatError(f"Secret is not valid hex: {exc}") from exc
    if not secret:
        raise SecretFormatError("Secret is missing.")
    return secret


def _decode_fields(text: str, base: SecretBundle) -> SecretBundle:
    parts = text.split(FIELD_SEPARATOR)
    bundle = replace(base, secret=_decode_secret(parts[0]))

    if len(parts) > 1:
        try:
            digits = int(parts[1])
            validate_digits(digits)
            bundle = replace(bundle, digits=digits)
        except (ValueError, ConfigurationError):
            logger.warning("Ignoring unparsable digit count %r.", parts[1])
    if len(parts) > 2:
        try:
            bundle = replace(bundle, variant=HMACVariant.parse(parts[2]))
        except ConfigurationError:
            logger.warning("Ignoring unknown HMAC variant %r.", parts[2])
    if len(parts) > 3:
        try:
            period = int(parts[3])
            validate_period(period)
            bundle = replace(bundle, period=period)
        except (ValueError, ConfigurationError):
            logger.warning("Ignoring unparsable period %r.", parts[3])
    return bundle


def _decode_identity(hex_text: str, default: Optional[str]) -> Optional[str]:
    try:
        return hex_to_bytes(hex_text).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        logger.warning("Ignoring undecodable identity segment.")
        return default
