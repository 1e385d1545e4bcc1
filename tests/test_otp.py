"""Tests for core.hotp and core.totp."""

import pytest

from core.errors import ConfigurationError, UnsupportedHMACVariantError
from core.hotp import compute_code
from core.totp import HMACVariant, code_interval, remaining_seconds
from core.utils import format_code


# ── RFC 4226 Appendix D test vectors ─────────────────────────────────────────
# Secret: "12345678901234567890" (as bytes)
RFC_SECRET = b"12345678901234567890"
RFC_HOTP_EXPECTED = [
    "755224", "287082", "359152", "969429", "338314",
    "254676", "287922", "162583", "399871", "520489",
]


@pytest.mark.parametrize("counter,expected", list(enumerate(RFC_HOTP_EXPECTED)))
def test_hotp_rfc4226_vectors(counter: int, expected: str) -> None:
    code = compute_code(RFC_SECRET, HMACVariant.SHA1, digits=6, counter=counter)
    assert code == expected, f"HOTP counter={counter}: got {code}, expected {expected}"


# ── RFC 6238 TOTP test vectors ────────────────────────────────────────────────
# Source: RFC 6238, Appendix B.  Timestamps in seconds, secrets vary by algorithm.

_SHA1_SECRET = b"12345678901234567890"
_SHA256_SECRET = b"12345678901234567890123456789012"
_SHA512_SECRET = b"1234567890123456789012345678901234567890123456789012345678901234"

_TOTP_VECTORS = [
    (59,          HMACVariant.SHA1,   _SHA1_SECRET,   "94287082"),
    (59,          HMACVariant.SHA256, _SHA256_SECRET, "46119246"),
    (59,          HMACVariant.SHA512, _SHA512_SECRET, "90693936"),
    (1111111109,  HMACVariant.SHA1,   _SHA1_SECRET,   "07081804"),
    (1111111109,  HMACVariant.SHA256, _SHA256_SECRET, "68084774"),
    (1111111109,  HMACVariant.SHA512, _SHA512_SECRET, "25091201"),
    (1234567890,  HMACVariant.SHA1,   _SHA1_SECRET,   "89005924"),
    (2000000000,  HMACVariant.SHA256, _SHA256_SECRET, "90698825"),
    (20000000000, HMACVariant.SHA1,   _SHA1_SECRET,   "65353130"),
    (20000000000, HMACVariant.SHA512, _SHA512_SECRET, "47863826"),
]


@pytest.mark.parametrize("ts,variant,secret,expected", _TOTP_VECTORS)
def test_totp_rfc6238_vectors(ts: int, variant: HMACVariant, secret: bytes, expected: str) -> None:
    counter = code_interval(period=30, offset=0, now_ms=ts * 1000)
    assert compute_code(secret, variant, digits=8, counter=counter) == expected


# ── Output shape ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("digits", [6, 7, 8])
def test_code_length_and_charset(digits: int) -> None:
    for counter in range(200):
        code = compute_code(b"\x8f\x02\xaa\x10" * 5, HMACVariant.SHA256, digits, counter)
        assert len(code) == digits
        assert code.isdigit()


def test_code_is_left_padded_with_zeros() -> None:
    # RFC 6238 vector whose 8-digit code starts with a zero
    counter = code_interval(30, 0, 1111111109 * 1000)
    assert compute_code(_SHA1_SECRET, HMACVariant.SHA1, 8, counter) == "07081804"


def test_nine_digit_code() -> None:
    code = compute_code(RFC_SECRET, HMACVariant.SHA1, 9, 0)
    assert len(code) == 9
    # 6-digit code is the low-order digits of the same truncated value
    assert code.endswith("755224")


def test_variants_give_different_codes() -> None:
    codes = {compute_code(RFC_SECRET, v, 8, 1) for v in HMACVariant}
    assert len(codes) == 3


# ── Errors ────────────────────────────────────────────────────────────────────

def test_empty_secret_raises() -> None:
    with pytest.raises(ConfigurationError):
        compute_code(b"", HMACVariant.SHA1, 6, 0)


@pytest.mark.parametrize("digits", [0, -1, 10])
def test_invalid_digits_raise(digits: int) -> None:
    with pytest.raises(ConfigurationError):
        compute_code(RFC_SECRET, HMACVariant.SHA1, digits, 0)


def test_negative_counter_raises() -> None:
    with pytest.raises(ConfigurationError):
        compute_code(RFC_SECRET, HMACVariant.SHA1, 6, -1)


def test_unsupported_variant_raises() -> None:
    with pytest.raises(UnsupportedHMACVariantError):
        compute_code(RFC_SECRET, "MD5", 6, 0)


# ── HMACVariant.parse ─────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "value,expected",
    [
        ("SHA1", HMACVariant.SHA1),
        ("sha256", HMACVariant.SHA256),
        ("2", HMACVariant.SHA512),
        (0, HMACVariant.SHA1),
        (HMACVariant.SHA256, HMACVariant.SHA256),
    ],
)
def test_variant_parse(value, expected: HMACVariant) -> None:
    assert HMACVariant.parse(value) is expected


@pytest.mark.parametrize("value", ["MD5", "3", "", "SHA-1"])
def test_variant_parse_rejects(value: str) -> None:
    with pytest.raises(UnsupportedHMACVariantError):
        HMACVariant.parse(value)


# ── Intervals ─────────────────────────────────────────────────────────────────

def test_code_interval_applies_offset() -> None:
    assert code_interval(30, 0, 59_999) == 1
    assert code_interval(30, 1, 59_999) == 2
    assert code_interval(30, -30_000, 60_000) == 1


def test_period_changes_counter_boundary() -> None:
    t1, t2 = 60_000, 100_000  # 40 s apart, same 60 s bucket
    c1, c2 = code_interval(30, 0, t1), code_interval(30, 0, t2)
    assert compute_code(RFC_SECRET, HMACVariant.SHA1, 6, c1) != compute_code(RFC_SECRET, HMACVariant.SHA1, 6, c2)

    c1, c2 = code_interval(60, 0, t1), code_interval(60, 0, t2)
    assert compute_code(RFC_SECRET, HMACVariant.SHA1, 6, c1) == compute_code(RFC_SECRET, HMACVariant.SHA1, 6, c2)


def test_remaining_seconds_at_boundary() -> None:
    assert remaining_seconds(30, 0, 0) == 30
    assert remaining_seconds(30, 0, 29_000) == 1
    assert remaining_seconds(30, 1_000, 29_000) == 30


def test_remaining_seconds_system_clock() -> None:
    assert 0 < remaining_seconds(30) <= 30


# ── Formatting ────────────────────────────────────────────────────────────────

def test_format_code_8_digits() -> None:
    assert format_code("12345678") == "1234 5678"


def test_format_code_6_digits_groups_of_3() -> None:
    assert format_code("123456", group=3) == "123 456"
