"""Tests for core.region."""

import pytest

from core.region import MOBILE_URLS, resolve, sync_url

US_URL = "http://mobile-service.blizzard.com"
CN_URL = "http://mobile-service.battlenet.com.cn"


@pytest.mark.parametrize(
    "region,expected",
    [
        ("US", US_URL),
        ("us", US_URL),
        ("EU", US_URL),
        ("KR", US_URL),
        ("CN", CN_URL),
        ("cn", CN_URL),
        ("USA", US_URL),
        ("CN-1234-5678-9012", CN_URL),
        ("XX", US_URL),
        ("", US_URL),
        ("C", US_URL),
    ],
    ids=["US", "lower", "EU", "KR", "CN", "cn-lower", "truncate", "serial", "unknown", "empty", "short"],
)
def test_resolve(region: str, expected: str) -> None:
    assert resolve(region) == expected


def test_case_insensitive_and_fallback_match() -> None:
    assert resolve("us") == resolve("US") == resolve("XX")


def test_none_falls_back_to_us() -> None:
    assert resolve(None) == MOBILE_URLS["US"]  # type: ignore[arg-type]


def test_sync_url() -> None:
    assert sync_url("EU") == US_URL + "/enrollment/time.htm"
    assert sync_url("CN") == CN_URL + "/enrollment/time.htm"
