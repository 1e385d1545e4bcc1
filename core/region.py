"""
Map two-letter Battle.net region codes to mobile service base URLs.
"""

REGION_US = "US"
REGION_EU = "EU"
REGION_KR = "KR"
REGION_CN = "CN"

MOBILE_URLS: dict[str, str] = {
    REGION_US: "http://mobile-service.blizzard.com",
    REGION_EU: "http://mobile-service.blizzard.com",
    REGION_KR: "http://mobile-service.blizzard.com",
    REGION_CN: "http://mobile-service.battlenet.com.cn",
}

SYNC_PATH = "/enrollment/time.htm"


def resolve(region: str) -> str:
    """
    Return the base URL for ``region``.

    Only the first two characters count and case is ignored, so ``"usa"``
    resolves like ``"US"``.  Unknown or empty codes fall back to the US host.
    """
    code = (region or "").upper()[:2]
    return MOBILE_URLS.get(code, MOBILE_URLS[REGION_US])


def sync_url(region: str) -> str:
    """Full URL of the server time endpoint for ``region``."""
    return resolve(region) + SYNC_PATH
