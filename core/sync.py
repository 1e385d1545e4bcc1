"""
Server time synchronisation.

A :class:`TimeSynchronizer` asks the region's mobile service for its clock
(``GET /enrollment/time.htm`` answering 8 big-endian bytes of epoch
milliseconds) and derives the offset to add to local time.

Failures arm a cooldown held by a :class:`SyncState`.  By default every
synchronizer in the process shares one state, so a failure for one account
suppresses network attempts for all of them until the cooldown expires.
"""

import logging
import struct
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from core.errors import SyncError, SyncProtocolError, SyncTransportError
from core.region import sync_url
from core.totp import current_time_millis

logger = logging.getLogger(__name__)

SYNC_RESPONSE_SIZE = 8
DEFAULT_TIMEOUT = 5.0
DEFAULT_COOLDOWN_MINUTES = 5

Clock = Callable[[], int]


class SyncStatus(str, Enum):
    SYNCED = "synced"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one :meth:`TimeSynchronizer.sync` call."""

    status: SyncStatus
    offset: int                         # ms to add to local time
    server_time: Optional[int] = None   # ms since epoch, SYNCED only
    synced_at: Optional[int] = None     # local ms at success, SYNCED only
    error: Optional[SyncError] = None   # FAILED only

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SYNCED


# ── Cooldown state ────────────────────────────────────────────────────────────

class SyncState:
    """
    Thread-safe cooldown bookkeeping.

    At most one attempt may be in flight per state; a concurrent caller is
    refused as if the cooldown were active.
    """

    _shared: Optional["SyncState"] = None
    _shared_lock = threading.Lock()

    def __init__(self, cooldown_minutes: int = DEFAULT_COOLDOWN_MINUTES) -> None:
        self.cooldown_ms = cooldown_minutes * 60 * 1000
        self._lock = threading.Lock()
        self._failed_at: Optional[int] = None
        self._in_flight = False

    @classmethod
    def shared(cls, cooldown_minutes: int = DEFAULT_COOLDOWN_MINUTES) -> "SyncState":
        """
        Return the process-wide state.

        ``cooldown_minutes`` only takes effect on the call that creates it.
        """
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = cls(cooldown_minutes)
            return cls._shared

    @property
    def failed_at(self) -> Optional[int]:
        return self._failed_at

    def cooldown_active(self, now_ms: int) -> bool:
        with self._lock:
            return self._cooling_down(now_ms)

    def _cooling_down(self, now_ms: int) -> bool:
        return self._failed_at is not None and now_ms < self._failed_at + self.cooldown_ms

    def begin_attempt(self, now_ms: int) -> bool:
        """Claim the right to hit the network; False if cooling down or busy."""
        with self._lock:
            if self._in_flight or self._cooling_down(now_ms):
                return False
            self._in_flight = True
            return True

    def record_success(self) -> None:
        with self._lock:
            self._failed_at = None
            self._in_flight = False

    def record_failure(self, now_ms: int) -> None:
        with self._lock:
            self._failed_at = now_ms
            self._in_flight = False

    def reset(self) -> None:
        with self._lock:
            self._failed_at = None
            self._in_flight = False


# ── Synchronizers ─────────────────────────────────────────────────────────────

class TimeSynchronizer:
    """Fetch authoritative server time for a region over HTTP."""

    def __init__(
        self,
        state: Optional[SyncState] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Clock = current_time_millis,
    ) -> None:
        """
        Args:
            state:   Cooldown state; the process-wide one if None.
            session: HTTP session; a private :class:`requests.Session` if None.
            timeout: Request timeout in seconds.
            clock:   Local time source in epoch milliseconds.
        """
        self.state = state if state is not None else SyncState.shared()
        self._session = session
        self.timeout = timeout
        self.clock = clock

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def sync(self, region: str, current_offset: int = 0) -> SyncResult:
        """
        Synchronise with the server for ``region``.

        Never raises for network or protocol problems: those come back as a
        FAILED result with ``offset == 0``.  While the cooldown is active the
        call is SKIPPED and ``current_offset`` is handed back unchanged.
        """
        now = self.clock()
        if not self.state.begin_attempt(now):
            logger.debug("Time sync for region %r suppressed by cooldown.", region)
            return SyncResult(SyncStatus.SKIPPED, current_offset)

        url = sync_url(region)
        try:
            server_time = self._fetch_server_time(url)
        except SyncError as exc:
            self.state.record_failure(self.clock())
            logger.warning(
                "Time sync with %s failed (%s); retrying after %d minute(s).",
                url, exc, self.state.cooldown_ms // 60_000,
            )
            # The previous offset is discarded rather than kept as last known
            # good, so a single failed request undoes an earlier correction.
            return SyncResult(SyncStatus.FAILED, 0, error=exc)
        except BaseException:
            # Unexpected errors still release the in-flight claim.
            self.state.record_failure(self.clock())
            raise

        synced_at = self.clock()
        offset = server_time - synced_at
        self.state.record_success()
        logger.info("Time synced with %s: offset %d ms.", url, offset)
        return SyncResult(SyncStatus.SYNCED, offset, server_time=server_time, synced_at=synced_at)

    def _fetch_server_time(self, url: str) -> int:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise SyncTransportError(f"GET {url}: {exc}") from exc

        if response.status_code != requests.codes.ok:
            raise SyncTransportError(f"{response.status_code}: {response.reason}")

        body = response.content
        if len(body) != SYNC_RESPONSE_SIZE:
            raise SyncProtocolError(
                f"Invalid response data size (expected {SYNC_RESPONSE_SIZE} got {len(body)})"
            )
        return struct.unpack(">Q", body)[0]


class LocalTimeSource:
    """Synchronizer for plain TOTP accounts: local time is authoritative."""

    def __init__(self, clock: Clock = current_time_millis) -> None:
        self.clock = clock

    def sync(self, region: str, current_offset: int = 0) -> SyncResult:
        now = self.clock()
        return SyncResult(SyncStatus.SYNCED, 0, server_time=now, synced_at=now)
