"""Shared fakes for the authsync tests."""

import struct
from typing import Callable, List, Optional

import pytest
import requests

from core.sync import SyncState


class FakeClock:
    """Injectable epoch-millisecond clock."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", reason: str = "OK") -> None:
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeSession:
    """Stands in for :class:`requests.Session`, recording every GET."""

    def __init__(
        self,
        response: Optional[FakeResponse] = None,
        error: Optional[Exception] = None,
        on_get: Optional[Callable[[], None]] = None,
    ) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.on_get = on_get
        self.calls: List[dict] = []

    def get(self, url: str, timeout: float = None) -> FakeResponse:
        self.calls.append({"url": url, "timeout": timeout})
        if self.on_get is not None:
            self.on_get()
        if self.error is not None:
            raise self.error
        return self.response


def server_time_response(server_ms: int) -> FakeResponse:
    return FakeResponse(200, struct.pack(">Q", server_ms))


@pytest.fixture(autouse=True)
def _fresh_shared_sync_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test starts with no process-wide cooldown armed."""
    monkeypatch.setattr(SyncState, "_shared", None)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def failing_session() -> FakeSession:
    return FakeSession(error=requests.exceptions.ConnectionError("network unreachable"))
