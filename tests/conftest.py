"""
Shared pytest fixtures and configuration for polite-crawl tests.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping

import pytest

from fetcher.http import FetchMode, FetchResponse, Fetcher


# ============================================================================
# Test Doubles
# ============================================================================

class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher(Fetcher):
    """
    Fetcher serving scripted robots.txt answers and fixed page bodies.

    ``robots`` is a list of (status_code, body) tuples or exceptions consumed
    in order; the last item repeats once the list runs out.
    """

    def __init__(
        self,
        robots: list[object] | None = None,
        robots_latency: float = 0.0,
        page_error: Exception | None = None,
    ) -> None:
        self.robots = list(robots or [(404, "")])
        self.robots_latency = robots_latency
        self.page_error = page_error
        self.calls: list[dict[str, object]] = []
        self.dispatch_times: list[float] = []
        self._lock = threading.Lock()

    @property
    def robots_calls(self) -> list[dict[str, object]]:
        return [call for call in self.calls if str(call["url"]).endswith("/robots.txt")]

    @property
    def page_calls(self) -> list[dict[str, object]]:
        return [call for call in self.calls if not str(call["url"]).endswith("/robots.txt")]

    def fetch(
        self,
        url: str,
        headers: Mapping[str, str],
        mode: FetchMode = FetchMode.BUFFERED,
        *,
        raise_for_status: bool = True,
        use_cache: bool = True,
    ) -> FetchResponse:
        with self._lock:
            self.calls.append(
                {
                    "url": url,
                    "headers": dict(headers),
                    "mode": mode,
                    "raise_for_status": raise_for_status,
                    "use_cache": use_cache,
                }
            )

        if url.endswith("/robots.txt"):
            if self.robots_latency:
                time.sleep(self.robots_latency)
            with self._lock:
                item = self.robots.pop(0) if len(self.robots) > 1 else self.robots[0]
            if isinstance(item, Exception):
                raise item
            status_code, body = item
            return FetchResponse(url=url, status_code=status_code, body=body.encode("utf-8"))

        with self._lock:
            self.dispatch_times.append(time.monotonic())
        if self.page_error is not None:
            raise self.page_error
        if mode is FetchMode.STREAM:
            return FetchResponse(url=url, status_code=200, stream=iter([b"page:", url.encode()]))
        return FetchResponse(url=url, status_code=200, body=f"page:{url}".encode("utf-8"))


class EventRecorder:
    """Capture bot events passed to the event_logger hook."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def __call__(self, event_type: str, payload: dict[str, object]) -> None:
        self.events.append((event_type, payload))

    def of_type(self, event_type: str) -> list[dict[str, object]]:
        return [payload for name, payload in self.events if name == event_type]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    """Deterministic clock + sleep pair."""
    return FakeClock()


@pytest.fixture
def stub_fetcher_factory():
    """Build StubFetcher instances with scripted robots.txt answers."""
    return StubFetcher


@pytest.fixture
def events() -> EventRecorder:
    """Recorder for bot events."""
    return EventRecorder()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end integration tests")
    config.addinivalue_line("markers", "unit: unit tests")
