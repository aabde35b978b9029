"""Politeness controls: per-origin state, request spacing and cancellation."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from core.errors import BotError, BotErrorKind
from exclusion import RuleSet


@dataclass(slots=True, eq=False)
class OriginEntry:
    """Mutable per-origin record owned by the Bot."""

    origin: str
    rule_set: RuleSet | None = None
    rule_set_fetched_at: float | None = None
    last_request_at: float | None = None

    # Bumped after every robots.txt refresh; lets queued callers reuse its outcome.
    refresh_generation: int = 0
    refresh_error: BotError | None = None
    last_refreshed_rules: RuleSet | None = None

    # Callers sleeping towards a slot they reserved in last_request_at.
    pending_waits: int = 0

    delay_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    refresh_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def busy(self) -> bool:
        """True while a caller holds an entry lock or waits for its slot."""
        return self.pending_waits > 0 or self.delay_lock.locked() or self.refresh_lock.locked()


class OriginStateStore:
    """
    Map of origin -> OriginEntry with an optional LRU cap.

    The store lock only guards insertion and eviction; all per-origin work
    happens under the entry's own locks.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, OriginEntry] = OrderedDict()

    def get(self, origin: str) -> OriginEntry:
        """Return the entry for ``origin``, creating it on first use."""
        with self._lock:
            entry = self._entries.get(origin)
            if entry is None:
                entry = OriginEntry(origin=origin)
                self._entries[origin] = entry
                self._evict(keep=origin)
            else:
                self._entries.move_to_end(origin)
            return entry

    def _evict(self, keep: str) -> None:
        if self.max_entries is None:
            return
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        # Entries in use keep their locks alive, so only idle ones are dropped.
        idle = [key for key, entry in self._entries.items() if key != keep and not entry.busy]
        for origin in idle[:overflow]:
            del self._entries[origin]

    def peek(self, origin: str) -> OriginEntry | None:
        """Return the entry for ``origin`` without creating or touching it."""
        with self._lock:
            return self._entries.get(origin)

    def clear(self) -> None:
        """Forget every origin."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, origin: object) -> bool:
        with self._lock:
            return origin in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PolitenessController:
    """Enforce the per-origin delay between dispatched requests."""

    def __init__(
        self,
        maximum_delay_ms: int,
        sleep_fn: Callable[[float], None] | None = None,
        clock_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize wait policy with optional test-time clock hooks."""
        if maximum_delay_ms < 0:
            raise ValueError("maximum_delay_ms must be >= 0")

        self.maximum_delay_ms = maximum_delay_ms
        self._sleep = sleep_fn or time.sleep
        self._clock = clock_fn or time.monotonic

    def _wait(self, seconds: float, cancel_event: threading.Event | None) -> None:
        if cancel_event is None:
            self._sleep(seconds)
        elif cancel_event.wait(seconds):
            raise BotError(BotErrorKind.CANCELLED, "Request cancelled while waiting")

    def wait_for_turn(
        self,
        entry: OriginEntry,
        delay_ms: int,
        cancel_event: threading.Event | None = None,
    ) -> float:
        """
        Reserve the next dispatch slot of ``entry`` and wait until it comes.

        The slot is computed and written to ``last_request_at`` under the
        entry's delay lock, so concurrent callers to one origin queue up
        ``delay_ms`` apart. The wait itself happens outside the lock; a
        cancelled wait gives its slot back. Returns the seconds spent waiting.

        Raises:
            BotError: DELAY_EXCEEDED when the reserved slot is further away
                than the maximum, CANCELLED when ``cancel_event`` is set
                before dispatch.
        """
        delay_seconds = max(delay_ms, 0) / 1000

        with entry.delay_lock:
            if cancel_event is not None and cancel_event.is_set():
                raise BotError(BotErrorKind.CANCELLED, "Request cancelled before dispatch")

            now = self._clock()
            previous = entry.last_request_at
            slot = now if previous is None else max(now, previous + delay_seconds)
            wait_seconds = slot - now
            if wait_seconds * 1000 > self.maximum_delay_ms:
                raise BotError(
                    BotErrorKind.DELAY_EXCEEDED,
                    f"Wait time too long ({int(wait_seconds * 1000)} ms)",
                )
            entry.last_request_at = slot
            if wait_seconds <= 0:
                return 0.0
            entry.pending_waits += 1

        try:
            self._wait(wait_seconds, cancel_event)
        except BotError:
            with entry.delay_lock:
                # Later callers may already be queued behind this slot.
                if entry.last_request_at == slot:
                    entry.last_request_at = previous
            raise
        finally:
            with entry.delay_lock:
                entry.pending_waits -= 1
        return wait_seconds
