"""Robots.txt refresh with TTL cache and RFC 9309 status handling."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping

from core.config import BotDefaults
from core.errors import BotError, BotErrorKind
from exclusion import RuleSet
from fetcher.http import Fetcher, FetchMode
from fetcher.politeness import OriginEntry


ROBOTS_SERVER_ERROR_MESSAGE = "Robots.txt server error"


class RobotsTxtCache:
    """
    Obtain the RuleSet for an origin, fetching robots.txt when needed.

    Parsed files are cached on the OriginEntry for ``ttl_seconds``. A 4xx
    answer yields an allow-all RuleSet that is never cached; a 5xx answer
    fails the request and clears whatever was cached before.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        headers: Mapping[str, str],
        ttl_seconds: int = BotDefaults.ROBOTS_TTL_SECONDS,
        use_cache: bool = True,
        clock_fn: Callable[[], float] | None = None,
        event_hook: Callable[[str, dict[str, object]], None] | None = None,
    ) -> None:
        """Initialize refresh dependencies, TTL policy and event sink."""
        self._fetcher = fetcher
        self._headers = dict(headers)
        self.ttl_seconds = ttl_seconds
        self.use_cache = use_cache
        self._clock = clock_fn or time.monotonic
        self._event_hook = event_hook

    def _emit(self, event_type: str, payload: dict[str, object]) -> None:
        if self._event_hook:
            self._event_hook(event_type, payload)

    def _cached(self, entry: OriginEntry) -> RuleSet | None:
        if entry.rule_set is None or entry.rule_set_fetched_at is None:
            return None
        if self._clock() - entry.rule_set_fetched_at >= self.ttl_seconds:
            return None
        return entry.rule_set

    def rules_for(self, entry: OriginEntry) -> RuleSet:
        """
        Return the RuleSet governing ``entry.origin``.

        Only one refresh per origin runs at a time; callers that queued
        behind it receive the same outcome instead of fetching again.

        Raises:
            BotError: ROBOTS_SERVER_ERROR for a 5xx robots.txt, TRANSPORT when
                robots.txt cannot be fetched.
            InvalidPathError: If robots.txt contains a malformed path.
        """
        cached = self._cached(entry)
        if cached is not None:
            return cached

        observed_generation = entry.refresh_generation
        with entry.refresh_lock:
            if entry.refresh_generation != observed_generation:
                if entry.refresh_error is not None:
                    shared = entry.refresh_error
                    raise BotError(shared.kind, shared.message, status=shared.status) from shared
                if entry.last_refreshed_rules is not None:
                    return entry.last_refreshed_rules

            cached = self._cached(entry)
            if cached is not None:
                return cached

            try:
                rule_set = self._refresh(entry)
            except BotError as exc:
                entry.refresh_error = exc
                entry.last_refreshed_rules = None
                entry.refresh_generation += 1
                raise
            entry.refresh_error = None
            entry.last_refreshed_rules = rule_set
            entry.refresh_generation += 1
            return rule_set

    def _refresh(self, entry: OriginEntry) -> RuleSet:
        robots_url = f"{entry.origin}/robots.txt"
        response = self._fetcher.fetch(
            robots_url,
            self._headers,
            FetchMode.BUFFERED,
            raise_for_status=False,
            use_cache=self.use_cache,
        )
        status_code = response.status_code

        if 400 <= status_code < 500:
            entry.rule_set = None
            entry.rule_set_fetched_at = None
            self._emit(
                "robots_allow_all",
                {
                    "origin": entry.origin,
                    "robots_url": robots_url,
                    "robots_status_code": status_code,
                    "message": f"robots.txt returned {status_code} for {robots_url}; allowing",
                },
            )
            return RuleSet.allow_all()

        if status_code >= 500:
            entry.rule_set = None
            entry.rule_set_fetched_at = None
            self._emit(
                "robots_server_error",
                {
                    "origin": entry.origin,
                    "robots_url": robots_url,
                    "robots_status_code": status_code,
                },
            )
            raise BotError(
                BotErrorKind.ROBOTS_SERVER_ERROR,
                ROBOTS_SERVER_ERROR_MESSAGE,
                status=status_code,
            )

        # RFC 9309 files are UTF-8 whatever charset the server advertises.
        rule_set = RuleSet((response.body or b"").decode("utf-8", errors="replace"))
        entry.rule_set = rule_set
        entry.rule_set_fetched_at = self._clock()
        self._emit(
            "robots_fetched",
            {
                "origin": entry.origin,
                "robots_url": robots_url,
                "robots_status_code": status_code,
                "rule_count": len(rule_set),
                "from_cache": response.from_cache,
            },
        )
        return rule_set
