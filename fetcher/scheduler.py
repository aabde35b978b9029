"""Polite request scheduler: robots.txt, per-origin delay, then fetch."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from core.config import BotDefaults
from core.errors import BotError, BotErrorKind
from core.models import BotConfig, RequestLog
from core.urls import split_request_url
from exclusion import RuleSet
from fetcher.http import Fetcher, FetchMode, FetchResponse, RequestsFetcher, normalize_headers
from fetcher.logging import emit_event, emit_request_log
from fetcher.politeness import OriginStateStore, PolitenessController
from fetcher.robots import RobotsTxtCache


BLOCKED_MESSAGE = "Request blocked by robots.txt"


def _validation_message(exc: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "config"
        message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{location}: {message}")
    return "; ".join(parts)


class Bot:
    """
    Identified crawler that obeys robots.txt and spaces requests per origin.

    Example:
      bot = Bot("ExampleBot", "1.0", policy_url="https://example.com/bot")
      response = bot.request("https://example.org/page")
    """

    def __init__(
        self,
        name: str,
        version: str,
        *,
        policy_url: str | None = None,
        minimum_request_delay: int | None = None,
        maximum_request_delay: int | None = None,
        user_agent: str | None = None,
        hide_library_agent: bool = False,
        disable_caching: bool = False,
        fetcher: Fetcher | None = None,
        robots_ttl_seconds: int = BotDefaults.ROBOTS_TTL_SECONDS,
        max_origins: int | None = BotDefaults.MAX_ORIGINS,
        sleep_fn: Callable[[float], None] | None = None,
        clock_fn: Callable[[], float] | None = None,
        log_requests: bool = True,
        event_logger: Callable[[str, dict[str, object]], None] | None = None,
    ) -> None:
        """
        Validate identity settings and wire robots, politeness and transport.

        Raises:
            BotError: CONFIGURATION if any setting is invalid.
        """
        settings: dict[str, Any] = {
            "name": name,
            "version": version,
            "policy_url": policy_url,
            "user_agent": user_agent,
            "hide_library_agent": hide_library_agent,
            "disable_caching": disable_caching,
        }
        if minimum_request_delay is not None:
            settings["minimum_request_delay"] = minimum_request_delay
        if maximum_request_delay is not None:
            settings["maximum_request_delay"] = maximum_request_delay

        try:
            self.config = BotConfig(**settings)
        except ValidationError as exc:
            raise BotError(BotErrorKind.CONFIGURATION, _validation_message(exc)) from exc

        self.bot_name = self.config.name
        self.user_agent = self.config.render_user_agent()
        self.log_requests = log_requests
        self.event_logger = event_logger or self._default_event_logger

        self._clock = clock_fn or time.monotonic
        self._fetcher = fetcher or RequestsFetcher()
        self._origins = OriginStateStore(max_entries=max_origins)
        self._politeness = PolitenessController(
            maximum_delay_ms=self.config.maximum_request_delay,
            sleep_fn=sleep_fn,
            clock_fn=self._clock,
        )
        self._robots = RobotsTxtCache(
            self._fetcher,
            headers=self._base_headers(),
            ttl_seconds=robots_ttl_seconds,
            use_cache=not self.config.disable_caching,
            clock_fn=self._clock,
            event_hook=self._emit,
        )

    @staticmethod
    def _default_event_logger(event_type: str, payload: dict[str, object]) -> None:
        """Default event sink writing to structured JSON stdout."""
        emit_event(event_type, **payload)

    def _emit(self, event_type: str, payload: dict[str, object]) -> None:
        self.event_logger(event_type, {"bot": self.bot_name, **payload})

    def _base_headers(self) -> dict[str, str]:
        return {**BotDefaults.DEFAULT_HEADERS, "user-agent": self.user_agent}

    @property
    def origins(self) -> OriginStateStore:
        """Per-origin state (rules, timestamps) tracked by this bot."""
        return self._origins

    def clear_cache(self) -> None:
        """Forget cached robots.txt rules and request timestamps."""
        self._origins.clear()

    def effective_delay(self, rule_set: RuleSet) -> int:
        """Milliseconds to keep between requests under ``rule_set``."""
        declared = rule_set.get_delay(self.bot_name) or 0
        return max(declared, self.config.minimum_request_delay, 0)

    def is_allowed(self, url: str) -> bool:
        """Check robots.txt for ``url`` without sending the request itself."""
        origin, target = split_request_url(url)
        rule_set = self._robots.rules_for(self._origins.get(origin))
        return rule_set.is_path_allowed(target, self.bot_name)

    def request(
        self,
        url: str,
        *,
        stream: bool = False,
        headers: Mapping[str, str] | None = None,
        raise_for_status: bool = True,
        cancel_event: threading.Event | None = None,
    ) -> FetchResponse:
        """
        Fetch ``url`` if robots.txt allows it, after the origin's delay.

        Args:
            url: Absolute http(s) URL
            stream: Hand back a streaming response instead of a buffered one
            headers: Extra request headers (override the defaults)
            raise_for_status: Raise BotError(TRANSPORT) for non-2xx content
            cancel_event: Setting it aborts a pending wait before dispatch

        Raises:
            BotError: BLOCKED, DELAY_EXCEEDED, ROBOTS_SERVER_ERROR, CANCELLED,
                TRANSPORT or MEMORY_SAFETY.
            ValueError: If ``url`` is not an absolute http(s) URL.
        """
        start = time.monotonic()
        origin, target = split_request_url(url)
        entry = self._origins.get(origin)
        waited = 0.0

        def _log(status_code: int | None = None, error_kind: BotErrorKind | None = None) -> None:
            if not self.log_requests:
                return
            emit_request_log(
                RequestLog(
                    url=url,
                    origin=origin,
                    status_code=status_code,
                    latency_ms=int((time.monotonic() - start) * 1000),
                    waited_ms=int(waited * 1000),
                    streamed=stream,
                    error_kind=error_kind,
                )
            )

        try:
            rule_set = self._robots.rules_for(entry)

            if not rule_set.is_path_allowed(target, self.bot_name):
                self._emit("request_blocked", {"url": url, "origin": origin, "path": target})
                raise BotError(BotErrorKind.BLOCKED, BLOCKED_MESSAGE)

            delay_ms = self.effective_delay(rule_set)
            try:
                waited = self._politeness.wait_for_turn(entry, delay_ms, cancel_event=cancel_event)
            except BotError as exc:
                event_type = (
                    "delay_exceeded" if exc.kind is BotErrorKind.DELAY_EXCEEDED else "request_cancelled"
                )
                self._emit(
                    event_type,
                    {"url": url, "origin": origin, "delay_ms": delay_ms, "message": exc.message},
                )
                raise
            if waited > 0:
                self._emit(
                    "request_delayed",
                    {"url": url, "origin": origin, "delay_ms": delay_ms, "waited_ms": int(waited * 1000)},
                )

            response = self._fetcher.fetch(
                url,
                {**self._base_headers(), **normalize_headers(headers)},
                FetchMode.STREAM if stream else FetchMode.BUFFERED,
                raise_for_status=raise_for_status,
                use_cache=not self.config.disable_caching,
            )
        except BotError as exc:
            _log(status_code=exc.status, error_kind=exc.kind)
            raise

        _log(status_code=response.status_code)
        return response
