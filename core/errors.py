"""Error taxonomy for the polite-crawl bot."""

from __future__ import annotations

from enum import Enum


class BotErrorKind(str, Enum):
    """Why did a bot request fail?"""
    CONFIGURATION = "CONFIGURATION"  # Invalid bot name/version/URL/delay bounds
    BLOCKED = "BLOCKED"  # robots.txt disallows the path
    DELAY_EXCEEDED = "DELAY_EXCEEDED"  # Required wait is above the configured maximum
    ROBOTS_SERVER_ERROR = "ROBOTS_SERVER_ERROR"  # robots.txt answered >= 500
    TRANSPORT = "TRANSPORT"  # DNS, timeout, connection, redirect or HTTP status failure
    MEMORY_SAFETY = "MEMORY_SAFETY"  # Response body above the configured limit
    CANCELLED = "CANCELLED"  # Caller abandoned the request while it was waiting


class BotError(Exception):
    """
    Raised for every request-level failure of a Bot.

    Callers switch on ``kind`` rather than on exception subclasses.
    ``status`` carries the HTTP status code when one is involved.
    """

    def __init__(self, kind: BotErrorKind, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"BotError(kind={self.kind.value!r}, message={self.message!r}, status={self.status!r})"
