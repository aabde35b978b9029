"""
Default politeness configuration for polite-crawl.

These settings are the library-wide defaults. Per-bot values (name, version,
delay bounds) live on BotConfig and are validated when a Bot is built.

Design: Everything defaults to "safe + slow" mode. A bot that does not say
otherwise waits one second between requests to the same origin and refuses
to wait longer than ten.
"""

from typing import Set


class BotDefaults:
    """
    Library-wide politeness defaults.

    Delays are milliseconds, everything else uses the unit in its name.
    """

    # ========================================================================
    # Request Spacing
    # ========================================================================

    # Minimum gap between two requests to the same origin
    MINIMUM_REQUEST_DELAY_MS: int = 1000
    """Applied when robots.txt declares no (or a smaller) crawl-delay."""

    # Longest wait a caller is willing to be suspended for
    MAXIMUM_REQUEST_DELAY_MS: int = 10_000
    """Waits beyond this fail with DELAY_EXCEEDED instead of sleeping."""

    # ========================================================================
    # Robots.txt
    # ========================================================================

    ROBOTS_TTL_SECONDS: int = 24 * 3600
    """How long a parsed robots.txt is reused before it is fetched again."""

    # Cap on tracked origins (LRU); None disables eviction
    MAX_ORIGINS: int | None = 1000
    """Max origins with cached rules and request timestamps."""

    # ========================================================================
    # Transport
    # ========================================================================

    ALLOWED_PROTOCOLS: Set[str] = {"http", "https"}
    """Only HTTP(S) allowed."""

    FETCH_TIMEOUT_SECONDS: int = 60
    """Maximum time to wait for a single fetch (seconds)."""

    MAX_REDIRECTS: int = 5
    """Maximum redirect hops per fetch (RFC 9309 asks for at least five)."""

    MAX_BODY_BYTES: int = 10_000_000
    """Buffered responses larger than this are refused."""

    DEFAULT_HEADERS: dict[str, str] = {
        "accept": "text/html;q=0.9,image/webp,*/*;q=0.8",
        "accept-language": "en-US,en;q=0.5",
        "upgrade-insecure-requests": "1",
    }
    """Headers sent with every request unless the caller overrides them."""

    # ========================================================================
    # Identity
    # ========================================================================

    LIBRARY_NAME: str = "PoliteCrawl"
    LIBRARY_VERSION: str = "0.1"

    # robots.txt groups naming this token apply to every bot built on the library
    LIBRARY_TOKEN: str = LIBRARY_NAME
    """User-agent token matched as a substring in robots.txt groups."""

    DEFAULT_POLICY_URL: str = "https://bit.ly/engine-source"
    """Policy link used in the user-agent when a bot has none of its own."""

    @classmethod
    def library_agent(cls) -> str:
        """Return the library marker appended to outbound user-agents."""
        return f"{cls.LIBRARY_NAME}/{cls.LIBRARY_VERSION}"

    @classmethod
    def validate(cls) -> None:
        """
        Validate configuration at startup.

        Raises:
            ValueError: If any constraint is violated.
        """
        if cls.MINIMUM_REQUEST_DELAY_MS < 0:
            raise ValueError("MINIMUM_REQUEST_DELAY_MS must be >= 0")

        if cls.MAXIMUM_REQUEST_DELAY_MS < cls.MINIMUM_REQUEST_DELAY_MS:
            raise ValueError("MAXIMUM_REQUEST_DELAY_MS must be >= MINIMUM_REQUEST_DELAY_MS")

        if cls.ROBOTS_TTL_SECONDS < 0:
            raise ValueError("ROBOTS_TTL_SECONDS must be >= 0")

        if cls.MAX_ORIGINS is not None and cls.MAX_ORIGINS < 1:
            raise ValueError("MAX_ORIGINS must be >= 1 or None")

        if cls.MAX_REDIRECTS < 0:
            raise ValueError("MAX_REDIRECTS must be >= 0")

        if cls.MAX_BODY_BYTES <= 0:
            raise ValueError("MAX_BODY_BYTES must be > 0")

        if not cls.LIBRARY_TOKEN:
            raise ValueError("LIBRARY_TOKEN must not be empty")


# Validate at module import time
BotDefaults.validate()
