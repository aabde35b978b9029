"""
Core Pydantic models for polite-crawl.

Design principles:
- Bot settings are validated once, before any request is attempted
- Request outcomes are logged as explicit records, not free text
"""

import re
from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.config import BotDefaults
from core.errors import BotErrorKind


_NAME_PATTERN = re.compile(r"^[a-zA-Z_-]+$")
_VERSION_PATTERN = re.compile(r"^\d+(\.\d+){0,2}$")


# ============================================================================
# Bot Configuration
# ============================================================================

class BotConfig(BaseModel):
    """
    Identity and politeness settings for one bot.

    Example:
      name = "ExampleBot"
      version = "1.2"
      policy_url = "https://example.com/bot.html"
      minimum_request_delay = 2000   # ms
      maximum_request_delay = 15000  # ms
    """
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    policy_url: Optional[str] = None

    minimum_request_delay: int = Field(default=BotDefaults.MINIMUM_REQUEST_DELAY_MS, ge=0)
    maximum_request_delay: int = Field(default=BotDefaults.MAXIMUM_REQUEST_DELAY_MS, ge=0)

    user_agent: Optional[str] = None  # Full override of the derived user-agent
    hide_library_agent: bool = False  # Drop the library marker from the user-agent
    disable_caching: bool = False  # Ask the fetcher to bypass response caches

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Bot name must be a plain product token."""
        if not _NAME_PATTERN.match(v):
            raise ValueError("Bot name must only contain a-zA-Z_-")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Version must be #, #.# or #.#.#."""
        if not _VERSION_PATTERN.match(v):
            raise ValueError("Version must be a string formatted as #, #.#, or #.#.#")
        return v

    @field_validator("policy_url")
    @classmethod
    def validate_policy_url(cls, v: Optional[str]) -> Optional[str]:
        """Policy URL must be an absolute http(s) URL."""
        if v is None:
            return v
        parsed = urlsplit(v)
        if parsed.scheme.lower() not in BotDefaults.ALLOWED_PROTOCOLS or not parsed.netloc:
            raise ValueError("Invalid policy URL")
        return v

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "BotConfig":
        """Minimum delay can never exceed the maximum."""
        if self.minimum_request_delay > self.maximum_request_delay:
            raise ValueError("minimum_request_delay must be <= maximum_request_delay")
        return self

    def render_user_agent(self) -> str:
        """Build the outbound user-agent header value."""
        if self.user_agent:
            return self.user_agent
        policy = self.policy_url or BotDefaults.DEFAULT_POLICY_URL
        agent = f"{self.name}/{self.version} (+{policy})"
        if not self.hide_library_agent:
            agent = f"{agent} {BotDefaults.library_agent()}"
        return agent


# ============================================================================
# Request Logging
# ============================================================================

class RequestLog(BaseModel):
    """
    Log entry for a single bot request (sent or refused).
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str
    origin: str

    status_code: Optional[int] = None  # HTTP status of the content response
    latency_ms: Optional[int] = None  # Total time including robots and waiting
    waited_ms: int = 0  # Time spent suspended for the origin delay
    streamed: bool = False

    error_kind: Optional[BotErrorKind] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
