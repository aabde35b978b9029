"""Core module for polite-crawl."""

from core.config import BotDefaults
from core.errors import BotError, BotErrorKind
from core.models import BotConfig, RequestLog

__all__ = [
    "BotDefaults",
    "BotError",
    "BotErrorKind",
    "BotConfig",
    "RequestLog",
]
