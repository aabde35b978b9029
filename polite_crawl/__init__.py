"""polite-crawl: a robots.txt-obeying, per-origin rate-limited crawling client."""

from core.errors import BotError, BotErrorKind
from exclusion import RuleSet
from fetcher import Bot

__version__ = "0.1.0"

__all__ = ["Bot", "BotError", "BotErrorKind", "RuleSet", "__version__"]
