"""Fetcher subsystem: robots.txt refresh, per-origin politeness and transport."""

from fetcher.http import FetchMode, FetchResponse, Fetcher, RequestsFetcher, normalize_headers
from fetcher.logging import emit_event, emit_request_log
from fetcher.politeness import OriginEntry, OriginStateStore, PolitenessController
from fetcher.robots import RobotsTxtCache
from fetcher.scheduler import Bot

__all__ = [
    "FetchMode",
    "FetchResponse",
    "Fetcher",
    "RequestsFetcher",
    "normalize_headers",
    "emit_event",
    "emit_request_log",
    "OriginEntry",
    "OriginStateStore",
    "PolitenessController",
    "RobotsTxtCache",
    "Bot",
]
