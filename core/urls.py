"""URL splitting into origin and request target."""

from __future__ import annotations

from urllib.parse import urlsplit

from core.config import BotDefaults


_DEFAULT_PORTS = {"http": 80, "https": 443}


def split_request_url(url: str) -> tuple[str, str]:
    """
    Split an absolute URL into (origin, path+query).

    Rules:
    - Scheme and host are lowercased
    - Default ports are dropped, explicit non-default ports are kept
    - Fragment is discarded; an empty path becomes "/"

    Raises:
        ValueError: If the URL is not an absolute http(s) URL.
    """
    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()
    if scheme not in BotDefaults.ALLOWED_PROTOCOLS:
        raise ValueError(f"Unsupported URL scheme: {url!r}")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise ValueError(f"URL has no host: {url!r}")
    if ":" in hostname:
        hostname = f"[{hostname}]"

    port = parsed.port
    netloc = hostname if port in (None, _DEFAULT_PORTS[scheme]) else f"{hostname}:{port}"

    target = parsed.path or "/"
    if parsed.query:
        target = f"{target}?{parsed.query}"

    return f"{scheme}://{netloc}", target


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for ``url``."""
    return split_request_url(url)[0]
