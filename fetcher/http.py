"""HTTP fetcher collaborator backed by requests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urljoin, urlsplit

import requests

from core.config import BotDefaults
from core.errors import BotError, BotErrorKind


class FetchMode(str, Enum):
    """How the response body is handed back."""
    BUFFERED = "buffered"
    STREAM = "stream"


class RedirectLimitExceeded(Exception):
    """Raised when a URL exceeds the configured redirect limit."""


@dataclass(slots=True)
class FetchResponse:
    """Response returned by a Fetcher, buffered or streaming."""

    url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    stream: Iterator[bytes] | None = None
    from_cache: bool = False  # Reported by caching sessions such as requests-cache
    encoding: str = "utf-8"
    _close: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def text(self) -> str:
        """Decoded body of a buffered response ("" when streaming)."""
        if self.body is None:
            return ""
        return self.body.decode(self.encoding, errors="replace")

    def close(self) -> None:
        """Release the underlying connection of a streaming response."""
        if self._close is not None:
            self._close()
            self._close = None


def normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Return a copy of ``headers`` with lowercase names."""
    return {name.lower(): value for name, value in (headers or {}).items()}


class Fetcher(ABC):
    """
    Transport collaborator used by the Bot.

    Implementations must map transport failures to BotError(TRANSPORT) and
    must return non-2xx responses instead of raising when
    ``raise_for_status`` is False.
    """

    @abstractmethod
    def fetch(
        self,
        url: str,
        headers: Mapping[str, str],
        mode: FetchMode = FetchMode.BUFFERED,
        *,
        raise_for_status: bool = True,
        use_cache: bool = True,
    ) -> FetchResponse:
        """
        Fetch one URL.

        Args:
            url: Absolute http(s) URL
            headers: Request headers (lowercase names)
            mode: BUFFERED reads the whole body, STREAM hands back an iterator
            raise_for_status: Raise BotError(TRANSPORT) for non-2xx responses
            use_cache: False asks every cache on the way to revalidate

        Raises:
            BotError: TRANSPORT or MEMORY_SAFETY failures
        """
        pass


def _read_body_with_limit(response: requests.Response, max_bytes: int) -> bytes:
    """Read response body up to the configured maximum size."""
    chunks: list[bytes] = []
    total = 0
    for chunk in response.iter_content(chunk_size=8192):
        if not chunk:
            continue
        total += len(chunk)
        if total > max_bytes:
            raise BotError(BotErrorKind.MEMORY_SAFETY, f"response exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def _follow_redirects(
    session: requests.Session,
    url: str,
    headers: Mapping[str, str],
    timeout_seconds: int,
    max_redirects: int,
) -> requests.Response:
    """Fetch a URL while enforcing redirect constraints."""
    current_url = url

    for hop in range(max_redirects + 1):
        response = session.get(
            current_url,
            headers=dict(headers),
            timeout=timeout_seconds,
            allow_redirects=False,
            stream=True,
        )

        if 300 <= response.status_code < 400 and response.headers.get("location"):
            response.close()
            if hop >= max_redirects:
                raise RedirectLimitExceeded(f"redirects exceeded {max_redirects}")

            next_url = urljoin(current_url, response.headers["location"])
            if urlsplit(next_url).scheme.lower() not in BotDefaults.ALLOWED_PROTOCOLS:
                raise RedirectLimitExceeded("redirected to disallowed protocol")

            current_url = next_url
            continue

        return response

    raise RedirectLimitExceeded(f"redirects exceeded {max_redirects}")


class RequestsFetcher(Fetcher):
    """Fetcher implementation over a requests.Session."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_seconds: int = BotDefaults.FETCH_TIMEOUT_SECONDS,
        max_redirects: int = BotDefaults.MAX_REDIRECTS,
        max_body_bytes: int = BotDefaults.MAX_BODY_BYTES,
    ) -> None:
        """Initialize session and transport limits."""
        self._session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self.max_redirects = max_redirects
        self.max_body_bytes = max_body_bytes

    def fetch(
        self,
        url: str,
        headers: Mapping[str, str],
        mode: FetchMode = FetchMode.BUFFERED,
        *,
        raise_for_status: bool = True,
        use_cache: bool = True,
    ) -> FetchResponse:
        """Fetch one URL, following redirects manually."""
        request_headers = normalize_headers(headers)
        if not use_cache:
            request_headers["cache-control"] = "no-cache"
            request_headers["pragma"] = "no-cache"

        try:
            response = _follow_redirects(
                self._session,
                url,
                request_headers,
                timeout_seconds=self.timeout_seconds,
                max_redirects=self.max_redirects,
            )
        except RedirectLimitExceeded as exc:
            raise BotError(BotErrorKind.TRANSPORT, str(exc)) from exc
        except requests.Timeout as exc:
            raise BotError(BotErrorKind.TRANSPORT, f"timeout fetching {url}") from exc
        except requests.RequestException as exc:
            raise BotError(BotErrorKind.TRANSPORT, f"request error fetching {url}: {exc}") from exc

        status_code = response.status_code
        if raise_for_status and not 200 <= status_code < 300:
            response.close()
            raise BotError(
                BotErrorKind.TRANSPORT,
                f"{url} answered HTTP {status_code}",
                status=status_code,
            )

        result = FetchResponse(
            url=getattr(response, "url", None) or url,
            status_code=status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            from_cache=bool(getattr(response, "from_cache", False)),
            encoding=response.encoding or "utf-8",
        )

        if mode is FetchMode.STREAM:
            result.stream = response.iter_content(chunk_size=8192)
            result._close = response.close
            return result

        try:
            result.body = _read_body_with_limit(response, self.max_body_bytes)
        except requests.RequestException as exc:
            raise BotError(BotErrorKind.TRANSPORT, f"error reading {url}: {exc}") from exc
        finally:
            response.close()
        return result
