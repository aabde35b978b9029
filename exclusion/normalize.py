"""Path canonicalization for robots.txt comparisons."""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from urllib.parse import parse_qsl, quote, quote_plus, urlencode


class InvalidPathError(ValueError):
    """Raised when a path carries malformed percent-encoding."""


# Escapes decoding to these stay encoded so the URL structure is unchanged.
_KEEP_ENCODED = frozenset(";/?:@&=+$,#%")

# Printable ASCII left alone when re-encoding a path (letters, digits and
# "_.-~" are always safe for quote()).
_PATH_SAFE = "/!$&'()*+,;=:@%[]|^"

_ESCAPE_RUN = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_BROKEN_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _decode_escape_run(match: re.Match[str]) -> str:
    raw = match.group(0)
    triplets = [raw[index : index + 3] for index in range(0, len(raw), 3)]
    data = bytes(int(triplet[1:], 16) for triplet in triplets)
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidPathError(f"Malformed percent-encoding: {raw}") from exc

    decoded: list[str] = []
    position = 0
    for char in text:
        width = len(char.encode("utf-8"))
        if char in _KEEP_ENCODED:
            decoded.append(triplets[position].upper())
        else:
            decoded.append(char)
        position += width
    return "".join(decoded)


def _percent_decode_path(path: str) -> str:
    broken = _BROKEN_ESCAPE.search(path)
    if broken:
        raise InvalidPathError(f"Malformed percent-encoding at offset {broken.start()}: {path!r}")
    return _ESCAPE_RUN.sub(_decode_escape_run, path)


def _remove_dot_segments(path: str) -> str:
    segments = path.split("/")[1:]
    output: list[str] = []
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        if segment in {".", ".."}:
            if segment == ".." and output:
                output.pop()
            if is_last:
                output.append("")
            continue
        output.append(segment)
    return "/" + "/".join(output)


def _normalize_query(query: str) -> str:
    pairs = [
        (unicodedata.normalize("NFC", key), unicodedata.normalize("NFC", value))
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(pairs, safe="*", quote_via=quote_plus)


@lru_cache(maxsize=4096)
def _normalize(raw_path: str) -> str:
    has_start_slash = raw_path.startswith("/")

    without_fragment = raw_path.split("#", 1)[0]
    path, _, query = without_fragment.partition("?")
    if not has_start_slash:
        path = "/" + path

    path = unicodedata.normalize("NFC", _percent_decode_path(path))
    path = quote(_remove_dot_segments(path), safe=_PATH_SAFE)

    search = _normalize_query(query)
    if not has_start_slash:
        path = path[1:]
    return f"{path}?{search}" if search else path


def normalize_path(raw_path: str | None) -> str | None:
    """
    Canonicalize a URL path (with optional query) for robots.txt comparison.

    The path is percent-decoded, NFC-composed and re-encoded with the minimum
    escaping; query parameters keep their source order. A value that did not
    begin with "/" is not given one.

    Raises:
        InvalidPathError: If the path contains malformed percent-encoding.
    """
    if raw_path is None:
        return None
    return _normalize(raw_path)
