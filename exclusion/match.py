"""Compile robots.txt path patterns into matchers."""

from __future__ import annotations

import re

WILDCARD = "*"
END_ANCHOR = "$"


def compile_pattern(pattern: str, *, strict_end_of_line: bool = False) -> re.Pattern[str]:
    """
    Compile a normalized directive path.

    ``*`` matches zero or more characters (non-greedy) and everything else is
    literal. The pattern is always anchored at the start of the path; with
    ``strict_end_of_line`` it must also consume the whole path.
    """
    body = ".*?".join(re.escape(piece) for piece in pattern.split(WILDCARD))
    if strict_end_of_line:
        body += r"\Z"
    return re.compile(body)


def matches(matcher: re.Pattern[str], path: str) -> bool:
    """Return True when the compiled directive accepts the path."""
    return matcher.match(path) is not None
