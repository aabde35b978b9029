"""One parsed robots.txt directive."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from core.config import BotDefaults
from exclusion.match import END_ANCHOR, compile_pattern, matches
from exclusion.normalize import normalize_path


_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


class DirectiveKey(str, Enum):
    """Directives understood by the rule engine."""
    USER_AGENT = "user-agent"
    ALLOW = "allow"
    DISALLOW = "disallow"
    CRAWL_DELAY = "crawl-delay"


class AgentSpecificity(IntEnum):
    """How precisely a user-agent group names the requesting agent."""
    NOT_SPECIFIED = 0
    CATCH_ALL = 1  # "*"
    NAMED_MATCH = 2


_PATH_KEYS = frozenset({DirectiveKey.ALLOW, DirectiveKey.DISALLOW})


def _parse_delay_millis(value: str) -> int | None:
    match = _LEADING_INTEGER.match(value)
    if not match:
        return None
    return int(match.group(1)) * 1000


@dataclass(frozen=True, slots=True)
class RuleLine:
    """
    Immutable directive with its derived match data.

    Build instances with ``RuleLine.parse``; ``follows_user_agent`` records
    whether the previous line of the same file was a user-agent line.
    """

    key: DirectiveKey
    raw_value: str
    normalized_value: str
    strict_end_of_line: bool = False
    priority: int = 0
    delay_millis: int | None = None
    sequence_index: int = 0
    follows_user_agent: bool = False
    matcher: re.Pattern[str] | None = field(default=None, repr=False, compare=False)

    @classmethod
    def parse(
        cls,
        key: DirectiveKey | str,
        raw_value: str,
        *,
        sequence_index: int = 0,
        follows_user_agent: bool = False,
    ) -> RuleLine:
        """
        Parse the value of one ``key: value`` directive.

        Raises:
            InvalidPathError: If an allow/disallow path has malformed percent-encoding.
        """
        key = DirectiveKey(key)
        value = raw_value.strip()

        if key is DirectiveKey.CRAWL_DELAY:
            return cls(
                key=key,
                raw_value=raw_value,
                normalized_value=value,
                delay_millis=_parse_delay_millis(value),
                sequence_index=sequence_index,
                follows_user_agent=follows_user_agent,
            )

        if key in _PATH_KEYS:
            strict_end_of_line = value.endswith(END_ANCHOR)
            if strict_end_of_line:
                value = value[:-1]
            normalized = normalize_path(value)
            return cls(
                key=key,
                raw_value=raw_value,
                normalized_value=normalized,
                strict_end_of_line=strict_end_of_line,
                priority=len(normalized.encode("utf-8")),
                sequence_index=sequence_index,
                follows_user_agent=follows_user_agent,
                matcher=compile_pattern(normalized, strict_end_of_line=strict_end_of_line),
            )

        return cls(
            key=key,
            raw_value=raw_value,
            normalized_value=value,
            sequence_index=sequence_index,
            follows_user_agent=follows_user_agent,
        )

    @property
    def is_additional_user_agent(self) -> bool:
        """True when this user-agent line extends the group started above it."""
        return self.key is DirectiveKey.USER_AGENT and self.follows_user_agent

    def is_own_user_agent(self, agent_name: str) -> AgentSpecificity:
        """Rate how specifically this line names ``agent_name``."""
        if self.key is not DirectiveKey.USER_AGENT:
            return AgentSpecificity.NOT_SPECIFIED

        value = self.normalized_value.lower()
        if value == agent_name.lower() or BotDefaults.LIBRARY_TOKEN.lower() in value:
            return AgentSpecificity.NAMED_MATCH
        if value == "*":
            return AgentSpecificity.CATCH_ALL
        return AgentSpecificity.NOT_SPECIFIED

    def is_path_allowed_by_line(self, path: str) -> bool | None:
        """
        Return the line's verdict for ``path``.

        True/False when an allow/disallow pattern matches, None when it does
        not (or the pattern is empty). Lines of any other key return False.
        """
        if self.key not in _PATH_KEYS:
            return False
        if not self.normalized_value:
            return None

        if matches(self.matcher, normalize_path(path)):
            return self.key is DirectiveKey.ALLOW
        return None
