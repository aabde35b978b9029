"""Parsed robots.txt and RFC 9309 rule evaluation."""

from __future__ import annotations

import re
from typing import Iterator

from exclusion.line import AgentSpecificity, DirectiveKey, RuleLine


ALLOW_ALL_TEXT = "User-agent: *\nAllow: /"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_KNOWN_KEYS = {key.value: key for key in DirectiveKey}
_PATH_KEYS = frozenset({DirectiveKey.ALLOW, DirectiveKey.DISALLOW})


def _split_directives(text: str) -> Iterator[tuple[str, str]]:
    """Yield (lowercase key, raw value) for each recognised directive."""
    for raw_line in _LINE_BREAK.split(text.lstrip("\ufeff")):
        line = raw_line.split("#", 1)[0]
        key, _, value = line.partition(":")
        key = key.strip().lower()
        if not key or key not in _KNOWN_KEYS:
            continue
        yield key, value


class RuleSet:
    """
    Immutable, ordered set of directives for one origin.

    Lines live in a tuple and know their position, so group membership is
    decided by index instead of links between lines.
    """

    def __init__(self, text: str) -> None:
        """
        Parse raw robots.txt text.

        Raises:
            InvalidPathError: If an allow/disallow path has malformed percent-encoding.
        """
        self.text = text

        lines: list[RuleLine] = []
        for key, value in _split_directives(text):
            previous = lines[-1] if lines else None
            lines.append(
                RuleLine.parse(
                    _KNOWN_KEYS[key],
                    value,
                    sequence_index=len(lines),
                    follows_user_agent=previous is not None
                    and previous.key is DirectiveKey.USER_AGENT,
                )
            )
        self._lines = tuple(lines)

    @classmethod
    def allow_all(cls) -> RuleSet:
        """Rules equivalent to an unrestricted robots.txt."""
        return cls(ALLOW_ALL_TEXT)

    @property
    def lines(self) -> tuple[RuleLine, ...]:
        return self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[RuleLine]:
        return iter(self._lines)

    def previous_line(self, line: RuleLine) -> RuleLine | None:
        """Return the directive preceding ``line`` in file order."""
        if line.sequence_index == 0:
            return None
        return self._lines[line.sequence_index - 1]

    def next_line(self, line: RuleLine) -> RuleLine | None:
        """Return the directive following ``line`` in file order."""
        index = line.sequence_index + 1
        return self._lines[index] if index < len(self._lines) else None

    def _walk_groups(self, agent_name: str) -> Iterator[tuple[AgentSpecificity, RuleLine]]:
        """Yield non user-agent lines with the specificity of their group."""
        current = AgentSpecificity.NOT_SPECIFIED
        for line in self._lines:
            if line.key is DirectiveKey.USER_AGENT:
                own = line.is_own_user_agent(agent_name)
                current = max(current, own) if line.is_additional_user_agent else own
            elif current is not AgentSpecificity.NOT_SPECIFIED:
                yield current, line

    def is_path_allowed(self, path: str, agent_name: str) -> bool:
        """
        Decide whether ``agent_name`` may fetch ``path``.

        Precedence: the most specific group holding a matching rule wins,
        then the longest matching pattern, then the earliest line in the
        file. Paths no rule matches are allowed.
        """
        verdicts: dict[AgentSpecificity, dict[int, bool]] = {}
        for specificity, line in self._walk_groups(agent_name):
            if line.key not in _PATH_KEYS:
                continue
            verdict = line.is_path_allowed_by_line(path)
            if verdict is not None:
                verdicts.setdefault(specificity, {}).setdefault(line.priority, verdict)

        if not verdicts:
            return True
        by_priority = verdicts[max(verdicts)]
        return by_priority[max(by_priority)]

    def get_delay(self, agent_name: str) -> int | None:
        """Return the crawl-delay (ms) of the most specific group declaring one."""
        delays: dict[AgentSpecificity, int] = {}
        for specificity, line in self._walk_groups(agent_name):
            if line.key is DirectiveKey.CRAWL_DELAY and line.delay_millis is not None:
                delays[specificity] = line.delay_millis

        if not delays:
            return None
        return delays[max(delays)]

    def __repr__(self) -> str:
        return f"RuleSet(lines={len(self._lines)})"
