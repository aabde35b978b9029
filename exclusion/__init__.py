"""robots.txt rule engine (RFC 9309 with crawl-delay support)."""

from exclusion.line import AgentSpecificity, DirectiveKey, RuleLine
from exclusion.match import compile_pattern, matches
from exclusion.normalize import InvalidPathError, normalize_path
from exclusion.ruleset import RuleSet

__all__ = [
    "AgentSpecificity",
    "DirectiveKey",
    "RuleLine",
    "compile_pattern",
    "matches",
    "InvalidPathError",
    "normalize_path",
    "RuleSet",
]
