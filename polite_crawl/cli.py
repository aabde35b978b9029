"""Minimal CLI entrypoint for polite-crawl."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any
from typing import Sequence

from core.config import BotDefaults
from core.errors import BotError
from core.structured_logging import emit_json_event
from exclusion import RuleSet
from fetcher import Bot


def _emit_cli_event(event_type: str, *, command: str, level: str = "info", **payload: Any) -> str:
    """Emit one structured CLI event line with standard fields."""
    return emit_json_event(event_type, level=level, command=command, **payload)


def _cmd_check(args: argparse.Namespace) -> int:
    """Evaluate a local robots.txt file for one path and agent."""
    robots_path = Path(args.robots_file)
    if not robots_path.exists():
        raise FileNotFoundError(f"robots.txt file not found: {robots_path}")

    rule_set = RuleSet(robots_path.read_text(encoding="utf-8", errors="replace"))
    allowed = rule_set.is_path_allowed(args.path, args.agent)
    _emit_cli_event(
        "cli_check_completed",
        command="check",
        robots_file=str(robots_path),
        agent=args.agent,
        path=args.path,
        allowed=allowed,
        crawl_delay_ms=rule_set.get_delay(args.agent),
        rule_count=len(rule_set),
    )
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    """Fetch URLs politely, one JSON line per URL."""
    bot = Bot(
        args.name,
        args.version,
        policy_url=args.policy_url,
        minimum_request_delay=args.min_delay,
        maximum_request_delay=args.max_delay,
        disable_caching=args.no_cache,
        log_requests=args.verbose,
        event_logger=None if args.verbose else (lambda event_type, payload: None),
    )

    failures = 0
    for url in args.urls:
        try:
            response = bot.request(url, raise_for_status=False)
        except BotError as exc:
            failures += 1
            _emit_cli_event(
                "cli_fetch_failed",
                command="fetch",
                level="warning",
                url=url,
                error_kind=exc.kind.value,
                status_code=exc.status,
                error=exc.message,
            )
            continue
        except ValueError as exc:
            # Malformed URLs only fail their own line.
            failures += 1
            _emit_cli_event(
                "cli_fetch_failed",
                command="fetch",
                level="warning",
                url=url,
                error_kind=None,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            continue

        _emit_cli_event(
            "cli_fetch_completed",
            command="fetch",
            url=url,
            final_url=response.url,
            status_code=response.status_code,
            bytes_received=len(response.body or b""),
        )
    return 0 if failures == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    """Create argument parser for the polite-crawl CLI."""
    parser = argparse.ArgumentParser(
        prog="polite-crawl",
        description="robots.txt-aware, per-origin rate-limited fetching",
    )
    parser.add_argument("--version", action="version", version="polite-crawl 0.1.0")

    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser(
        "check",
        help="Evaluate a local robots.txt for a path and user-agent",
    )
    check_parser.add_argument("robots_file", help="Path to a robots.txt file")
    check_parser.add_argument("path", help="URL path (and query) to evaluate, e.g. /a/b?x=1")
    check_parser.add_argument("--agent", required=True, help="User-agent token to evaluate for")
    check_parser.set_defaults(func=_cmd_check)

    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Fetch URLs while obeying robots.txt and per-origin delays",
    )
    fetch_parser.add_argument("urls", nargs="+", help="Absolute http(s) URLs")
    fetch_parser.add_argument("--name", required=True, help="Bot name (a-zA-Z_-)")
    fetch_parser.add_argument("--bot-version", dest="version", default="0.1", help="Bot version (#, #.# or #.#.#)")
    fetch_parser.add_argument("--policy-url", help="URL describing the bot's crawling policy")
    fetch_parser.add_argument(
        "--min-delay",
        type=int,
        default=BotDefaults.MINIMUM_REQUEST_DELAY_MS,
        help="Minimum milliseconds between requests to one origin",
    )
    fetch_parser.add_argument(
        "--max-delay",
        type=int,
        default=BotDefaults.MAXIMUM_REQUEST_DELAY_MS,
        help="Longest wait in milliseconds before a request is refused",
    )
    fetch_parser.add_argument("--no-cache", action="store_true", help="Ask caches to revalidate")
    fetch_parser.add_argument("--verbose", action="store_true", help="Also emit bot events and request logs")
    fetch_parser.set_defaults(func=_cmd_fetch)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Execute CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    try:
        return int(args.func(args))
    except Exception as exc:
        _emit_cli_event(
            "cli_error",
            command=str(getattr(args, "command", "unknown")),
            level="error",
            stream=sys.stderr,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return 1


def cli() -> None:
    """Console-script entrypoint."""
    raise SystemExit(main())


if __name__ == "__main__":
    raise SystemExit(main())
