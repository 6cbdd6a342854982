"""EpicBot CLI.

Subcommands:
  run    -> handle one GitHub issue event (default entry point for the action)
  check  -> offline: list workload tasks of a markdown file and report completion

Failures are reported as a GitHub Actions ``::error::`` annotation and a
non-zero exit code; no-op runs exit 0.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from epicbot.config import BotConfig, load_config
from epicbot.dispatcher import DIRECTION_NONE, DispatchResult, issue_from_event, load_event, run_event
from epicbot.errors import ConfigurationError, EpicBotError, classify_error, redact
from epicbot.github_rest import GitHubRestClient
from epicbot.logging import configure_logging, get_logger
from epicbot.tracker import DryRunTracker, GitHubIssueTracker, IssueTracker
from epicbot.workload import all_tasks_complete, iter_checklist, split_lines

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="epicbot", description="Keep Epic issue checklists in sync with their tasks"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors (env: EPICBOT_QUIET=1)",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit structured JSON log lines")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pr = sub.add_parser("run", help="Process a GitHub issue event payload")
    pr.add_argument("--event", help="Event payload JSON (default: $GITHUB_EVENT_PATH)")
    pr.add_argument("--config", help="Optional YAML configuration file")
    pr.add_argument("--repo", help="Override target repository (owner/repo)")
    pr.add_argument("--dry-run", action="store_true", help="Log mutations instead of sending them")

    pc = sub.add_parser("check", help="Report workload completion for a markdown file")
    pc.add_argument("body_file", help="Markdown file holding an Epic body")
    pc.add_argument("--marker", help="Workload heading marker (default: from configuration)")
    pc.add_argument("--config", help="Optional YAML configuration file")
    return p


def _build_tracker(cfg: BotConfig) -> IssueTracker:
    if not cfg.secret_token or not cfg.repo:
        raise ConfigurationError("A GitHub token and target repository are required.")
    rest = GitHubRestClient(token=cfg.secret_token, repo=cfg.repo, base_url=cfg.api_url)
    tracker: IssueTracker = GitHubIssueTracker(rest)
    if cfg.dry_run:
        tracker = DryRunTracker(tracker)
    return tracker


def _cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    if args.repo:
        cfg.repo = args.repo
    if args.dry_run:
        cfg.dry_run = True
    if cfg.logging_json_enabled or cfg.logging_level.upper() != "INFO":
        configure_logging(
            json_logging=args.json_logs or cfg.logging_json_enabled,
            level="WARNING" if args.quiet else cfg.logging_level,
        )
    cfg.validate()

    event_path = args.event or os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        raise ConfigurationError("No event payload; pass --event or set GITHUB_EVENT_PATH.")
    payload = load_event(event_path)
    if issue_from_event(payload) is None:
        get_logger().info("Event carries no issue; nothing to do")
        print(json.dumps(DispatchResult(direction=DIRECTION_NONE).to_dict()))
        return 0

    cfg.validate(require_token=True)
    result = asyncio.run(run_event(payload, cfg, _build_tracker(cfg)))
    print(json.dumps(result.to_dict()))
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    marker = args.marker
    if not marker:
        marker = load_config(args.config, load_dotenv=False).workload_marker
    if not marker:
        raise ConfigurationError("Workload marker cannot be an empty string.")
    path = Path(args.body_file)
    if not path.exists():
        raise ConfigurationError(f"Body file not found: {path}")
    body = path.read_text(encoding="utf-8")
    entries = [entry for _, entry in iter_checklist(split_lines(body), marker)]
    for entry in entries:
        print(f"{'x' if entry.checked else ' '} #{entry.number} {entry.title}")
    done = sum(1 for e in entries if e.checked)
    complete = all_tasks_complete(body, marker)
    print(f"{done}/{len(entries)} tasks complete" + (" (complete)" if complete else ""))
    return 0 if complete else 1


def _report_failure(exc: EpicBotError) -> None:
    info = classify_error(exc)
    get_logger().log_error(
        "epicbot run failed", error=info.message, category=info.category
    )
    # GitHub Actions workflow command: marks the step as failed with a message
    print(f"::error::{redact(str(exc))}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if os.environ.get("EPICBOT_QUIET") == "1":
        args.quiet = True
    configure_logging(json_logging=args.json_logs, level="WARNING" if args.quiet else "INFO")
    handlers = {
        "run": lambda: _cmd_run(args),
        "check": lambda: _cmd_check(args),
    }
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        return handler()
    except EpicBotError as exc:
        _report_failure(exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
