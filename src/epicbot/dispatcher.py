"""Route a triggering issue to the right synchronization direction.

The source issue is an Epic when its title starts with the configured prefix;
Epics are re-scanned from scratch, any other issue is treated as a task and
pushed into the Epics that reference it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import BotConfig
from .errors import ConfigurationError
from .logging import get_logger
from .models import Issue, SyncOutcome
from .synchronizer import EpicSynchronizer, is_epic
from .tracker import IssueTracker

DIRECTION_EPIC = "epic"
DIRECTION_TASK = "task"
DIRECTION_NONE = "none"


@dataclass
class DispatchResult:
    direction: str
    changed: bool = False
    issue_number: int | None = None
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction,
            "changed": self.changed,
            "issue": self.issue_number,
            "epics": [o.to_dict() for o in self.outcomes],
        }


def load_event(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Event payload not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Event payload {p} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Event payload {p} must be a JSON object")
    return data


def issue_from_event(payload: dict[str, Any]) -> Issue | None:
    raw = payload.get("issue")
    if not isinstance(raw, dict):
        return None
    return Issue.from_api(raw)


async def dispatch(issue: Issue, config: BotConfig, tracker: IssueTracker) -> DispatchResult:
    sync = EpicSynchronizer(tracker, config)
    if is_epic(issue.title, config.epic_prefix):
        direction = DIRECTION_EPIC
        changed = await sync.sync_epic_from_scratch(issue)
    else:
        direction = DIRECTION_TASK
        changed = await sync.sync_epic_from_task(issue)
    return DispatchResult(
        direction=direction,
        changed=changed,
        issue_number=issue.number,
        outcomes=sync.outcomes,
    )


async def run_event(
    payload: dict[str, Any], config: BotConfig, tracker: IssueTracker
) -> DispatchResult:
    """Handle one webhook payload; events without an issue are a successful no-op."""
    logger = get_logger()
    config.validate()
    issue = issue_from_event(payload)
    if issue is None:
        logger.info("Event carries no issue; nothing to do")
        return DispatchResult(direction=DIRECTION_NONE)
    logger.log_operation("config", **config.describe())
    with logger.timed_operation("dispatch", issue_number=issue.number):
        return await dispatch(issue, config, tracker)


__all__ = [
    "DispatchResult",
    "dispatch",
    "is_epic",
    "issue_from_event",
    "load_event",
    "run_event",
]
