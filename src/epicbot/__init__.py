"""EpicBot - keep Epic issue checklists in sync with their task issues.

High-level public API:

from epicbot import BotConfig, EpicSynchronizer, load_config

cfg = load_config().validate(require_token=True)
sync = EpicSynchronizer(tracker, cfg)
await sync.sync_epic_from_task(task_issue)

The CLI (``epicbot run``) wires a GitHub-backed tracker from the action inputs
and the event payload; the pure helpers (``parse_line``, ``locate_workload``,
``reconcile``, ``all_tasks_complete``) can be used on their own.
"""

from __future__ import annotations

from .checklist import ChecklistLine, format_line, parse_line
from .config import BotConfig, load_config
from .models import EpicUpdate, Issue, IssueState, TimelineEvent
from .reconciler import ChangeKind, ReconciliationResult, reconcile
from .synchronizer import EpicSynchronizer, is_epic, update_task_in_epic
from .workload import all_tasks_complete, locate_workload

__version__ = "0.2.0"

__all__ = [
    "BotConfig",
    "ChangeKind",
    "ChecklistLine",
    "EpicSynchronizer",
    "EpicUpdate",
    "Issue",
    "IssueState",
    "ReconciliationResult",
    "TimelineEvent",
    "all_tasks_complete",
    "format_line",
    "is_epic",
    "load_config",
    "locate_workload",
    "parse_line",
    "reconcile",
    "update_task_in_epic",
    "__version__",
]
