"""Task reconciliation (drift detection for a single checklist line).

Compares one parsed checklist line against the live task issue it references
and classifies the drift:

* ``none``        – checkbox and title already match the task
* ``state_only``  – checkbox disagrees with the task's open/closed state
* ``title_only``  – title text differs from the task title
* ``both``        – both of the above

The result carries the corrected line text and the comment EpicBot posts on
the Epic. This is the only place comment wording lives, so the Epic-driven and
task-driven paths cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .checklist import ChecklistLine, format_line
from .models import Issue, IssueState


class ChangeKind(str, Enum):
    NONE = "none"
    STATE_ONLY = "state_only"
    TITLE_ONLY = "title_only"
    BOTH = "both"


@dataclass(frozen=True)
class ReconciliationResult:
    line: str
    change: ChangeKind
    comment: str | None = None

    @property
    def changed(self) -> bool:
        return self.change is not ChangeKind.NONE


def _state_word(checked: bool) -> str:
    return IssueState.CLOSED.value if checked else IssueState.OPEN.value


def render_comment(change: ChangeKind, number: int, checked: bool) -> str | None:
    state = _state_word(checked)
    if change is ChangeKind.BOTH:
        return f"`EpicBot` refreshed the title for task #{number} and marked it as `{state}`."
    if change is ChangeKind.STATE_ONLY:
        return f"`EpicBot` marked task #{number} as `{state}`."
    if change is ChangeKind.TITLE_ONLY:
        return f"`EpicBot` refreshed the title for task #{number}."
    return None


def classify(state_changed: bool, title_changed: bool) -> ChangeKind:
    if state_changed and title_changed:
        return ChangeKind.BOTH
    if state_changed:
        return ChangeKind.STATE_ONLY
    if title_changed:
        return ChangeKind.TITLE_ONLY
    return ChangeKind.NONE


def reconcile(line: ChecklistLine, task: Issue) -> ReconciliationResult:
    if line.number != task.number:
        raise ValueError(
            f"checklist line references #{line.number} but task is #{task.number}"
        )
    desired_checked = task.closed
    change = classify(line.checked != desired_checked, line.title != task.title)
    if change is ChangeKind.NONE:
        return ReconciliationResult(line=line.text or line.format(), change=change)
    return ReconciliationResult(
        line=format_line(line.indent, desired_checked, task.number, task.title),
        change=change,
        comment=render_comment(change, task.number, desired_checked),
    )


__all__ = [
    "ChangeKind",
    "ReconciliationResult",
    "classify",
    "reconcile",
    "render_comment",
]
