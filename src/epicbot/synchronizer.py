"""Epic synchronization in both directions.

Pull (``sync_epic_from_scratch``)
    The Epic itself changed: every task line in its workload section is
    checked against the live task issue. Comments are posted as each stale
    line is found and the corrected body is committed once at the end.

Push (``sync_epic_from_task``)
    A task changed: its timeline is searched for cross-references from Epics
    in the same repository and the single matching line in each Epic is patched, commented on and,
    when enabled, the Epic is closed once every task is ticked.

Every tracker call is awaited before the next step starts, so lines (Pull)
and timeline events (Push) are handled strictly in order. Tracker failures
propagate and end the run; the only exception is a failed Pull comment, which
is logged and does not undo the in-memory edit.
"""

from __future__ import annotations

from .checklist import parse_line
from .config import BotConfig
from .errors import LookupMismatchError, TransportError, redact
from .logging import get_logger
from .models import EpicUpdate, Issue, IssueState, SyncOutcome
from .reconciler import reconcile
from .tracker import IssueTracker
from .workload import all_tasks_complete, join_lines, locate_workload, split_lines


def is_epic(title: str, prefix: str) -> bool:
    return title.startswith(prefix)


def update_task_in_epic(epic_body: str | None, task: Issue, marker: str) -> EpicUpdate | None:
    """Patch the line for ``task`` inside ``epic_body``.

    Returns ``None`` when there is no workload section, no line for the task
    before the section ends, or the line is already up to date. All other
    lines of the body are left byte-identical apart from the CRLF rejoin.
    """
    lines = split_lines(epic_body)
    section = locate_workload(lines, marker)
    if section is None:
        return None
    for idx in section:
        entry = parse_line(lines[idx])
        if entry is None or entry.number != task.number:
            continue
        result = reconcile(entry, task)
        if not result.changed:
            return None
        lines[idx] = result.line
        return EpicUpdate(body=join_lines(lines), comment=result.comment)
    return None


class EpicSynchronizer:
    def __init__(self, tracker: IssueTracker, config: BotConfig):
        self.tracker = tracker
        self.config = config
        self.logger = get_logger()
        self.outcomes: list[SyncOutcome] = []

    def is_epic(self, issue: Issue) -> bool:
        return is_epic(issue.title, self.config.epic_prefix)

    # ---- Pull ---------------------------------------------------------
    async def sync_epic_from_scratch(self, epic: Issue) -> bool:
        marker = self.config.workload_marker
        self.logger.log_operation("sync_epic", epic_number=epic.number, title=epic.title)
        lines = split_lines(epic.body)
        section = locate_workload(lines, marker)
        if section is None:
            self.logger.info(
                f"Epic #{epic.number} has no '{marker}' section; nothing to do",
                epic_number=epic.number,
            )
            return False

        outcome = SyncOutcome(epic_number=epic.number)
        self.outcomes.append(outcome)
        changed = False
        for idx in section:
            entry = parse_line(lines[idx])
            if entry is None:
                continue

            task = await self.tracker.get_issue(entry.number)
            if task.number != entry.number:
                raise LookupMismatchError(entry.number, task.number, epic_number=epic.number)

            result = reconcile(entry, task)
            if not result.changed:
                self.logger.debug(
                    f"Nothing to update for task #{task.number}",
                    epic_number=epic.number,
                    task_number=task.number,
                )
                continue

            lines[idx] = result.line
            changed = True
            self.logger.log_epic_action(
                result.change.value,
                epic.number,
                task_number=task.number,
                dry_run=self.config.dry_run,
            )
            if result.comment:
                await self._post_pull_comment(epic.number, result.comment, outcome)

        if not changed:
            return False
        await self.tracker.update_issue_body(epic.number, join_lines(lines))
        outcome.body_updated = True
        self.logger.log_epic_action("body_committed", epic.number, dry_run=self.config.dry_run)
        return True

    async def _post_pull_comment(self, epic_number: int, comment: str, outcome: SyncOutcome) -> None:
        try:
            await self.tracker.create_comment(epic_number, comment)
        except TransportError as exc:
            self.logger.warning(
                f"Failed to comment on Epic #{epic_number}; keeping the line edit",
                epic_number=epic_number,
                error=redact(str(exc)),
            )
            return
        outcome.comments.append(comment)

    # ---- Push ---------------------------------------------------------
    async def sync_epic_from_task(self, task: Issue) -> bool:
        self.logger.log_operation("sync_task", task_number=task.number, title=task.title)
        timeline = await self.tracker.list_timeline(task.number)

        updated_any = False
        seen: set[int] = set()
        for event in timeline:
            if not event.is_issue_cross_reference:
                continue
            ref = event.source_issue
            if ref is None or not self.is_epic(ref):
                continue
            if not ref.in_repository(self.config.repo):
                # mutations always target config.repo; a foreign #N is a different issue
                self.logger.info(
                    f"Skipping Epic {ref.repository}#{ref.number}: outside {self.config.repo}",
                    epic_number=ref.number,
                    task_number=task.number,
                )
                continue
            if ref.number in seen:
                # later events carry the same pre-update body snapshot
                continue
            seen.add(ref.number)
            self.logger.info(
                f"Task #{task.number} is cross-referenced by Epic #{ref.number}",
                epic_number=ref.number,
                task_number=task.number,
            )
            if await self._apply_to_epic(ref, task):
                updated_any = True
        return updated_any

    async def _apply_to_epic(self, epic: Issue, task: Issue) -> bool:
        update = update_task_in_epic(epic.body, task, self.config.workload_marker)
        if update is None:
            self.logger.info(
                f"Nothing to update - Epic #{epic.number} body remains as-is",
                epic_number=epic.number,
                task_number=task.number,
            )
            return False

        outcome = SyncOutcome(epic_number=epic.number)
        self.outcomes.append(outcome)

        await self.tracker.update_issue_body(epic.number, update.body)
        outcome.body_updated = True
        if update.comment:
            await self.tracker.create_comment(epic.number, update.comment)
            outcome.comments.append(update.comment)
        self.logger.log_epic_action(
            "task_updated", epic.number, task_number=task.number, dry_run=self.config.dry_run
        )

        if self.config.close_completed_epics and all_tasks_complete(
            update.body, self.config.workload_marker
        ):
            await self.tracker.update_issue_state(epic.number, IssueState.CLOSED)
            outcome.closed = True
            self.logger.log_epic_action("closed", epic.number, dry_run=self.config.dry_run)
        return True


__all__ = ["EpicSynchronizer", "is_epic", "update_task_in_epic"]
