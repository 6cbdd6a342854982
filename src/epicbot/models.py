from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IssueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Issue:
    """Snapshot of a GitHub issue as seen by EpicBot.

    Only the fields the checklist engine needs are kept; everything else in the
    REST payload is dropped by :meth:`from_api`.
    """

    number: int
    title: str
    body: str = ""
    state: IssueState = IssueState.OPEN
    # owner/name of the repository holding the issue, when the payload says
    repository: str | None = None

    @property
    def closed(self) -> bool:
        return self.state is IssueState.CLOSED

    def in_repository(self, repo: str | None) -> bool:
        """True unless both sides name a repository and they differ."""
        if not repo or not self.repository:
            return True
        return self.repository.lower() == repo.lower()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Issue:
        number = data.get("number")
        if not isinstance(number, int):
            raise ValueError(f"issue payload has no integer number: {number!r}")
        title = data.get("title")
        body = data.get("body")
        state_raw = str(data.get("state") or "open").lower()
        return cls(
            number=number,
            title=title if isinstance(title, str) else "",
            # GitHub sends null for issues created without a description
            body=body if isinstance(body, str) else "",
            state=IssueState.CLOSED if state_raw == "closed" else IssueState.OPEN,
            repository=_repository_name(data),
        )


def _repository_name(data: dict[str, Any]) -> str | None:
    repo = data.get("repository")
    if isinstance(repo, dict):
        full_name = repo.get("full_name")
        if isinstance(full_name, str) and full_name:
            return full_name
    url = data.get("repository_url")
    if isinstance(url, str) and "/repos/" in url:
        # https://api.github.com/repos/<owner>/<name>
        name = url.split("/repos/", 1)[1].strip("/")
        if name.count("/") == 1:
            return name
    return None


@dataclass(frozen=True)
class TimelineEvent:
    event: str
    source_type: str | None = None
    source_issue: Issue | None = None

    @property
    def is_issue_cross_reference(self) -> bool:
        return (
            self.event == "cross-referenced"
            and self.source_type == "issue"
            and self.source_issue is not None
        )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TimelineEvent:
        source = data.get("source")
        source_type: str | None = None
        source_issue: Issue | None = None
        if isinstance(source, dict):
            raw_type = source.get("type")
            source_type = raw_type if isinstance(raw_type, str) else None
            raw_issue = source.get("issue")
            if isinstance(raw_issue, dict):
                source_issue = Issue.from_api(raw_issue)
        return cls(
            event=str(data.get("event") or ""),
            source_type=source_type,
            source_issue=source_issue,
        )


@dataclass(frozen=True)
class EpicUpdate:
    """Net mutation for one Epic: the full new body plus an optional comment."""

    body: str
    comment: str | None = None


@dataclass
class SyncOutcome:
    epic_number: int
    body_updated: bool = False
    comments: list[str] = field(default_factory=list)
    closed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "epic": self.epic_number,
            "body_updated": self.body_updated,
            "comments": len(self.comments),
            "closed": self.closed,
        }


__all__ = ["Issue", "IssueState", "TimelineEvent", "EpicUpdate", "SyncOutcome"]
