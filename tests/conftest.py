"""Pytest configuration for EpicBot tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and provides an
in-memory issue tracker for the synchronizer and dispatcher tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from epicbot.errors import TransportError  # noqa: E402
from epicbot.models import Issue, IssueState, TimelineEvent  # noqa: E402


class FakeTracker:
    """In-memory tracker recording every call in order."""

    def __init__(
        self,
        issues: dict[int, Issue] | None = None,
        timelines: dict[int, list[TimelineEvent]] | None = None,
    ):
        self.issues: dict[int, Issue] = dict(issues or {})
        self.timelines: dict[int, list[TimelineEvent]] = dict(timelines or {})
        self.calls: list[tuple[str, int, object]] = []
        self.fail_on: set[str] = set()
        # number requested -> number actually returned (lookup mismatch simulation)
        self.redirects: dict[int, int] = {}

    def _maybe_fail(self, op: str, number: int) -> None:
        if op in self.fail_on:
            raise TransportError(f"{op} #{number} failed")

    def add(self, *issues: Issue) -> None:
        for issue in issues:
            self.issues[issue.number] = issue

    async def get_issue(self, number: int) -> Issue:
        self.calls.append(("get_issue", number, None))
        self._maybe_fail("get_issue", number)
        target = self.redirects.get(number, number)
        if target not in self.issues:
            raise TransportError(f"issue #{number} not found")
        return self.issues[target]

    async def list_timeline(self, number: int) -> list[TimelineEvent]:
        self.calls.append(("list_timeline", number, None))
        self._maybe_fail("list_timeline", number)
        return list(self.timelines.get(number, []))

    async def update_issue_body(self, number: int, body: str) -> None:
        self.calls.append(("update_body", number, body))
        self._maybe_fail("update_body", number)

    async def update_issue_state(self, number: int, state: IssueState) -> None:
        self.calls.append(("update_state", number, state))
        self._maybe_fail("update_state", number)

    async def create_comment(self, number: int, text: str) -> None:
        self.calls.append(("comment", number, text))
        self._maybe_fail("comment", number)

    def mutations(self) -> list[tuple[str, int, object]]:
        return [c for c in self.calls if c[0] in {"update_body", "update_state", "comment"}]


def cross_ref(epic: Issue) -> TimelineEvent:
    return TimelineEvent(event="cross-referenced", source_type="issue", source_issue=epic)


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def make_cross_ref():
    return cross_ref


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch):
    # handlers bind sys.stdout at construction; rebuild per test so capture swaps are honoured
    monkeypatch.setattr("epicbot.logging._GLOBAL", None)
