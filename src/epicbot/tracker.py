"""Issue tracker abstraction consumed by the synchronizer.

The synchronizer only ever talks to an :class:`IssueTracker`: five coroutines
covering the reads and mutations EpicBot needs. ``GitHubIssueTracker`` backs
them with the blocking REST client by running each request on the event
loop's default executor; ``DryRunTracker`` forwards reads and only records
mutations.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import get_logger
from .models import Issue, IssueState, TimelineEvent

T = TypeVar("T")


class IssueTracker(Protocol):
    async def get_issue(self, number: int) -> Issue: ...

    async def list_timeline(self, number: int) -> list[TimelineEvent]: ...

    async def update_issue_body(self, number: int, body: str) -> None: ...

    async def update_issue_state(self, number: int, state: IssueState) -> None: ...

    async def create_comment(self, number: int, text: str) -> None: ...


class GitHubIssueTracker:
    """Async facade over :class:`GitHubRestClient`."""

    def __init__(self, rest_client: GitHubRestClient):
        self._rest = rest_client

    async def _call(self, fn: Callable[..., T], **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, **kwargs))

    async def get_issue(self, number: int) -> Issue:
        data = await self._call(self._rest.get_issue, number=number)
        try:
            return Issue.from_api(data)
        except ValueError as exc:
            raise GitHubAPIError(f"Malformed issue payload for #{number}: {exc}") from exc

    async def list_timeline(self, number: int) -> list[TimelineEvent]:
        data = await self._call(self._rest.list_timeline, number=number)
        try:
            return [TimelineEvent.from_api(entry) for entry in data]
        except ValueError as exc:
            raise GitHubAPIError(f"Malformed timeline payload for #{number}: {exc}") from exc

    async def update_issue_body(self, number: int, body: str) -> None:
        await self._call(self._rest.update_issue, number=number, body=body)

    async def update_issue_state(self, number: int, state: IssueState) -> None:
        await self._call(self._rest.update_issue, number=number, state=state.value)

    async def create_comment(self, number: int, text: str) -> None:
        await self._call(self._rest.create_comment, number=number, body=text)


class DryRunTracker:
    """Reads go to the wrapped tracker; mutations are logged and recorded only."""

    def __init__(self, inner: IssueTracker):
        self._inner = inner
        self.logger = get_logger()
        self.mutations: list[tuple[str, int, str]] = []

    async def get_issue(self, number: int) -> Issue:
        return await self._inner.get_issue(number)

    async def list_timeline(self, number: int) -> list[TimelineEvent]:
        return await self._inner.list_timeline(number)

    async def update_issue_body(self, number: int, body: str) -> None:
        self.logger.info(f"DRY-RUN PATCH /issues/{number} body", issue_number=number)
        self.mutations.append(("body", number, body))

    async def update_issue_state(self, number: int, state: IssueState) -> None:
        self.logger.info(
            f"DRY-RUN PATCH /issues/{number} state={state.value}", issue_number=number
        )
        self.mutations.append(("state", number, state.value))

    async def create_comment(self, number: int, text: str) -> None:
        self.logger.info(f"DRY-RUN POST /issues/{number}/comments", issue_number=number)
        self.mutations.append(("comment", number, text))


__all__ = ["IssueTracker", "GitHubIssueTracker", "DryRunTracker"]
