from __future__ import annotations

import pytest

from epicbot.config import BotConfig
from epicbot.errors import LookupMismatchError, TransportError
from epicbot.models import Issue, IssueState, TimelineEvent
from epicbot.synchronizer import EpicSynchronizer, update_task_in_epic
from epicbot.workload import split_lines

EPIC_BODY = "\r\n".join(
    [
        "Ship version two.",
        "",
        "## Workload",
        "- [ ] #12 Fix bug",
        "  - [ ] #13 Old title",
        "- [x] #14 Done already",
        "free text line",
        "## Notes",
        "- [ ] #15 Not tracked",
    ]
)


def _config(**overrides) -> BotConfig:
    base = {"epic_prefix": "[Epic]", "workload_marker": "Workload"}
    base.update(overrides)
    return BotConfig(**base)


def _epic(number: int = 100, body: str = EPIC_BODY) -> Issue:
    return Issue(number, "[Epic] Release v2", body=body)


# ---- update_task_in_epic --------------------------------------------------


def test_update_task_in_epic_scenario_a():
    body = "## Workload\n- [ ] #12 Fix bug\n## Other"
    update = update_task_in_epic(body, Issue(12, "Fix bug", state=IssueState.CLOSED), "Workload")
    assert update is not None
    assert update.body == "## Workload\r\n- [x] #12 Fix bug\r\n## Other"
    assert update.comment == "`EpicBot` marked task #12 as `closed`."


def test_update_task_in_epic_scenario_b_no_change():
    body = "## Workload\n- [ ] #12 Fix bug\n## Other"
    assert update_task_in_epic(body, Issue(12, "Fix bug"), "Workload") is None


def test_update_task_in_epic_only_touches_matching_line():
    task = Issue(13, "New title", state=IssueState.CLOSED)
    update = update_task_in_epic(EPIC_BODY, task, "Workload")
    assert update is not None
    before = split_lines(EPIC_BODY)
    after = split_lines(update.body)
    changed = [i for i, (a, b) in enumerate(zip(before, after)) if a != b]
    assert changed == [4]
    assert after[4] == "  - [x] #13 New title"
    assert len(before) == len(after)


def test_update_task_in_epic_ignores_lines_after_section():
    task = Issue(15, "Not tracked", state=IssueState.CLOSED)
    assert update_task_in_epic(EPIC_BODY, task, "Workload") is None


def test_update_task_in_epic_without_section():
    assert update_task_in_epic("- [ ] #12 Fix bug", Issue(12, "Fix bug", state=IssueState.CLOSED), "Workload") is None


def test_update_task_in_epic_missing_body():
    assert update_task_in_epic(None, Issue(12, "Fix bug"), "Workload") is None


# ---- Pull -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_pull_refreshes_lines_and_commits_once(tracker):
    tracker.add(
        Issue(12, "Fix bug", state=IssueState.CLOSED),
        Issue(13, "New title"),
        Issue(14, "Done already", state=IssueState.CLOSED),
    )
    sync = EpicSynchronizer(tracker, _config())

    changed = await sync.sync_epic_from_scratch(_epic())

    assert changed is True
    fetched = [c[1] for c in tracker.calls if c[0] == "get_issue"]
    assert fetched == [12, 13, 14]
    comments = [c[2] for c in tracker.calls if c[0] == "comment"]
    assert comments == [
        "`EpicBot` marked task #12 as `closed`.",
        "`EpicBot` refreshed the title for task #13.",
    ]
    bodies = [c for c in tracker.calls if c[0] == "update_body"]
    assert len(bodies) == 1
    assert bodies[0][1] == 100
    lines = split_lines(bodies[0][2])
    assert lines[3] == "- [x] #12 Fix bug"
    assert lines[4] == "  - [ ] #13 New title"
    assert lines[8] == "- [ ] #15 Not tracked"
    assert tracker.calls[-1][0] == "update_body"
    assert sync.outcomes[0].body_updated is True
    assert len(sync.outcomes[0].comments) == 2


@pytest.mark.asyncio
async def test_pull_is_idempotent_when_in_sync(tracker):
    tracker.add(
        Issue(12, "Fix bug"),
        Issue(13, "Old title"),
        Issue(14, "Done already", state=IssueState.CLOSED),
    )
    sync = EpicSynchronizer(tracker, _config())

    assert await sync.sync_epic_from_scratch(_epic()) is False
    assert tracker.mutations() == []


@pytest.mark.asyncio
async def test_pull_without_workload_section_does_nothing(tracker):
    sync = EpicSynchronizer(tracker, _config())
    epic = _epic(body="No sections here\n- [ ] #12 Fix bug")

    assert await sync.sync_epic_from_scratch(epic) is False
    assert tracker.calls == []


@pytest.mark.asyncio
async def test_pull_lookup_mismatch_aborts_without_commit(tracker):
    tracker.add(Issue(12, "Fix bug", state=IssueState.CLOSED), Issue(99, "Other"))
    tracker.redirects[13] = 99
    sync = EpicSynchronizer(tracker, _config())

    with pytest.raises(LookupMismatchError) as excinfo:
        await sync.sync_epic_from_scratch(_epic())

    assert excinfo.value.requested == 13
    assert excinfo.value.received == 99
    assert [c[0] for c in tracker.mutations()] == ["comment"]


@pytest.mark.asyncio
async def test_pull_fetch_failure_propagates(tracker):
    sync = EpicSynchronizer(tracker, _config())
    with pytest.raises(TransportError):
        await sync.sync_epic_from_scratch(_epic())
    assert tracker.mutations() == []


@pytest.mark.asyncio
async def test_pull_comment_failure_keeps_edit(tracker):
    tracker.add(
        Issue(12, "Fix bug", state=IssueState.CLOSED),
        Issue(13, "Old title"),
        Issue(14, "Done already", state=IssueState.CLOSED),
    )
    tracker.fail_on.add("comment")
    sync = EpicSynchronizer(tracker, _config())

    assert await sync.sync_epic_from_scratch(_epic()) is True
    body = [c[2] for c in tracker.calls if c[0] == "update_body"][0]
    assert "- [x] #12 Fix bug" in split_lines(body)
    assert sync.outcomes[0].comments == []


# ---- Push -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_push_updates_each_referencing_epic(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    first = _epic(100)
    second = Issue(200, "[Epic] Another", body="# Workload\n- [ ] #12 Fix bug\n- [ ] #20 Other")
    tracker.timelines[12] = [make_cross_ref(first), make_cross_ref(second)]
    sync = EpicSynchronizer(tracker, _config())

    assert await sync.sync_epic_from_task(task) is True

    assert [(c[0], c[1]) for c in tracker.mutations()] == [
        ("update_body", 100),
        ("comment", 100),
        ("update_body", 200),
        ("comment", 200),
    ]


@pytest.mark.asyncio
async def test_push_skips_non_epic_and_non_issue_events(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    plain = Issue(300, "Some bug report", body="## Workload\n- [ ] #12 Fix bug")
    tracker.timelines[12] = [
        TimelineEvent(event="labeled"),
        TimelineEvent(event="cross-referenced", source_type="pull_request", source_issue=_epic()),
        make_cross_ref(plain),
    ]
    sync = EpicSynchronizer(tracker, _config())

    assert await sync.sync_epic_from_task(task) is False
    assert tracker.mutations() == []


@pytest.mark.asyncio
async def test_push_continues_after_up_to_date_epic(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    in_sync = Issue(100, "[Epic] A", body="## Workload\n- [x] #12 Fix bug")
    stale = Issue(200, "[Epic] B", body="## Workload\n- [ ] #12 Fix bug")
    tracker.timelines[12] = [make_cross_ref(in_sync), make_cross_ref(stale)]
    sync = EpicSynchronizer(tracker, _config())

    assert await sync.sync_epic_from_task(task) is True
    assert {c[1] for c in tracker.mutations()} == {200}


@pytest.mark.asyncio
async def test_push_handles_repeated_cross_reference_once(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    epic = _epic()
    tracker.timelines[12] = [make_cross_ref(epic), make_cross_ref(epic)]
    sync = EpicSynchronizer(tracker, _config())

    await sync.sync_epic_from_task(task)

    assert len([c for c in tracker.calls if c[0] == "update_body"]) == 1


@pytest.mark.asyncio
async def test_push_ignores_epics_from_other_repositories(tracker):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    foreign = TimelineEvent.from_api(
        {
            "event": "cross-referenced",
            "source": {
                "type": "issue",
                "issue": {
                    "number": 5,
                    "title": "[Epic] Foreign",
                    "body": "## Workload\n- [ ] #12 Fix bug",
                    "repository": {"full_name": "other/repo"},
                },
            },
        }
    )
    tracker.timelines[12] = [foreign]
    sync = EpicSynchronizer(tracker, _config(repo="me/repo", close_completed_epics=True))

    assert await sync.sync_epic_from_task(task) is False
    assert tracker.mutations() == []


@pytest.mark.asyncio
async def test_push_updates_epic_from_same_repository(tracker):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    local = TimelineEvent.from_api(
        {
            "event": "cross-referenced",
            "source": {
                "type": "issue",
                "issue": {
                    "number": 5,
                    "title": "[Epic] Local",
                    "body": "## Workload\n- [ ] #12 Fix bug",
                    "repository_url": "https://api.github.com/repos/Me/Repo",
                },
            },
        }
    )
    tracker.timelines[12] = [local]
    sync = EpicSynchronizer(tracker, _config(repo="me/repo"))

    assert await sync.sync_epic_from_task(task) is True
    assert tracker.mutations()[0] == ("update_body", 5, "## Workload\r\n- [x] #12 Fix bug")


@pytest.mark.asyncio
async def test_push_closes_completed_epic_when_enabled(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    epic = Issue(100, "[Epic] A", body="## Workload\n- [ ] #12 Fix bug\n- [x] #13 Done\n## Notes\n- [ ] #1 x")
    tracker.timelines[12] = [make_cross_ref(epic)]
    sync = EpicSynchronizer(tracker, _config(close_completed_epics=True))

    await sync.sync_epic_from_task(task)

    assert tracker.calls[-1] == ("update_state", 100, IssueState.CLOSED)
    assert sync.outcomes[0].closed is True


@pytest.mark.asyncio
async def test_push_leaves_epic_open_when_disabled(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    epic = Issue(100, "[Epic] A", body="## Workload\n- [ ] #12 Fix bug\n- [x] #13 Done")
    tracker.timelines[12] = [make_cross_ref(epic)]
    sync = EpicSynchronizer(tracker, _config(close_completed_epics=False))

    await sync.sync_epic_from_task(task)

    assert all(c[0] != "update_state" for c in tracker.calls)


@pytest.mark.asyncio
async def test_push_does_not_close_epic_with_open_tasks(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    epic = Issue(100, "[Epic] A", body="## Workload\n- [ ] #12 Fix bug\n- [ ] #13 Pending")
    tracker.timelines[12] = [make_cross_ref(epic)]
    sync = EpicSynchronizer(tracker, _config(close_completed_epics=True))

    await sync.sync_epic_from_task(task)

    assert all(c[0] != "update_state" for c in tracker.calls)


@pytest.mark.asyncio
async def test_push_commit_failure_aborts_remaining_epics(tracker, make_cross_ref):
    task = Issue(12, "Fix bug", state=IssueState.CLOSED)
    tracker.timelines[12] = [
        make_cross_ref(Issue(100, "[Epic] A", body="## Workload\n- [ ] #12 Fix bug")),
        make_cross_ref(Issue(200, "[Epic] B", body="## Workload\n- [ ] #12 Fix bug")),
    ]
    tracker.fail_on.add("update_body")
    sync = EpicSynchronizer(tracker, _config())

    with pytest.raises(TransportError):
        await sync.sync_epic_from_task(task)

    assert [c[1] for c in tracker.calls if c[0] == "update_body"] == [100]
    assert all(c[0] != "comment" for c in tracker.calls)
