"""Workload section discovery inside an Epic body.

The workload is the run of lines following a markdown heading whose text ends
with the configured marker (``## Workload``), up to the next heading that does
not end with it. Only lines inside that run are considered checklist entries.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

from .checklist import ChecklistLine, parse_line

LINE_SEPARATOR = "\r\n"

_line_split_re = re.compile(r"\r?\n")


def split_lines(body: str | None) -> list[str]:
    return _line_split_re.split(body or "")


def join_lines(lines: Sequence[str]) -> str:
    return LINE_SEPARATOR.join(lines)


def is_heading(line: str) -> bool:
    return line.startswith("#")


def locate_workload(lines: Sequence[str], marker: str) -> range | None:
    if not marker:
        raise ValueError("workload marker must be a non-empty string")
    start: int | None = None
    for idx, line in enumerate(lines):
        if not is_heading(line):
            continue
        if line.endswith(marker):
            # a second marker heading inside the section keeps it open
            if start is None:
                start = idx + 1
        elif start is not None:
            return range(start, idx)
    if start is None:
        return None
    return range(start, len(lines))


def iter_checklist(lines: Sequence[str], marker: str) -> Iterator[tuple[int, ChecklistLine]]:
    section = locate_workload(lines, marker)
    if section is None:
        return
    for idx in section:
        parsed = parse_line(lines[idx])
        if parsed is not None:
            yield idx, parsed


def all_tasks_complete(body: str | None, marker: str) -> bool:
    """Return True when every task line in the workload section is checked.

    A body without a workload section has nothing left to do and counts as
    complete.
    """
    return all(entry.checked for _, entry in iter_checklist(split_lines(body), marker))


__all__ = [
    "LINE_SEPARATOR",
    "split_lines",
    "join_lines",
    "is_heading",
    "locate_workload",
    "iter_checklist",
    "all_tasks_complete",
]
