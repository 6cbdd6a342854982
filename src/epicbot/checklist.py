"""Checklist line grammar.

A task line inside an Epic's workload section looks like::

    - [ ] #12 Fix the login redirect
      - [x] #13 Nested follow-up

``parse_line`` turns such a line into a :class:`ChecklistLine`; anything else
yields ``None`` and callers leave the text untouched. ``format_line`` is the
exact inverse.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

CHECKED_MARK = "x"

_task_re = re.compile(
    r"^(?P<indent>[ \t]*)- \[(?P<mark>[x ])\] #(?P<number>[0-9]+)[ \t]*(?P<title>.*)$"
)


@dataclass(frozen=True)
class ChecklistLine:
    indent: str
    checked: bool
    number: int
    title: str
    # source line as parsed; empty for lines built in code
    text: str = field(default="", compare=False, repr=False)

    def format(self) -> str:
        return format_line(self.indent, self.checked, self.number, self.title)


def parse_line(text: str) -> ChecklistLine | None:
    m = _task_re.match(text)
    if not m:
        return None
    return ChecklistLine(
        indent=m.group("indent"),
        checked=m.group("mark") == CHECKED_MARK,
        number=int(m.group("number")),
        title=m.group("title"),
        text=text,
    )


def format_line(indent: str, checked: bool, number: int, title: str) -> str:
    mark = CHECKED_MARK if checked else " "
    line = f"{indent}- [{mark}] #{number}"
    return f"{line} {title}" if title else line


__all__ = ["ChecklistLine", "parse_line", "format_line", "CHECKED_MARK"]
