from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

"""Task domain model for the weekly task report pipeline.

A Task is one normalized row of the uploaded work-item export. Several
Tasks may describe the same underlying work item (one row per week), so
each Task also exposes a TaskIdentity used to merge them.
"""

__all__ = [
    "Status",
    "Task",
    "TaskIdentity",
    "KeyedIdentity",
    "CompositeIdentity",
    "WEEK_CODE_RE",
    "canonical_week",
    "week_number",
    "previous_week",
    "sort_weeks",
    "PLACEHOLDER",
]

PLACEHOLDER = "-"

# W + 1..2 digits, case handled by callers
WEEK_CODE_RE = re.compile(r"^W(\d{1,2})$", re.IGNORECASE)


class Status(Enum):
    """Normalized work-item status.

    Declaration order is the advancement order used when several rows report
    the same task in the same week: open < inprogress < done < other.
    """
    OPEN = "open"
    INPROGRESS = "inprogress"
    DONE = "done"
    OTHER = "other"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def __str__(self) -> str:
        return self.value


_STATUS_RANK = {status: index for index, status in enumerate(Status)}


def canonical_week(token: str) -> str | None:
    """Return the two-digit week code for ``token`` (``w1`` -> ``W01``) or None."""
    m = WEEK_CODE_RE.match(token.strip())
    if not m:
        return None
    return f"W{int(m.group(1)):02d}"


def week_number(code: str) -> int:
    m = WEEK_CODE_RE.match(code)
    # unparseable codes sort last
    return int(m.group(1)) if m else 999


def previous_week(code: str) -> str | None:
    """Week code immediately before ``code``; undefined (None) for week 1."""
    m = WEEK_CODE_RE.match(code)
    if not m:
        return None
    n = int(m.group(1))
    if n <= 1:
        return None
    return f"W{n - 1:02d}"


def sort_weeks(codes) -> list[str]:
    return sorted(codes, key=lambda c: (week_number(c), c))


@dataclass(frozen=True)
class KeyedIdentity:
    """Identity of a task that carries a real task key."""
    task_id: str


@dataclass(frozen=True)
class CompositeIdentity:
    """Identity derived from (module, name) when no task key is available."""
    module: str
    name: str


TaskIdentity = Union[KeyedIdentity, CompositeIdentity]


@dataclass(frozen=True)
class Task:
    """One normalized task record (immutable once produced)."""
    task_id: str
    task_url: str
    issue_type: str
    assignee: str
    story_point: int  # 0 = unscored, else 1..5
    name: str
    weeks: frozenset[str] = field(default_factory=frozenset)
    epic_link: str = PLACEHOLDER
    module: str = "Unknown"
    status: Status = Status.OTHER

    @property
    def identity(self) -> TaskIdentity:
        if self.task_id and self.task_id != PLACEHOLDER:
            return KeyedIdentity(self.task_id)
        return CompositeIdentity(self.module, self.name)

    @property
    def sorted_weeks(self) -> list[str]:
        return sort_weeks(self.weeks)

    def has_any_week(self, weeks: frozenset[str]) -> bool:
        return not self.weeks.isdisjoint(weeks)
