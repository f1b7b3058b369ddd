from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from .task import Status, Task, TaskIdentity, canonical_week

"""Derived view rows and filter parameter structs.

View rows are recomputed from the Task collection on every filter change.
They are never mutated and carry no identity beyond their source Task.
Filter structs are frozen/hashable so they can key a view cache.
"""

__all__ = [
    "WeekSelection",
    "ProjectFilter",
    "ProjectRow",
    "WorkloadRow",
    "CompareRow",
    "CompareSummary",
    "CompareView",
    "WorkloadBucketRow",
    "FollowUpReport",
    "StatusOverview",
]


@dataclass(frozen=True)
class WeekSelection:
    """Either "all weeks" (empty) or an explicit set of week codes."""
    weeks: frozenset[str] = frozenset()

    @classmethod
    def of(cls, *weeks: str) -> WeekSelection:
        """Selection of the given week codes, canonicalized (``W1`` -> ``W01``)."""
        return cls(frozenset(canonical_week(w) or w for w in weeks))

    @property
    def is_all(self) -> bool:
        return not self.weeks

    def matches(self, task: Task) -> bool:
        return self.is_all or task.has_any_week(self.weeks)


@dataclass(frozen=True)
class ProjectFilter:
    """Parameters of the grouped project listing. None means "all"."""
    weeks: WeekSelection = field(default_factory=WeekSelection)
    module: str | None = None
    assignee: str | None = None


@dataclass(frozen=True)
class ProjectRow:
    task: Task
    identity: TaskIdentity
    stale: bool  # done the week before a selected week, still labeled for it
    stale_weeks: tuple[str, ...] = ()  # previous weeks where the task was done
    module_span: int = 0  # > 0 only on the first row of a module run
    assignee_span: int = 0  # > 0 only on the first row of a (module, assignee) run

    @property
    def shows_module(self) -> bool:
        return self.module_span > 0

    @property
    def shows_assignee(self) -> bool:
        return self.assignee_span > 0


@dataclass(frozen=True)
class WorkloadRow:
    assignee: str
    points: tuple[int, int, int, int, int]  # counts for story points 1..5
    total: int

    def count(self, story_point: int) -> int:
        return self.points[story_point - 1]


@dataclass(frozen=True)
class CompareRow:
    identity: TaskIdentity
    task_id: str
    task_name: str
    module: str
    assignee: str
    status_a: Status | None  # None = no data for week A
    status_b: Status | None
    transition: str
    invalid_done_both: bool
    missing_next_week_label: bool
    module_span: int = 0
    assignee_span: int = 0

    @property
    def changed(self) -> bool:
        return self.status_a != self.status_b


@dataclass(frozen=True)
class CompareSummary:
    total: int
    changed: int
    invalid_done_both: int

    @property
    def unchanged(self) -> int:
        return max(self.total - self.changed, 0)


@dataclass(frozen=True)
class CompareView:
    week_a: str | None
    week_b: str | None
    rows: tuple[CompareRow, ...]
    summary: CompareSummary

    @property
    def same_week(self) -> bool:
        """Both weeks set and equal: allowed, but most likely a mistake."""
        return self.week_a is not None and self.week_a == self.week_b


@dataclass(frozen=True)
class WorkloadBucketRow:
    assignee: str
    light: int  # story point <= 2, unscored included
    medium: int  # story point 3
    heavy: int  # story point 4-5
    unscored: int = 0  # story point 0, already counted in light

    @property
    def total(self) -> int:
        return self.light + self.medium + self.heavy


@dataclass(frozen=True)
class FollowUpReport:
    today: date
    current_week: str
    previous_week: str | None
    rows: tuple[CompareRow, ...]
    stalled: tuple[Task, ...]
    workload: tuple[WorkloadBucketRow, ...]


@dataclass(frozen=True)
class StatusOverview:
    total: int
    with_week: int
    counts: dict[Status, int]

    def count(self, status: Status) -> int:
        return self.counts.get(status, 0)
