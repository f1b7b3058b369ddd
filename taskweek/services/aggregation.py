from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import replace
from typing import TypeVar

from ..models.task import Status, Task, TaskIdentity, canonical_week, previous_week, sort_weeks
from ..models.views import (
    CompareRow,
    CompareSummary,
    CompareView,
    ProjectFilter,
    ProjectRow,
    StatusOverview,
    WeekSelection,
    WorkloadRow,
)

"""Aggregation engine: read-only views over the normalized Task collection.

- grouped project listing (module / assignee) with staleness warnings
- assignee workload histogram by story point
- week-over-week status comparison

Every view is a pure function of (tasks, parameters).
"""

logger = logging.getLogger(__name__)

T = TypeVar("T")

StatusByWeek = dict[TaskIdentity, dict[str, Status]]

NO_DATA_IN_BOTH = "no data in both"
UNCHANGED = "unchanged"


def merge_status_by_week(tasks: Iterable[Task]) -> StatusByWeek:
    """Per task identity, the most advanced status reported for each week."""
    merged: StatusByWeek = {}
    for task in tasks:
        by_week = merged.setdefault(task.identity, {})
        for week in task.weeks:
            current = by_week.get(week)
            if current is None or task.status.rank > current.rank:
                by_week[week] = task.status
    return merged


def group_spans(items: Sequence[T], key: Callable[[T], Hashable]) -> list[int]:
    """First-of-run scan over a sorted sequence.

    Returns one entry per item: the run length on the first item of each run
    of consecutive equal keys, 0 on the others.
    """
    spans = [0] * len(items)
    start = 0
    for i in range(1, len(items) + 1):
        if i == len(items) or key(items[i]) != key(items[start]):
            spans[start] = i - start
            start = i
    return spans


def _stale_weeks(task: Task, selection: WeekSelection, merged: StatusByWeek) -> tuple[str, ...]:
    """Weeks right before any selected week in which the task was done.

    Only tasks still labeled for a selected week can be stale.
    """
    if selection.is_all:
        return ()
    if not task.has_any_week(selection.weeks):
        return ()
    by_week = merged.get(task.identity, {})
    stale = []
    for week in sort_weeks(selection.weeks):
        prev = previous_week(week)
        if prev is not None and by_week.get(prev) is Status.DONE:
            stale.append(prev)
    return tuple(stale)


def project_sort_key(task: Task) -> tuple:
    return (task.module, task.assignee, task.status.rank, task.name, task.task_id)


def build_project_rows(tasks: Sequence[Task], flt: ProjectFilter | None = None) -> list[ProjectRow]:
    """Grouped project listing.

    The merged status map is built over the whole collection, ignoring the
    filters, so the staleness check sees weeks that are filtered out.
    """
    flt = flt or ProjectFilter()
    merged = merge_status_by_week(tasks)

    selected = [
        t
        for t in tasks
        if flt.weeks.matches(t)
        and (flt.module is None or t.module == flt.module)
        and (flt.assignee is None or t.assignee == flt.assignee)
    ]
    selected.sort(key=project_sort_key)

    module_spans = group_spans(selected, lambda t: t.module)
    assignee_spans = group_spans(selected, lambda t: (t.module, t.assignee))

    rows = []
    for task, module_span, assignee_span in zip(selected, module_spans, assignee_spans, strict=True):
        stale = _stale_weeks(task, flt.weeks, merged)
        rows.append(
            ProjectRow(
                task=task,
                identity=task.identity,
                stale=bool(stale),
                stale_weeks=stale,
                module_span=module_span,
                assignee_span=assignee_span,
            )
        )
    return rows


def build_workload_rows(tasks: Iterable[Task], selection: WeekSelection | None = None) -> list[WorkloadRow]:
    """Per-assignee task counts by story point (1..5) plus total.

    Unscored tasks (story point 0) count toward the total only.
    """
    selection = selection or WeekSelection()
    buckets: dict[str, list[int]] = {}
    totals: Counter[str] = Counter()
    for task in tasks:
        if not selection.matches(task):
            continue
        points = buckets.setdefault(task.assignee, [0, 0, 0, 0, 0])
        if 1 <= task.story_point <= 5:
            points[task.story_point - 1] += 1
        totals[task.assignee] += 1

    rows = [
        WorkloadRow(assignee=assignee, points=tuple(points), total=totals[assignee])  # type: ignore[arg-type]
        for assignee, points in buckets.items()
    ]
    rows.sort(key=lambda r: (-r.total, r.assignee))
    return rows


def transition_text(status_a: Status | None, status_b: Status | None, week_b: str) -> str:
    if status_a is None and status_b is None:
        return NO_DATA_IN_BOTH
    if status_a is None:
        return f"new in {week_b}"
    if status_b is None:
        return f"missing in {week_b}"
    if status_a is status_b:
        return UNCHANGED
    return f"{status_a.value} -> {status_b.value}"


def _week_param(week: str | None) -> str | None:
    if not week:
        return None
    return canonical_week(week) or week


def build_compare_view(tasks: Sequence[Task], week_a: str | None, week_b: str | None) -> CompareView:
    """Status of every task in week A versus week B.

    Either week unset gives an empty view. Equal weeks are allowed.
    """
    week_a, week_b = _week_param(week_a), _week_param(week_b)
    if week_a is None or week_b is None:
        return CompareView(week_a, week_b, (), CompareSummary(0, 0, 0))
    if week_a == week_b:
        logger.warning("comparing %s with itself", week_a)

    merged = merge_status_by_week(tasks)
    first_seen: dict[TaskIdentity, Task] = {}
    for task in tasks:
        first_seen.setdefault(task.identity, task)

    rows: list[CompareRow] = []
    for identity, task in first_seen.items():
        by_week = merged.get(identity, {})
        status_a = by_week.get(week_a)
        status_b = by_week.get(week_b)
        if status_a is None and status_b is None:
            continue
        rows.append(
            CompareRow(
                identity=identity,
                task_id=task.task_id,
                task_name=task.name,
                module=task.module,
                assignee=task.assignee,
                status_a=status_a,
                status_b=status_b,
                transition=transition_text(status_a, status_b, week_b),
                invalid_done_both=status_a is Status.DONE and status_b is Status.DONE,
                missing_next_week_label=status_a is not None
                and status_a is not Status.DONE
                and status_b is None,
            )
        )
    rows.sort(key=lambda r: (r.module, r.assignee, not r.invalid_done_both, r.task_id))

    module_spans = group_spans(rows, lambda r: r.module)
    assignee_spans = group_spans(rows, lambda r: (r.module, r.assignee))
    rows = [
        replace(r, module_span=m, assignee_span=a)
        for r, m, a in zip(rows, module_spans, assignee_spans, strict=True)
    ]
    summary = CompareSummary(
        total=len(rows),
        changed=sum(1 for r in rows if r.changed),
        invalid_done_both=sum(1 for r in rows if r.invalid_done_both),
    )
    return CompareView(week_a, week_b, tuple(rows), summary)


# Filter choices and overview figures


def available_weeks(tasks: Iterable[Task]) -> list[str]:
    weeks: set[str] = set()
    for task in tasks:
        weeks.update(task.weeks)
    return sort_weeks(weeks)


def module_options(tasks: Iterable[Task], selection: WeekSelection | None = None) -> list[str]:
    selection = selection or WeekSelection()
    return sorted({t.module for t in tasks if selection.matches(t)})


def assignee_options(
    tasks: Iterable[Task], selection: WeekSelection | None = None, module: str | None = None
) -> list[str]:
    selection = selection or WeekSelection()
    return sorted(
        {t.assignee for t in tasks if selection.matches(t) and (module is None or t.module == module)}
    )


def default_compare_weeks(tasks: Iterable[Task]) -> tuple[str | None, str | None]:
    """The two most recent weeks present; a single week is compared with itself."""
    weeks = available_weeks(tasks)
    if not weeks:
        return None, None
    if len(weeks) == 1:
        return weeks[0], weeks[0]
    return weeks[-2], weeks[-1]


def status_overview(tasks: Sequence[Task]) -> StatusOverview:
    counts = Counter(t.status for t in tasks)
    return StatusOverview(
        total=len(tasks),
        with_week=sum(1 for t in tasks if t.weeks),
        counts={status: counts.get(status, 0) for status in Status},
    )


def project_status_counts(rows: Iterable[ProjectRow]) -> dict[Status, int]:
    counts = Counter(r.task.status for r in rows)
    return {status: counts.get(status, 0) for status in Status}


def top_assignees(rows: Iterable[ProjectRow], limit: int = 10) -> list[tuple[str, int]]:
    """Assignees with the most rows in a project listing, ties by name."""
    counts = Counter(r.task.assignee for r in rows)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


def difficulty_totals(rows: Iterable[WorkloadRow]) -> tuple[int, int, int, int, int]:
    totals = [0, 0, 0, 0, 0]
    for row in rows:
        for i, n in enumerate(row.points):
            totals[i] += n
    return tuple(totals)  # type: ignore[return-value]
