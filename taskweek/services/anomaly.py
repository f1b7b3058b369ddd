from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import date, timedelta

from ..models.task import Status, Task, previous_week
from ..models.views import FollowUpReport, WorkloadBucketRow
from .aggregation import build_compare_view, group_spans

"""Follow-up view for managers, pinned to the calendar.

The current week comes from the ISO week number of ``today``; it is compared
with the week before it:

- follow-up rows: done in both weeks, or active last week but without a
  current-week label
- stalled tasks: labeled for the current week, still in progress, and
  carrying two or more week labels
- light / medium / heavy workload per assignee over current-week tasks
"""


def current_week_code(today: date) -> str:
    return f"W{today.isocalendar()[1]:02d}"


def week_range(today: date) -> tuple[date, date]:
    """Monday and Friday of the working week containing ``today``."""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=4)


def stalled_tasks(tasks: Sequence[Task], week: str) -> list[Task]:
    return [
        t
        for t in tasks
        if week in t.weeks and t.status is Status.INPROGRESS and len(t.weeks) >= 2
    ]


def workload_buckets(tasks: Sequence[Task], week: str) -> list[WorkloadBucketRow]:
    """Light (<= 2), medium (3), heavy (>= 4) counts per assignee for ``week``.

    Unscored tasks (story point 0) fall in light; ``unscored`` tells how many
    of the light ones carry no estimate.
    """
    counts: dict[str, list[int]] = {}
    for task in tasks:
        if week not in task.weeks:
            continue
        c = counts.setdefault(task.assignee, [0, 0, 0, 0])
        if task.story_point <= 2:
            c[0] += 1
            if task.story_point == 0:
                c[3] += 1
        elif task.story_point == 3:
            c[1] += 1
        else:
            c[2] += 1
    rows = [
        WorkloadBucketRow(assignee, light=c[0], medium=c[1], heavy=c[2], unscored=c[3])
        for assignee, c in counts.items()
    ]
    rows.sort(key=lambda r: (-r.heavy, -r.total, r.assignee))
    return rows


def build_follow_up(tasks: Sequence[Task], today: date) -> FollowUpReport:
    week = current_week_code(today)
    prev = previous_week(week)

    rows: tuple = ()
    if prev is not None:
        view = build_compare_view(tasks, prev, week)
        flagged = [r for r in view.rows if r.invalid_done_both or r.missing_next_week_label]
        module_spans = group_spans(flagged, lambda r: r.module)
        assignee_spans = group_spans(flagged, lambda r: (r.module, r.assignee))
        rows = tuple(
            replace(r, module_span=m, assignee_span=a)
            for r, m, a in zip(flagged, module_spans, assignee_spans, strict=True)
        )

    return FollowUpReport(
        today=today,
        current_week=week,
        previous_week=prev,
        rows=rows,
        stalled=tuple(stalled_tasks(tasks, week)),
        workload=tuple(workload_buckets(tasks, week)),
    )
