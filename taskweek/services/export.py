from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TextIO, Union

from ..models.task import Status
from ..models.views import CompareView, FollowUpReport, ProjectRow, WorkloadRow

"""Report serialization to comma-delimited text.

A field is wrapped in double quotes (inner quotes doubled) only when it
contains a comma, a newline or a double quote. Lines are joined with "\\n";
no trailing terminator is added.
"""

__all__ = [
    "ExportDeliveryError",
    "escape_field",
    "to_csv",
    "project_report",
    "workload_report",
    "compare_report",
    "follow_up_report",
    "stalled_report",
    "bucket_report",
    "deliver",
]

Cell = Union[str, int, float]
Table = tuple[list[str], list[list[Cell]]]

NO_DATA = "-"


class ExportDeliveryError(Exception):
    """Serialized report could not be written to its destination."""
    error_type = "EXPORT_DELIVERY_FAILURE"


def escape_field(value: Cell | None) -> str:
    text = "" if value is None else str(value)
    if "," in text or "\n" in text or '"' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(headers: Sequence[Cell], rows: Iterable[Sequence[Cell]]) -> str:
    lines = [",".join(escape_field(h) for h in headers)]
    lines.extend(",".join(escape_field(c) for c in row) for row in rows)
    return "\n".join(lines)


def _flag(value: bool) -> str:
    return "YES" if value else "NO"


def _status(value: Status | None) -> str:
    return NO_DATA if value is None else value.value


def project_report(
    rows: Sequence[ProjectRow], *, include_labels: bool = True, include_stale_flag: bool = True
) -> Table:
    headers = [
        "Module Name", "Assignee", "Task ID", "Issue Type", "Summary",
        "Epic Link", "Status", "Story Points",
    ]
    if include_labels:
        headers.append("Labels")
    if include_stale_flag:
        headers.append("Prev Week Done But Still Appears")

    data: list[list[Cell]] = []
    for r in rows:
        t = r.task
        line: list[Cell] = [
            t.module, t.assignee, t.task_id, t.issue_type, t.name,
            t.epic_link, t.status.value, t.story_point,
        ]
        if include_labels:
            line.append(",".join(t.sorted_weeks))
        if include_stale_flag:
            line.append(_flag(r.stale))
        data.append(line)
    return headers, data


def workload_report(rows: Sequence[WorkloadRow]) -> Table:
    headers = ["Assignee", "C1", "C2", "C3", "C4", "C5", "Total"]
    return headers, [[r.assignee, *r.points, r.total] for r in rows]


def compare_report(view: CompareView) -> Table:
    headers = [
        "Task ID", "Task Name", "Module Name", "Assignee",
        f"Status {view.week_a or NO_DATA}", f"Status {view.week_b or NO_DATA}",
        "Transition", "Invalid Done Both Weeks",
    ]
    data: list[list[Cell]] = [
        [
            r.task_id, r.task_name, r.module, r.assignee,
            _status(r.status_a), _status(r.status_b),
            r.transition, _flag(r.invalid_done_both),
        ]
        for r in view.rows
    ]
    return headers, data


def follow_up_report(report: FollowUpReport) -> Table:
    headers = [
        "Task ID", "Task Name", "Module Name", "Assignee",
        f"Status {report.previous_week or NO_DATA}", f"Status {report.current_week}",
        "Invalid Done Both Weeks", "Missing Current Week Label",
    ]
    data: list[list[Cell]] = [
        [
            r.task_id, r.task_name, r.module, r.assignee,
            _status(r.status_a), _status(r.status_b),
            _flag(r.invalid_done_both), _flag(r.missing_next_week_label),
        ]
        for r in report.rows
    ]
    return headers, data


def stalled_report(report: FollowUpReport) -> Table:
    headers = ["Task ID", "Task Name", "Module Name", "Assignee", "Labels"]
    return headers, [
        [t.task_id, t.name, t.module, t.assignee, ",".join(t.sorted_weeks)] for t in report.stalled
    ]


def bucket_report(report: FollowUpReport) -> Table:
    headers = ["Assignee", "Light", "Medium", "Heavy", "Unscored", "Total"]
    return headers, [
        [r.assignee, r.light, r.medium, r.heavy, r.unscored, r.total] for r in report.workload
    ]


def deliver(text: str, destination: Path | TextIO) -> None:
    """Write ``text`` to a file path or an open text stream."""
    try:
        if isinstance(destination, Path):
            destination.write_text(text, encoding="utf-8")
        else:
            destination.write(text)
            destination.write("\n")
            destination.flush()
    except OSError as e:
        raise ExportDeliveryError(f"cannot write report to {_describe(destination)}: {e}") from e


def _describe(destination: Path | TextIO) -> str:
    if isinstance(destination, Path):
        return str(destination)
    return getattr(destination, "name", "<stream>")
