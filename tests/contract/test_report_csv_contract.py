from __future__ import annotations

import csv
import io
from datetime import date

import pytest

from taskweek.models.task import Status
from taskweek.services.aggregation import build_compare_view, build_project_rows, build_workload_rows
from taskweek.services.anomaly import build_follow_up
from taskweek.services.export import (
    bucket_report,
    compare_report,
    follow_up_report,
    project_report,
    stalled_report,
    to_csv,
    workload_report,
)

"""Report CSV contract: fixed header sets, one line per row, RFC 4180 readable."""


@pytest.fixture()
def tasks(task_factory):
    return [
        task_factory("P-1", weeks=("W02",), status=Status.DONE, name='Quote "this", please'),
        task_factory("P-1", weeks=("W03",), status=Status.DONE, name='Quote "this", please'),
        task_factory("P-2", weeks=("W03",), status=Status.INPROGRESS, name="Multi\nline"),
    ]


def _tables(tasks):
    report = build_follow_up(tasks, date(2026, 1, 14))
    return {
        "project": project_report(build_project_rows(tasks)),
        "workload": workload_report(build_workload_rows(tasks)),
        "compare": compare_report(build_compare_view(tasks, "W02", "W03")),
        "followup": follow_up_report(report),
        "stalled": stalled_report(report),
        "buckets": bucket_report(report),
    }


def test_every_report_parses_back(tasks):
    for name, (headers, rows) in _tables(tasks).items():
        text = to_csv(headers, rows)
        assert not text.endswith("\n"), name
        parsed = list(csv.reader(io.StringIO(text)))
        assert parsed[0] == headers, name
        assert len(parsed) == len(rows) + 1, name
        assert all(len(r) == len(headers) for r in parsed), name


def test_quoted_cells_survive(tasks):
    headers, rows = _tables(tasks)["project"]
    parsed = list(csv.reader(io.StringIO(to_csv(headers, rows))))
    names = {r[4] for r in parsed[1:]}
    assert 'Quote "this", please' in names
    assert "Multi\nline" in names


def test_fixed_headers(tasks):
    tables = _tables(tasks)
    assert tables["workload"][0] == ["Assignee", "C1", "C2", "C3", "C4", "C5", "Total"]
    assert tables["compare"][0] == [
        "Task ID", "Task Name", "Module Name", "Assignee",
        "Status W02", "Status W03", "Transition", "Invalid Done Both Weeks",
    ]
    assert tables["followup"][0][-2:] == ["Invalid Done Both Weeks", "Missing Current Week Label"]
    assert tables["stalled"][0] == ["Task ID", "Task Name", "Module Name", "Assignee", "Labels"]
