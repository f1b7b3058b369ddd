from __future__ import annotations

import io
from datetime import date
from pathlib import Path

import pytest

from taskweek.config.loader import AppConfig
from taskweek.excel.reader import EmptyInputError, TableData, UnreadableInputError
from taskweek.logging.error_log import ErrorLogBuffer
from taskweek.models.task import Status
from taskweek.models.views import ProjectFilter, WeekSelection
from taskweek.services.columns import MissingColumnsError
from taskweek.services.aggregation import build_project_rows
from taskweek.services.export import ExportDeliveryError
from taskweek.services.session import LoadInProgressError, TaskSession

EXPORT_HEADERS = [
    "Key", "Issue Type", "Assignee", "Story Points", "Summary",
    "Labels", "Epic Link", "Module Name", "Status",
]


def _table(rows: list[list[object]], headers: list[str] | None = None) -> TableData:
    headers = headers or EXPORT_HEADERS
    return TableData(
        source="export.xlsx",
        columns=list(headers),
        records=[dict(zip(headers, r)) for r in rows],
    )


class FakeReader:
    """Reader stand-in returning prepared tables (or raising) in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: list[tuple[Path, object]] = []

    def __call__(self, path: Path, keep_na_strings=None) -> TableData:
        self.calls.append((path, keep_na_strings))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _session(reader, tmp_path: Path, config: AppConfig | None = None) -> TaskSession:
    return TaskSession(
        config=config or AppConfig(),
        error_log=ErrorLogBuffer(tmp_path / "logs"),
        reader=reader,
        progress=False,
    )


def test_load_success_builds_tasks(tmp_path: Path, sample_rows, capsys):
    session = _session(FakeReader(_table(sample_rows)), tmp_path)
    result = session.load(Path("export.xlsx"))
    assert len(session.raw_records) == 5
    assert len(session.tasks) == 5
    assert result.summary_line.startswith("SUMMARY rows=5 tasks=5 weeks=2 ")
    assert "open=1 inprogress=1 done=3 other=0" in result.summary_line
    assert session.last_error is None
    assert len(session.error_log) == 0
    assert "SUMMARY rows=5" in capsys.readouterr().err


def test_load_passes_keep_na_strings(tmp_path: Path, sample_rows):
    reader = FakeReader(_table(sample_rows))
    _session(reader, tmp_path, AppConfig(keep_na_strings=["NA"])).load(Path("export.xlsx"))
    assert reader.calls == [(Path("export.xlsx"), ["NA"])]


def test_load_empty_input_clears_dataset(tmp_path: Path, sample_rows):
    session = _session(FakeReader(_table(sample_rows), EmptyInputError("no data rows")), tmp_path)
    session.load(Path("export.xlsx"))
    with pytest.raises(EmptyInputError):
        session.load(Path("empty.xlsx"))
    assert session.tasks == ()
    assert session.raw_records == ()
    assert [r.error_type for r in session.error_log.records] == ["EMPTY_INPUT"]
    assert session.error_log.records[0].file == "empty.xlsx"


def test_missing_columns_keeps_raw_records(tmp_path: Path, sample_rows):
    headers = EXPORT_HEADERS[:-1]
    rows = [r[:-1] for r in sample_rows]
    session = _session(FakeReader(_table(rows, headers)), tmp_path)
    with pytest.raises(MissingColumnsError) as e:
        session.load(Path("export.xlsx"))
    assert e.value.missing == ["Status"]
    assert "Status" in str(e.value)
    assert len(session.raw_records) == 5
    assert session.tasks == ()
    assert session.dataset.mapping is not None and not session.dataset.mapping.complete
    assert session.error_log.records[0].error_type == "MISSING_REQUIRED_COLUMNS"


def test_unexpected_reader_failure_becomes_unreadable(tmp_path: Path):
    session = _session(FakeReader(RuntimeError("boom")), tmp_path)
    with pytest.raises(UnreadableInputError, match="boom"):
        session.load(Path("broken.xlsx"))
    assert session.last_error is not None
    assert session.error_log.records[0].error_type == "UNREADABLE_INPUT"


def test_overlapping_load_is_rejected(tmp_path: Path, sample_rows):
    rejected: list[Exception] = []
    holder: dict[str, TaskSession] = {}

    def reentrant_reader(path: Path, keep_na_strings=None) -> TableData:
        try:
            holder["session"].load(Path("second.xlsx"))
        except LoadInProgressError as e:
            rejected.append(e)
        return _table(sample_rows)

    session = _session(reentrant_reader, tmp_path)
    holder["session"] = session
    session.load(Path("first.xlsx"))
    assert len(rejected) == 1
    assert "second.xlsx" in str(rejected[0])
    # the pending load finished normally
    assert len(session.tasks) == 5
    assert not session.loading


def test_views_cached_until_reload(tmp_path: Path, sample_rows, monkeypatch):
    calls = []

    def counting_build(tasks, flt):
        calls.append(flt)
        return build_project_rows(tasks, flt)

    monkeypatch.setattr("taskweek.services.session.build_project_rows", counting_build)
    session = _session(FakeReader(_table(sample_rows), _table(sample_rows[:1])), tmp_path)
    session.load(Path("export.xlsx"))
    flt = ProjectFilter(WeekSelection.of("W02"))
    first = session.project_rows(flt)
    assert session.project_rows(ProjectFilter(WeekSelection.of("W2"))) == first
    assert len(calls) == 1
    assert session.weeks() == ["W01", "W02"]
    assert len(session.workload_rows()) == 2

    session.load(Path("export.xlsx"))
    assert session.weeks() == ["W01"]
    assert session.project_rows(flt) == []


def test_mutating_a_view_does_not_touch_the_cache(tmp_path: Path, sample_rows):
    session = _session(FakeReader(_table(sample_rows)), tmp_path)
    session.load(Path("export.xlsx"))
    rows = session.project_rows()
    expected = list(rows)
    rows.clear()
    weeks = session.weeks()
    weeks.append("W99")
    session.workload_rows().pop()
    assert session.project_rows() == expected
    assert session.weeks() == ["W01", "W02"]
    assert len(session.workload_rows()) == 2


def test_compare_and_follow_up_views(tmp_path: Path, sample_rows):
    session = _session(FakeReader(_table(sample_rows)), tmp_path)
    session.load(Path("export.xlsx"))
    view = session.compare("W01", "W02")
    by_id = {r.task_id: r for r in view.rows}
    assert by_id["PROJ-1"].transition == "done -> inprogress"
    # "Closed" counts as done
    assert by_id["PROJ-2"].status_b is Status.DONE
    assert by_id["PROJ-2"].invalid_done_both
    report = session.follow_up(date(2026, 1, 7))
    assert report.current_week == "W02"
    assert report.previous_week == "W01"


def test_export_failure_is_recorded(tmp_path: Path, sample_rows):
    session = _session(FakeReader(_table(sample_rows)), tmp_path)
    session.load(Path("export.xlsx"))
    with pytest.raises(ExportDeliveryError):
        session.export("A,B", tmp_path / "missing-dir" / "out.csv")
    assert session.error_log.records[-1].error_type == "EXPORT_DELIVERY_FAILURE"
    # dataset untouched
    assert len(session.tasks) == 5
    buf = io.StringIO()
    session.export("A,B", buf)
    assert buf.getvalue() == "A,B\n"


def test_error_log_created_on_first_failure(tmp_path: Path, sample_rows):
    session = TaskSession(
        config=AppConfig(error_log_dir=str(tmp_path / "errors")),
        reader=FakeReader(_table(sample_rows), EmptyInputError("no data rows")),
        progress=False,
    )
    session.load(Path("export.xlsx"))
    assert session.error_log is None
    with pytest.raises(EmptyInputError):
        session.load(Path("empty.xlsx"))
    assert session.error_log is not None
    assert session.error_log.file_path.parent == tmp_path / "errors"
    assert [r.error_type for r in session.error_log.records] == ["EMPTY_INPUT"]
