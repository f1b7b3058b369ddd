from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskweek.cli import main as cli_main


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    monkeypatch.delenv("TASKWEEK_CONFIG", raising=False)


def _error_lines(workdir: Path) -> list[dict]:
    files = sorted((workdir / "logs").glob("errors-*.log"))
    assert len(files) == 1
    return [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]


def test_missing_status_column_is_fatal(temp_workdir: Path, export_writer, sample_rows, capsys):
    headers = ["Key", "Issue Type", "Assignee", "Story Points", "Summary", "Labels", "Epic Link", "Module Name"]
    path = export_writer(temp_workdir / "data" / "export.xlsx", [r[:-1] for r in sample_rows], headers)
    code = cli_main(["project", str(path)])
    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    assert "ERROR load export.xlsx: missing required columns: Status" in captured.err
    records = _error_lines(temp_workdir)
    assert records[0]["error_type"] == "MISSING_REQUIRED_COLUMNS"
    assert records[0]["file"] == "export.xlsx"


def test_inspect_still_works_with_missing_columns(temp_workdir: Path, export_writer, capsys):
    path = export_writer(temp_workdir / "data" / "odd.xlsx", [["A-1", "x"], ["A-2", "y"]], ["Key", "Notes"])
    code = cli_main(["inspect", str(path)])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.splitlines() == ["Key,Notes", "A-1,x", "A-2,y"]
    assert "WARN unresolved columns: Issue Type, Assignee" in captured.err


def test_empty_export_is_fatal(temp_workdir: Path, export_writer, capsys):
    path = export_writer(temp_workdir / "data" / "empty.xlsx", [])
    assert cli_main(["summary", str(path)]) == 1
    assert _error_lines(temp_workdir)[0]["error_type"] == "EMPTY_INPUT"


def test_unreadable_export_is_fatal(temp_workdir: Path, capsys):
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_bytes(b"\x00\x01 not a workbook")
    assert cli_main(["summary", str(path)]) == 1
    assert _error_lines(temp_workdir)[0]["error_type"] == "UNREADABLE_INPUT"


def test_delivery_failure_exit_code(sample_export: Path, temp_workdir: Path, capsys):
    target = temp_workdir / "no-such-dir" / "report.csv"
    code = cli_main(["summary", str(sample_export), "--output", str(target)])
    captured = capsys.readouterr()
    assert code == 2
    assert "ERROR export: cannot write report to" in captured.err
    assert _error_lines(temp_workdir)[0]["error_type"] == "EXPORT_DELIVERY_FAILURE"


def test_bad_config_is_fatal(sample_export: Path, temp_workdir: Path, capsys):
    code = cli_main(["--config", str(temp_workdir / "config" / "nope.yml"), "summary", str(sample_export)])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().err


def test_bad_week_argument_rejected(sample_export: Path, capsys):
    with pytest.raises(SystemExit) as e:
        cli_main(["workload", str(sample_export), "--week", "week-1"])
    assert e.value.code == 2
    assert "not a week code" in capsys.readouterr().err


def test_success_writes_no_error_log(sample_export: Path, temp_workdir: Path, capsys):
    assert cli_main(["summary", str(sample_export)]) == 0
    assert not (temp_workdir / "logs").exists()
