# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from taskweek.logging.init import reset_logging
from taskweek.models.task import Status, Task

EXPORT_HEADERS = [
    "Key", "Issue Type", "Assignee", "Story Points", "Summary",
    "Labels", "Epic Link", "Module Name", "Status",
]


def write_export(path: Path, rows: list[list[object]], headers: list[str] | None = None) -> Path:
    """Write an export with ``headers`` as first row (.csv or .xlsx by suffix)."""
    df = pd.DataFrame([headers or EXPORT_HEADERS, *rows])
    if path.suffix == ".csv":
        df.to_csv(path, header=False, index=False)
    else:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Export", header=False, index=False)
    return path


def make_task(
    task_id: str = "PROJ-1",
    *,
    weeks: tuple[str, ...] = ("W01",),
    status: Status = Status.OPEN,
    module: str = "Core",
    assignee: str = "An",
    name: str | None = None,
    story_point: int = 3,
) -> Task:
    return Task(
        task_id=task_id,
        task_url="",
        issue_type="Story",
        assignee=assignee,
        story_point=story_point,
        name=name if name is not None else f"Task {task_id}",
        weeks=frozenset(weeks),
        epic_link="-",
        module=module,
        status=status,
    )


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_rows() -> list[list[object]]:
    return [
        ["PROJ-1", "Story", "An", 3, "Login page", "W01", "EPIC-1", "Auth", "Done"],
        ["PROJ-1", "Story", "An", 3, "Login page", "W02", "EPIC-1", "Auth", "In Progress"],
        ["PROJ-2", "Bug", "Binh", 2, "Fix totals", "W01", "EPIC-2", "Billing", "done"],
        ["PROJ-2", "Bug", "Binh", 2, "Fix totals", "W02", "EPIC-2", "Billing", "Closed"],
        ["PROJ-3", "Task", "An", 5, "Refactor, cleanup", "W02", "", "Auth", "To-Do"],
    ]


@pytest.fixture()
def sample_export(temp_workdir: Path, sample_rows) -> Path:
    return write_export(temp_workdir / "data" / "export.xlsx", sample_rows)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """column_aliases:
  module: [component]
placeholders:
  assignee: Unassigned
keep_na_strings: [NA]
error_log_dir: logs
export:
  include_labels: false
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "taskweek.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def task_factory():
    return make_task


@pytest.fixture()
def export_writer():
    return write_export
