from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, TextIO

from ..config.loader import AppConfig
from ..excel.reader import LoadError, RawRecord, TableData, UnreadableInputError, read_table_file
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.error_record import EXPORT_DELIVERY_FAILURE, ErrorRecord
from ..models.task import Task
from ..models.views import (
    CompareView,
    FollowUpReport,
    ProjectFilter,
    ProjectRow,
    WeekSelection,
    WorkloadRow,
)
from .aggregation import (
    available_weeks,
    build_compare_view,
    build_project_rows,
    build_workload_rows,
    status_overview,
)
from .anomaly import build_follow_up
from .columns import (
    ColumnMapping,
    MissingColumnsError,
    collect_columns,
    resolve_columns,
    with_extra_aliases,
)
from .export import ExportDeliveryError, deliver
from .normalizer import normalize_rows
from .summary import render_summary_line

"""Load orchestration and the in-memory dataset of one uploaded export.

A load is one atomic unit of work with two outcomes:

- success: raw records and Task collection are replaced together
- failure: the collections are cleared (raw records survive only a
  missing-columns failure, for inspection) and the error is surfaced

A second load started while one is pending is rejected with
LoadInProgressError; the pending load is unaffected.

Views are pure functions of the current snapshot and the filter
parameters. They are cached per parameter tuple; the cache is dropped on
every load.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "Dataset",
    "LoadResult",
    "LoadInProgressError",
    "TaskSession",
]


class LoadInProgressError(LoadError):
    """Another load is still running on this session."""
    error_type = "LOAD_IN_PROGRESS"


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of one loaded export."""
    source: str = ""
    columns: tuple[str, ...] = ()
    raw_records: tuple[RawRecord, ...] = ()
    mapping: ColumnMapping | None = None
    tasks: tuple[Task, ...] = ()


@dataclass(frozen=True)
class LoadResult:
    dataset: Dataset
    elapsed_seconds: float
    summary_line: str


Reader = Callable[..., TableData]


@dataclass
class TaskSession:
    config: AppConfig = field(default_factory=AppConfig)
    error_log: ErrorLogBuffer | None = None
    reader: Reader = read_table_file
    progress: bool = True

    def __post_init__(self) -> None:
        self._fields = with_extra_aliases(self.config.column_aliases)
        self._dataset = Dataset()
        self._lock = threading.Lock()
        self._cache: dict[Hashable, Any] = {}
        self.last_error: LoadError | None = None

    # Snapshot accessors

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def raw_records(self) -> tuple[RawRecord, ...]:
        return self._dataset.raw_records

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._dataset.tasks

    @property
    def loading(self) -> bool:
        return self._lock.locked()

    # Loading

    def load(self, path: Path) -> LoadResult:
        """Load ``path``, replacing the current dataset.

        Raises:
            LoadInProgressError: another load is pending
            EmptyInputError: the file has no data rows
            MissingColumnsError: required columns could not be resolved
            UnreadableInputError: the file could not be decoded
        """
        if not self._lock.acquire(blocking=False):
            raise LoadInProgressError(f"a load is already in progress, rejected: {path.name}")
        try:
            return self._load(path)
        finally:
            self._lock.release()

    def _load(self, path: Path) -> LoadResult:
        start = time.perf_counter()
        self._cache.clear()
        try:
            table = self.reader(path, keep_na_strings=self.config.keep_na_strings)
        except LoadError as e:
            self._set_failed(Dataset(source=path.name), path, e)
            raise
        except Exception as e:
            err = UnreadableInputError(f"cannot read file {path.name}: {e}")
            self._set_failed(Dataset(source=path.name), path, err)
            raise err from e

        mapping = resolve_columns(collect_columns(table.records), self._fields)
        raw = tuple(table.records)
        try:
            mapping.require()
        except MissingColumnsError as err:
            kept = Dataset(source=table.source, columns=tuple(table.columns), raw_records=raw, mapping=mapping)
            self._set_failed(kept, path, err)
            raise

        tasks = tuple(normalize_rows(table.records, mapping, self.config.placeholders, progress=self.progress))
        self._dataset = Dataset(
            source=table.source,
            columns=tuple(table.columns),
            raw_records=raw,
            mapping=mapping,
            tasks=tasks,
        )
        self.last_error = None

        elapsed = time.perf_counter() - start
        line = render_summary_line(len(raw), status_overview(tasks), len(available_weeks(tasks)), elapsed)
        logger.info("loaded %s: %d tasks", table.source, len(tasks))
        # log_summary adds the "SUMMARY " label itself
        log_summary(line[len("SUMMARY "):])
        return LoadResult(dataset=self._dataset, elapsed_seconds=elapsed, summary_line=line)

    def _set_failed(self, dataset: Dataset, path: Path, error: LoadError) -> None:
        self._dataset = dataset
        self.last_error = error
        logger.error("load %s: %s", path.name, error)
        self._record(path.name, error.error_type, str(error))

    def _record(self, file: str, error_type: str, message: str) -> None:
        # created on the first failure; a clean run leaves no error log
        if self.error_log is None:
            self.error_log = ErrorLogBuffer(Path(self.config.error_log_dir))
        self.error_log.append(ErrorRecord.create(file=file, error_type=error_type, message=message))

    # Views

    def _cached(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = compute()
        return self._cache[key]

    # List views are cached as tuples; callers get a fresh list each time.

    def weeks(self) -> list[str]:
        return list(self._cached(("weeks",), lambda: tuple(available_weeks(self.tasks))))

    def project_rows(self, flt: ProjectFilter | None = None) -> list[ProjectRow]:
        flt = flt or ProjectFilter()
        return list(self._cached(("project", flt), lambda: tuple(build_project_rows(self.tasks, flt))))

    def workload_rows(self, selection: WeekSelection | None = None) -> list[WorkloadRow]:
        selection = selection or WeekSelection()
        return list(
            self._cached(("workload", selection), lambda: tuple(build_workload_rows(self.tasks, selection)))
        )

    def compare(self, week_a: str | None, week_b: str | None) -> CompareView:
        return self._cached(("compare", week_a, week_b), lambda: build_compare_view(self.tasks, week_a, week_b))

    def follow_up(self, today: date) -> FollowUpReport:
        return self._cached(("follow_up", today), lambda: build_follow_up(self.tasks, today))

    # Export

    def export(self, text: str, destination: Path | TextIO) -> None:
        """Deliver serialized report text; failures change no session state."""
        try:
            deliver(text, destination)
        except ExportDeliveryError as e:
            logger.error("export: %s", e)
            self._record(str(getattr(destination, "name", destination)), EXPORT_DELIVERY_FAILURE, str(e))
            raise
