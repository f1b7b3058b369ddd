from __future__ import annotations

import argparse
import os
import sys
from datetime import date
from pathlib import Path
from typing import TextIO

from dotenv import load_dotenv

from taskweek.config.loader import ConfigError, resolve_config
from taskweek.excel.reader import LoadError
from taskweek.logging.init import setup_logging
from taskweek.models.task import Status, canonical_week
from taskweek.models.views import ProjectFilter, WeekSelection
from taskweek.services.aggregation import (
    assignee_options,
    default_compare_weeks,
    difficulty_totals,
    module_options,
    project_status_counts,
    status_overview,
    top_assignees,
)
from taskweek.services.anomaly import week_range
from taskweek.services.columns import MissingColumnsError
from taskweek.services.export import (
    ExportDeliveryError,
    Table,
    bucket_report,
    compare_report,
    follow_up_report,
    project_report,
    stalled_report,
    to_csv,
    workload_report,
)
from taskweek.services.session import TaskSession

"""CLI entrypoint.

Flow:
- load .env (TASKWEEK_CONFIG may point at a config file)
- resolve config
- load the export into a TaskSession
- render the requested report as CSV to stdout or --output

Exit codes: 0 success, 1 config/load failure, 2 report could not be delivered.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_DELIVERY_FAILURE = 2


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv; a broken file only warns."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except (OSError, ValueError) as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}", file=sys.stderr)


def _week_arg(value: str) -> str:
    code = canonical_week(value)
    if code is None:
        raise argparse.ArgumentTypeError(f"not a week code (W + 1-2 digits): {value!r}")
    return code


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {value!r}") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="taskweek", description="Weekly task reports from a work-item export")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, help="YAML config file (default: $TASKWEEK_CONFIG or config/taskweek.yml)")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", type=Path, help="Export file (.xlsx/.xls/.csv)")
    common.add_argument("-o", "--output", type=Path, help="Write the CSV here instead of stdout")

    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("inspect", parents=[common], help="Print headers and first raw rows")
    s.add_argument("--rows", type=int, default=3, help="Number of raw rows to print")

    sub.add_parser("summary", parents=[common], help="Status overview of the export")

    s = sub.add_parser("project", parents=[common], help="Tasks grouped by module and assignee")
    s.add_argument("--week", type=_week_arg, action="append", default=[], help="Week code (repeatable)")
    s.add_argument("--module", help="Only this module")
    s.add_argument("--assignee", help="Only this assignee")
    s.add_argument("--no-labels", action="store_true", help="Omit the Labels column")
    s.add_argument("--no-stale-flag", action="store_true", help="Omit the staleness column")

    s = sub.add_parser("workload", parents=[common], help="Tasks per assignee by story point")
    s.add_argument("--week", type=_week_arg, action="append", default=[], help="Week code (repeatable)")

    s = sub.add_parser("compare", parents=[common], help="Status transitions between two weeks")
    s.add_argument("--week-a", type=_week_arg, help="Earlier week (default: second most recent)")
    s.add_argument("--week-b", type=_week_arg, help="Later week (default: most recent)")

    s = sub.add_parser("followup", parents=[common], help="Current-week follow-up list")
    s.add_argument("--today", type=_date_arg, help="Pin the calendar date (YYYY-MM-DD)")
    s.add_argument(
        "--section",
        choices=("rows", "stalled", "workload"),
        default="rows",
        help="Which follow-up table to print",
    )
    return p.parse_args(argv)


def _inspect_table(session: TaskSession, rows: int, logger) -> Table:
    mapping = session.dataset.mapping
    if mapping is not None:
        for key, header in mapping.headers.items():
            logger.info(f"column {key} <- {header!r}")
        if not mapping.complete:
            logger.warning(f"unresolved columns: {', '.join(mapping.missing)}")
    columns = list(session.dataset.columns)
    sample = session.raw_records[: max(rows, 0)]
    return columns, [[r.get(c, "") for c in columns] for r in sample]


def _summary_table(session: TaskSession) -> Table:
    ov = status_overview(session.tasks)
    week_a, week_b = default_compare_weeks(session.tasks)
    data: list[list] = [
        ["rows", len(session.raw_records)],
        ["tasks", ov.total],
        ["tasks_with_week", ov.with_week],
    ]
    data.extend([s.value, ov.count(s)] for s in Status)
    data.append(["weeks", ",".join(session.weeks())])
    data.append(["modules", ",".join(module_options(session.tasks))])
    data.append(["assignees", ",".join(assignee_options(session.tasks))])
    data.append(["default_compare", f"{week_a or '-'} -> {week_b or '-'}"])
    totals = difficulty_totals(session.workload_rows())
    data.extend([f"C{sp}", n] for sp, n in enumerate(totals, start=1))
    top = top_assignees(session.project_rows())
    data.append(["top_assignees", ";".join(f"{name}:{n}" for name, n in top)])
    return ["Metric", "Value"], data


def _render(args: argparse.Namespace, session: TaskSession, logger) -> Table:
    cfg = session.config
    if args.command == "inspect":
        return _inspect_table(session, args.rows, logger)
    if args.command == "summary":
        return _summary_table(session)
    if args.command == "project":
        selection = WeekSelection.of(*args.week)
        if args.module is not None and args.module not in module_options(session.tasks, selection):
            logger.warning(f"no tasks for module {args.module!r} in the selected weeks")
        elif args.assignee is not None and args.assignee not in assignee_options(
            session.tasks, selection, args.module
        ):
            logger.warning(f"no tasks for assignee {args.assignee!r} in the selected weeks")
        rows = session.project_rows(ProjectFilter(selection, module=args.module, assignee=args.assignee))
        counts = project_status_counts(rows)
        logger.info(f"project rows={len(rows)} " + " ".join(f"{s.value}={counts[s]}" for s in Status))
        stale = sum(1 for r in rows if r.stale)
        if stale:
            logger.warning(f"{stale} task(s) were done the week before but still appear")
        return project_report(
            rows,
            include_labels=cfg.export.include_labels and not args.no_labels,
            include_stale_flag=cfg.export.include_stale_flag and not args.no_stale_flag,
        )
    if args.command == "workload":
        return workload_report(session.workload_rows(WeekSelection.of(*args.week)))
    if args.command == "compare":
        week_a, week_b = args.week_a, args.week_b
        if week_a is None and week_b is None:
            week_a, week_b = default_compare_weeks(session.tasks)
        view = session.compare(week_a, week_b)
        logger.info(
            f"compare {view.week_a or '-'} -> {view.week_b or '-'}: total={view.summary.total} "
            f"changed={view.summary.changed} done_both={view.summary.invalid_done_both}"
        )
        return compare_report(view)
    # followup
    report = session.follow_up(args.today or date.today())
    monday, friday = week_range(report.today)
    logger.info(
        f"follow-up {report.current_week} ({monday:%Y-%m-%d}..{friday:%Y-%m-%d}): "
        f"rows={len(report.rows)} stalled={len(report.stalled)}"
    )
    if args.section == "stalled":
        return stalled_report(report)
    if args.section == "workload":
        return bucket_report(report)
    return follow_up_report(report)


def _flush_errors(session: TaskSession, logger) -> None:
    try:
        path = session.error_log.flush() if session.error_log is not None else None
    except OSError as e:
        logger.warning(f"error log not written: {e}")
        return
    if path is not None:
        logger.debug(f"error log: {path}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up the test runner's argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    try:
        cfg = resolve_config(args.config, os.getenv("TASKWEEK_CONFIG"))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    session = TaskSession(config=cfg)
    try:
        session.load(args.file)
    except MissingColumnsError:
        # raw rows stay inspectable
        if args.command != "inspect":
            _flush_errors(session, logger)
            return EXIT_FATAL
    except LoadError:
        _flush_errors(session, logger)
        return EXIT_FATAL

    headers, rows = _render(args, session, logger)
    destination: Path | TextIO = args.output if args.output is not None else sys.stdout
    try:
        session.export(to_csv(headers, rows), destination)
    except ExportDeliveryError:
        _flush_errors(session, logger)
        return EXIT_DELIVERY_FAILURE

    if args.output is not None:
        logger.info(f"report written: {args.output}")
    _flush_errors(session, logger)
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
