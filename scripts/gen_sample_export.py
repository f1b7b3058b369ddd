#!/usr/bin/env python3
"""Synthetic work-item export generator.

Writes an export in the shape the report tool expects (first row = headers,
one row per task and week) with deliberately messy values: mixed status
spellings, lower-case week labels, link-style keys, blank cells and the odd
non-numeric story point. Useful for manual runs and rough timing of large
files.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

HEADERS = [
    "Key", "Issue Type", "Assignee", "Story Points", "Summary",
    "Labels", "Epic Link", "Module Name", "Status",
]

MODULES = ["Billing", "Checkout", "Search", "Accounts", "Reporting"]
ASSIGNEES = ["An", "Binh", "Chi", "Dung", "Giang", "Hoa", ""]
ISSUE_TYPES = ["Story", "Bug", "Task", "Sub-task"]
STATUSES = ["Open", "To Do", "In Progress", "doing", "Done", "Closed", "Blocked"]
POINTS: list[object] = [1, 2, 3, 5, 8, 2.5, "", "?"]


def _key_cell(project: str, n: int, style: int) -> str:
    key = f"{project}-{n}"
    if style == 0:
        return key
    if style == 1:
        return f"[{key}](https://tracker.example.com/browse/{key})"
    if style == 2:
        return f"https://tracker.example.com/browse/{key}"
    return key.lower()


def generate_export(tasks: int, weeks: int, seed: int = 42) -> pd.DataFrame:
    """One row per (task, week) for a random run of consecutive weeks."""
    rng = np.random.default_rng(seed)
    rows: list[list[object]] = []
    for n in range(1, tasks + 1):
        module = str(rng.choice(MODULES))
        project = module[:4].upper()
        assignee = str(rng.choice(ASSIGNEES))
        issue_type = str(rng.choice(ISSUE_TYPES))
        points = POINTS[int(rng.integers(len(POINTS)))]
        style = int(rng.integers(4))
        first = int(rng.integers(1, weeks + 1))
        span = int(rng.integers(1, 4))
        for week in range(first, min(first + span, weeks + 1)):
            label = f"W{week:02d}" if rng.random() < 0.8 else f"w{week}"
            if rng.random() < 0.1:
                label = f"{label}, backend"
            rows.append([
                _key_cell(project, n, style),
                issue_type,
                assignee,
                points,
                f"Task {n} for {module}",
                label,
                f"{project}-EPIC-{n % 7}",
                module,
                str(rng.choice(STATUSES)),
            ])
    return pd.DataFrame(rows, columns=HEADERS)


def write_export(df: pd.DataFrame, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".csv":
        df.to_csv(output, index=False)
    else:
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Export", index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic work-item export (.xlsx or .csv)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sample.xlsx
  %(prog)s big.csv --tasks 20000 --weeks 30 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output file (.xlsx or .csv)")
    parser.add_argument("--tasks", type=int, default=200, help="Number of distinct tasks (default: 200)")
    parser.add_argument("--weeks", type=int, default=8, help="Number of weeks W01..Wnn (default: 8)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.tasks <= 0:
        print("Error: --tasks must be positive", file=sys.stderr)
        return 1
    if not 1 <= args.weeks <= 53:
        print("Error: --weeks must be between 1 and 53", file=sys.stderr)
        return 1

    df = generate_export(args.tasks, args.weeks, args.seed)
    try:
        write_export(df, args.output)
    except OSError as e:
        print(f"Error writing {args.output}: {e}", file=sys.stderr)
        return 1
    print(f"Created export: {args.output}")
    print(f"  Tasks: {args.tasks:,}  Rows: {len(df):,}  Weeks: W01..W{args.weeks:02d}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
