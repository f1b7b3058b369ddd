from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import pandas as pd
import pandas._libs.parsers as parsers

"""Tabular export reader.

Decodes a single-sheet spreadsheet (.xlsx/.xlsm/.xls, first sheet only) or a
comma-separated file into raw records:

- first row is the header row; header text is trimmed, blank headers are
  dropped, duplicate headers get a ``_1``, ``_2`` ... suffix
- text cells are trimmed, integral floats become int, empty cells become ""
- fully blank rows are skipped
"""

__all__ = [
    "LoadError",
    "EmptyInputError",
    "UnreadableInputError",
    "RawRecord",
    "TableData",
    "read_table_file",
    "normalize_table",
    "SPREADSHEET_SUFFIXES",
]

Scalar = Union[str, int, float]
RawRecord = dict[str, Scalar]

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv"}


class LoadError(Exception):
    """Base class for failures surfaced while loading an export."""
    error_type = "LOAD_ERROR"


class EmptyInputError(LoadError):
    """The decoded file yields zero data rows."""
    error_type = "EMPTY_INPUT"


class UnreadableInputError(LoadError):
    """The file could not be decoded at all."""
    error_type = "UNREADABLE_INPUT"


@dataclass
class TableData:
    source: str
    columns: list[str]  # header union, first-seen order
    records: list[RawRecord]


def _na_options(keep_na_strings: list[str] | None) -> dict[str, Any]:
    # pandas._libs.parsers.STR_NA_VALUES holds pandas' default NA strings
    if not keep_na_strings:
        return {"keep_default_na": True, "na_values": None}
    custom_na = parsers.STR_NA_VALUES - set(keep_na_strings)
    return {"keep_default_na": False, "na_values": list(custom_na)}


def read_table_file(path: Path, keep_na_strings: list[str] | None = None) -> TableData:
    """Read ``path`` and return its normalized raw records.

    Parameters
    ----------
    path: export file (.xlsx/.xlsm/.xls/.csv)
    keep_na_strings: strings excluded from pandas' default NaN conversion
        (e.g. ['NA'] for an assignee literally called "NA")

    Raises
    ------
    EmptyInputError: no data rows
    UnreadableInputError: any decode failure
    """
    suffix = path.suffix.lower()
    na = _na_options(keep_na_strings)
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(path, header=None, dtype=object, skip_blank_lines=True, **na)
        elif suffix in SPREADSHEET_SUFFIXES:
            with pd.ExcelFile(path) as xls:
                # multi-sheet merging is out of scope: first sheet only
                df = xls.parse(xls.sheet_names[0], header=None, **na)
        else:
            raise UnreadableInputError(f"unsupported file type: {path.name}")
    except pd.errors.EmptyDataError as e:
        raise EmptyInputError(f"file has no data: {path.name}") from e
    except LoadError:
        raise
    except Exception as e:
        raise UnreadableInputError(f"cannot read file {path.name}: {e}") from e
    return normalize_table(df, path.name)


def _cell_value(val: Any) -> Scalar:
    if val is None:
        return ""
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, numbers.Real):
        f = float(val)
        if math.isnan(f):
            return ""
        if math.isfinite(f) and f.is_integer():
            return int(f)
        return f
    try:
        if pd.isna(val):
            return ""
    except (TypeError, ValueError):
        pass
    return str(val).strip()


def _header_names(cells: list[Any]) -> list[str | None]:
    """Trimmed header names; None for blank headers, suffixes for duplicates."""
    seen: dict[str, int] = {}
    names: list[str | None] = []
    for cell in cells:
        text = str(_cell_value(cell)).strip()
        if not text:
            names.append(None)
            continue
        count = seen.get(text, 0)
        seen[text] = count + 1
        names.append(text if count == 0 else f"{text}_{count}")
    return names


def normalize_table(df: pd.DataFrame, source: str) -> TableData:
    """Apply the first row as header and convert the remaining rows to records."""
    if df.shape[0] < 2:
        raise EmptyInputError(f"file has no data rows: {source}")
    headers = _header_names(df.iloc[0].tolist())
    columns = [h for h in headers if h is not None]

    records: list[RawRecord] = []
    for _, raw in df.iloc[1:].iterrows():
        record: RawRecord = {}
        for col, val in zip(headers, raw.tolist(), strict=False):
            if col is None:
                continue
            record[col] = _cell_value(val)
        if all(v == "" for v in record.values()):
            continue
        # short rows still expose every column
        for col in columns:
            record.setdefault(col, "")
        records.append(record)

    if not records:
        raise EmptyInputError(f"file has no data rows: {source}")
    return TableData(source=source, columns=columns, records=records)
