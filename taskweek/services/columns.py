from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..excel.reader import LoadError, RawRecord

"""Column resolution: loosely-named source headers -> fixed logical fields.

The alias table is explicit and ordered. Resolution is a pure function of
the materialized header list; it never inspects record shapes.
"""

__all__ = [
    "ColumnField",
    "ColumnMapping",
    "COLUMN_FIELDS",
    "MissingColumnsError",
    "normalize_header",
    "collect_columns",
    "resolve_columns",
    "with_extra_aliases",
]

_SEPARATORS_RE = re.compile(r"[_\s-]+")


class MissingColumnsError(LoadError):
    """One or more required logical fields could not be matched to a header."""
    error_type = "MISSING_REQUIRED_COLUMNS"

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"missing required columns: {', '.join(self.missing)}")


@dataclass(frozen=True)
class ColumnField:
    key: str
    display_name: str
    aliases: tuple[str, ...]


COLUMN_FIELDS: tuple[ColumnField, ...] = (
    ColumnField("task_id", "Key", ("key", "taskid", "task id", "id", "ticketid", "jiraid")),
    ColumnField("issue_type", "Issue Type", ("issuetype", "issue type", "type")),
    ColumnField("assignee", "Assignee", ("assignee",)),
    ColumnField("story_point", "Story Points", ("storypoints", "story points", "storypoint", "story point")),
    ColumnField("name", "Summary", ("summary", "name", "taskname", "task name")),
    ColumnField("labels", "Labels", ("labels", "label")),
    ColumnField("epic_link", "Epic Link", ("epiclink", "epic link", "epic")),
    ColumnField("module", "ModuleName", ("modulename", "module name", "module", "project", "projectname")),
    ColumnField("status", "Status", ("status", "state")),
)


@dataclass(frozen=True)
class ColumnMapping:
    """Result of column resolution.

    ``headers`` maps each resolved field key to its source header;
    ``missing`` lists display names of unresolved fields in table order.
    """
    headers: dict[str, str]
    missing: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.missing

    def require(self) -> ColumnMapping:
        if self.missing:
            raise MissingColumnsError(list(self.missing))
        return self

    def __getitem__(self, key: str) -> str:
        return self.headers[key]


def normalize_header(text: str) -> str:
    return _SEPARATORS_RE.sub("", str(text).lower()).strip()


def collect_columns(records: Iterable[RawRecord]) -> list[str]:
    """Union of headers across records, in first-seen order, blanks dropped."""
    columns: dict[str, None] = {}
    for record in records:
        for header in record:
            if header and header not in columns:
                columns[header] = None
    return list(columns)


def with_extra_aliases(
    extra: Mapping[str, Iterable[str]], fields: tuple[ColumnField, ...] = COLUMN_FIELDS
) -> tuple[ColumnField, ...]:
    """Return ``fields`` with configured aliases appended after the built-ins."""
    if not extra:
        return fields
    return tuple(
        ColumnField(f.key, f.display_name, f.aliases + tuple(extra.get(f.key, ())))
        for f in fields
    )


def resolve_columns(
    columns: list[str], fields: tuple[ColumnField, ...] = COLUMN_FIELDS
) -> ColumnMapping:
    """Match every logical field to the first source header (source order) whose
    normalized text equals one of its normalized aliases."""
    normalized = [(header, normalize_header(header)) for header in columns]
    headers: dict[str, str] = {}
    missing: list[str] = []
    for f in fields:
        accepted = {normalize_header(a) for a in f.aliases}
        match = next((header for header, norm in normalized if norm in accepted), None)
        if match is None:
            missing.append(f.display_name)
        else:
            headers[f.key] = match
    return ColumnMapping(headers=headers, missing=tuple(missing))
