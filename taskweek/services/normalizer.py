from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..excel.reader import RawRecord
from ..models.task import PLACEHOLDER, Status, Task, canonical_week
from .columns import ColumnMapping
from .progress import ProgressTracker

"""Row normalization: one raw record -> one Task.

Nothing here raises on cell content. Malformed values degrade to the
``other`` status, the ``-`` / ``Unknown`` placeholders and the story point 0
("unscored") so one bad cell never blocks the rest of the dataset.
"""

__all__ = [
    "TaskKey",
    "parse_task_key_cell",
    "normalize_status",
    "parse_week_labels",
    "story_point_value",
    "normalize_row",
    "normalize_rows",
]

_MARKDOWN_LINK_RE = re.compile(r"^\[([^\]]+)\]\((https?://[^\s)]+)\)$", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s|,;]+", re.IGNORECASE)
_KEY_RE = re.compile(r"[A-Z][A-Z0-9]+-\d+", re.IGNORECASE)
_LABEL_STRIP_RE = re.compile(r"[\[\]\"']")
_LABEL_SPLIT_RE = re.compile(r"[;,|\s]+")

_STATUS_SYNONYMS = {
    "open": Status.OPEN,
    "todo": Status.OPEN,
    "to-do": Status.OPEN,
    "new": Status.OPEN,
    "backlog": Status.OPEN,
    "inprogress": Status.INPROGRESS,
    "in-progress": Status.INPROGRESS,
    "doing": Status.INPROGRESS,
    "progress": Status.INPROGRESS,
    "done": Status.DONE,
    "closed": Status.DONE,
}


@dataclass(frozen=True)
class TaskKey:
    task_id: str
    task_url: str = ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_task_key_cell(value: Any) -> TaskKey:
    """Extract the task id and its URL from a composite key cell.

    Tried in order: markdown link ``[KEY](url)``; text with a URL (key from
    the text, else from the URL, else the raw text); text with a bare key;
    the raw text itself (``-`` when blank).
    """
    raw = _text(value)
    m = _MARKDOWN_LINK_RE.match(raw)
    if m:
        return TaskKey(m.group(1), m.group(2))

    url_match = _URL_RE.search(raw)
    key_match = _KEY_RE.search(raw)
    if url_match:
        url = url_match.group(0)
        if key_match:
            task_id = key_match.group(0)
        else:
            from_url = _KEY_RE.search(url)
            task_id = from_url.group(0) if from_url else raw
        return TaskKey(task_id.upper(), url)

    if key_match:
        return TaskKey(key_match.group(0).upper())
    return TaskKey(raw or PLACEHOLDER)


def normalize_status(value: Any) -> Status:
    key = re.sub(r"\s+", "", _text(value).lower())
    return _STATUS_SYNONYMS.get(key, Status.OTHER)


def parse_week_labels(value: Any) -> frozenset[str]:
    """Week codes found in a labels cell, canonicalized (``w1`` -> ``W01``).

    Tokens that are not ``W`` + 1-2 digits are dropped.
    """
    raw = _LABEL_STRIP_RE.sub(" ", _text(value))
    weeks = set()
    for token in _LABEL_SPLIT_RE.split(raw):
        code = canonical_week(token.upper()) if token else None
        if code is not None:
            weeks.add(code)
    return frozenset(weeks)


def story_point_value(value: Any) -> int:
    """Difficulty score: 0 when not a finite number, else round half up and clamp to 1..5.

    A blank cell is 0 ("unscored"), not the minimum score 1, so tasks nobody
    estimated stay apart from tasks estimated as trivial. Any number, even 0
    or a negative one, clamps to 1.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        n = float(value)
    else:
        text = _text(value)
        if not text:
            return 0
        try:
            n = float(text)
        except ValueError:
            return 0
    if not math.isfinite(n):
        return 0
    return max(1, min(5, math.floor(n + 0.5)))


def _text_or(value: Any, default: str) -> str:
    return _text(value) or default


def normalize_row(
    record: RawRecord, mapping: ColumnMapping, placeholders: Mapping[str, str] | None = None
) -> Task:
    """Convert one raw record into a Task.

    ``mapping`` must be complete (see ColumnMapping.require); a record that
    lacks a mapped header reads as blank there.
    """
    ph = placeholders or {}

    def cell(key: str) -> Any:
        return record.get(mapping[key], "")

    key = parse_task_key_cell(cell("task_id"))
    return Task(
        task_id=key.task_id,
        task_url=key.task_url,
        issue_type=_text_or(cell("issue_type"), ph.get("issue_type", PLACEHOLDER)),
        assignee=_text_or(cell("assignee"), ph.get("assignee", "Unknown")),
        story_point=story_point_value(cell("story_point")),
        name=_text_or(cell("name"), ph.get("name", PLACEHOLDER)),
        weeks=parse_week_labels(cell("labels")),
        epic_link=_text_or(cell("epic_link"), ph.get("epic_link", PLACEHOLDER)),
        module=_text_or(cell("module"), ph.get("module", "Unknown")),
        status=normalize_status(cell("status")),
    )


def normalize_rows(
    records: list[RawRecord],
    mapping: ColumnMapping,
    placeholders: Mapping[str, str] | None = None,
    *,
    progress: bool = True,
) -> list[Task]:
    mapping.require()
    tasks: list[Task] = []
    unscored = 0
    with ProgressTracker(len(records), description="Normalizing rows", enabled=progress) as tracker:
        for record in records:
            task = normalize_row(record, mapping, placeholders)
            tasks.append(task)
            if task.story_point == 0:
                unscored += 1
            tracker.advance()
        tracker.set_postfix(unscored=unscored)
    return tasks
