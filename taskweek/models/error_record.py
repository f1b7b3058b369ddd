from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record is written per surfaced failure (empty input, missing required
columns, unreadable input, export delivery failure). The key set is fixed:
timestamp, file, error_type, message.
"""

__all__ = [
    "ErrorRecord",
    "EMPTY_INPUT",
    "MISSING_REQUIRED_COLUMNS",
    "UNREADABLE_INPUT",
    "EXPORT_DELIVERY_FAILURE",
]

EMPTY_INPUT = "EMPTY_INPUT"
MISSING_REQUIRED_COLUMNS = "MISSING_REQUIRED_COLUMNS"
UNREADABLE_INPUT = "UNREADABLE_INPUT"
EXPORT_DELIVERY_FAILURE = "EXPORT_DELIVERY_FAILURE"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: source file (or export destination) involved
        error_type: classification in UPPER_SNAKE_CASE
        message: user-facing description
    """
    timestamp: str
    file: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(timestamp=ts, file=file, error_type=error_type, message=message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
