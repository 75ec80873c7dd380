from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Structured error record for the JSON Lines error log written by
table_admin.logging.error_log. ``row`` is 1-based within the submitted batch;
-1 marks batch-level failures (API errors, missing primary key) where no
single row is responsible. ``column`` is empty for such records.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        table: Remote table name the batch was submitted to
        row: Row number (1-based). Use -1 for batch-level errors
        column: Column name, empty string for batch-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable message (validation reason or API detail)
    """
    timestamp: str  # ISO8601 UTC
    table: str
    row: int  # 行番号。不明な場合 -1 許容
    column: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(table: str, row: int, column: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            table=table,
            row=row,
            column=column,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
