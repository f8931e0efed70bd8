from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Structured error entries written as JSON Lines by the error log buffer. `record`
is the 1-based position of the record in the confirmed batch, or -1 for
run-level errors (unreadable file, bad URL, config) where no record applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: file name or sheet URL being imported
        record: Record position (1-based). -1 when unknown / run-level
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable error message
    """
    timestamp: str  # ISO8601 UTC
    source: str
    record: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(source: str, record: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            record=record,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
