from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from lead_import.models.error_record import ErrorRecord

"""Error log generation & buffering module.

- JSON Lines with a fixed key set (see ErrorRecord)
- one `logs/errors-YYYYMMDD-HHMMSS.log` (UTC) per run, created only when needed
- records are buffered and written on flush()
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - ファイルパスは初回 flush で決定
    - スレッド安全性不要 (パイプラインは逐次実行)
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
