from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Canonical record models for the bulk lead importer.

A CanonicalRecord is the normalized form of one spreadsheet row after column
sniffing and phone normalization. An ImportBatch is the deduplicated sequence of
records shown to the user for confirmation before anything is written.
"""

__all__ = [
    "CanonicalRecord",
    "ImportBatch",
    "ImportMethod",
    "DEFAULT_FIRST_NAME",
    "DEFAULT_LAST_NAME",
    "DEFAULT_DRIVER_TYPE",
]

DEFAULT_FIRST_NAME = "Unknown"
DEFAULT_LAST_NAME = "Driver"
DEFAULT_DRIVER_TYPE = "unidentified"


class ImportMethod(Enum):
    """How the spreadsheet reached the pipeline (drives the source tag)."""
    FILE = "file"
    GSHEET = "gsheet"


@dataclass(frozen=True)
class CanonicalRecord:
    """Normalized output of parsing one spreadsheet row.

    `email` is never empty: rows without an address carry a generated
    placeholder and `is_email_placeholder=True`. `normalized_phone` is the
    digits-only form used for identity matching; `phone` is for display.
    `defaulted_fields` names the canonical fields that were filled by a
    fallback value rather than read from the row.
    """
    first_name: str
    last_name: str
    email: str
    phone: str
    normalized_phone: str
    driver_type: str = DEFAULT_DRIVER_TYPE
    experience: str = ""
    city: str = ""
    state: str = ""
    is_email_placeholder: bool = False
    row_index: int = 0  # 0-based data row index in the source sheet
    defaulted_fields: frozenset[str] = field(default_factory=frozenset)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def real_email(self) -> str:
        """Email usable for identity matching ("" for placeholders)."""
        return "" if self.is_email_placeholder else self.email


@dataclass(frozen=True)
class ImportBatch:
    """Deduplicated records ready for preview / confirmation."""
    records: list[CanonicalRecord]
    parsed_rows: int  # records produced by the parser before dedup
    source_rows: int = 0  # data rows read from the sheet (before the validity gate)

    @property
    def duplicates_dropped(self) -> int:
        return self.parsed_rows - len(self.records)

    @property
    def invalid_rows_dropped(self) -> int:
        return max(self.source_rows - self.parsed_rows, 0)

    def __len__(self) -> int:
        return len(self.records)
