from __future__ import annotations

import io
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from lead_import.models.record import ImportMethod

"""Spreadsheet ingestion.

- Only the first sheet is read; its first row is the header row.
- Cells are read as text so that values like "NA" or leading zeros survive.
  Blank cells become "" and fully blank rows are skipped.
- Published Google Sheets are fetched through their CSV export endpoint. URL
  and HTTP problems are reported before any parsing starts.
"""

__all__ = [
    "SheetData",
    "SpreadsheetReadError",
    "SpreadsheetEmptyError",
    "SheetUrlError",
    "SheetFetchError",
    "read_rows",
    "read_source",
    "extract_sheet_id",
    "build_export_url",
    "fetch_published_sheet",
]

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"

_SHEET_ID_RE = re.compile(r"/d/([a-zA-Z0-9-_]+)")
_UNNAMED_RE = re.compile(r"^Unnamed: \d+$")

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class SpreadsheetReadError(Exception):
    """Raised when the buffer cannot be read as a spreadsheet."""


class SpreadsheetEmptyError(SpreadsheetReadError):
    """Raised when the first sheet has no data rows."""


class SheetUrlError(Exception):
    """Raised when no spreadsheet identifier can be extracted from a URL."""


class SheetFetchError(Exception):
    """Raised when a published sheet cannot be downloaded."""


@dataclass
class SheetData:
    columns: list[str]
    rows: list[dict[str, str]]  # 正規化済 (列名→文字列)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        # Excel stores phone numbers as floats: 5550100001.0 -> "5550100001"
        if value.is_integer():
            return str(int(value))
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _read_frame(buffer: bytes) -> pd.DataFrame:
    bio = io.BytesIO(buffer)
    if buffer.startswith(_XLSX_MAGIC) or buffer.startswith(_XLS_MAGIC):
        return pd.read_excel(bio, sheet_name=0, header=0, dtype=object, keep_default_na=False)
    try:
        return pd.read_csv(bio, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except UnicodeDecodeError:
        # Excel の CSV 書き出しは cp1252 のことがある
        return pd.read_csv(io.BytesIO(buffer), dtype=str, keep_default_na=False, encoding="latin-1")


def read_rows(buffer: bytes) -> SheetData:
    """Read the first sheet of a CSV / XLSX / XLS buffer into header -> text rows.

    Raises:
        SpreadsheetEmptyError: buffer has no data rows
        SpreadsheetReadError: buffer is not a readable spreadsheet
    """
    if not buffer:
        raise SpreadsheetEmptyError("File appears empty.")
    try:
        df = _read_frame(buffer)
    except pd.errors.EmptyDataError as e:
        raise SpreadsheetEmptyError("File appears empty.") from e
    except Exception as e:
        raise SpreadsheetReadError(f"Error reading file: {e}") from e

    # (canonical header, pandas column label); blank header cells are dropped
    pairs: list[tuple[str, Any]] = []
    for c in df.columns:
        name = str(c).strip()
        if not name or _UNNAMED_RE.match(name):
            continue
        pairs.append((name, c))
    columns = [name for name, _ in pairs]

    rows: list[dict[str, str]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = dict(zip(df.columns, raw, strict=False))
        row = {name: _cell_text(cells[src]) for name, src in pairs}
        if not any(row.values()):
            continue
        rows.append(row)

    if not rows:
        raise SpreadsheetEmptyError("File appears empty.")
    return SheetData(columns=columns, rows=rows)


def extract_sheet_id(url: str) -> str:
    """Extract the spreadsheet identifier from a Google Sheets URL."""
    m = _SHEET_ID_RE.search(url or "")
    if not m:
        raise SheetUrlError("Invalid Google Sheet URL.")
    return m.group(1)


def build_export_url(sheet_id: str) -> str:
    return EXPORT_URL_TEMPLATE.format(sheet_id=sheet_id)


def fetch_published_sheet(
    url: str,
    *,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> bytes:
    """Download a publicly shared sheet as CSV bytes.

    Raises:
        SheetUrlError: URL has no extractable sheet id
        SheetFetchError: transport failure or non-2xx response
    """
    export_url = build_export_url(extract_sheet_id(url))
    http = session or requests
    try:
        response = http.get(export_url, timeout=timeout)
    except requests.RequestException as e:
        raise SheetFetchError(f"Failed to fetch sheet: {e}") from e
    if not response.ok:
        raise SheetFetchError(
            f"Failed to fetch sheet (HTTP {response.status_code}). "
            "Check permissions (Anyone with link)."
        )
    return response.content


def read_source(
    path: Path | None = None,
    url: str | None = None,
    *,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> tuple[bytes, ImportMethod]:
    """Load the raw buffer from exactly one of a file path or a sheet URL."""
    if path is not None and url is not None:
        raise ValueError("exactly one of path or url is required")
    if url is not None:
        return fetch_published_sheet(url, timeout=timeout, session=session), ImportMethod.GSHEET
    if path is None:
        raise ValueError("exactly one of path or url is required")
    try:
        return path.read_bytes(), ImportMethod.FILE
    except OSError as e:
        raise SpreadsheetReadError(f"Error reading file: {e}") from e
