from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from lead_import.models.record import ImportMethod
from lead_import.sheets.reader import (
    SheetFetchError,
    SheetUrlError,
    SpreadsheetEmptyError,
    SpreadsheetReadError,
    build_export_url,
    extract_sheet_id,
    fetch_published_sheet,
    read_rows,
    read_source,
)

SHEET_URL = "https://docs.google.com/spreadsheets/d/1AbC-def_123/edit#gid=0"


def test_read_rows_csv_basic(sample_csv_bytes):
    sheet = read_rows(sample_csv_bytes)
    assert sheet.columns[:4] == ["First Name", "Last Name", "Email", "Phone"]
    assert len(sheet.rows) == 3
    assert sheet.rows[0]["Email"] == "ana@example.com"
    assert sheet.rows[1]["Email"] == ""


def test_read_rows_keeps_na_strings():
    buf = b"Name,Email,Phone\nNA,na@x.com,NULL\n"
    sheet = read_rows(buf)
    assert sheet.rows[0]["Name"] == "NA"
    assert sheet.rows[0]["Phone"] == "NULL"


def test_read_rows_skips_blank_rows_and_unnamed_columns():
    buf = b"Name,Email,\nAnn,a@x.com,\n,,\nBob,b@x.com,\n"
    sheet = read_rows(buf)
    assert sheet.columns == ["Name", "Email"]
    assert [r["Name"] for r in sheet.rows] == ["Ann", "Bob"]


def test_read_rows_strips_header_whitespace_and_bom():
    buf = "\ufeff Email ,Phone\na@x.com,1\n".encode("utf-8")
    sheet = read_rows(buf)
    assert sheet.columns == ["Email", "Phone"]


def test_read_rows_latin1_fallback():
    buf = "Name,Email\nJos\xe9,j@x.com\n".encode("latin-1")
    sheet = read_rows(buf)
    assert sheet.rows[0]["Name"] == "Jos\xe9"


def test_read_rows_xlsx_numeric_phone(tmp_path: Path, make_xlsx):
    path = make_xlsx(
        tmp_path / "leads.xlsx",
        [["Name", "Phone", "Email"], ["Ann Lee", 5550100001, None], ["Bob Ray", 5550100002.0, "b@x.com"]],
    )
    sheet = read_rows(path.read_bytes())
    assert sheet.rows[0]["Phone"] == "5550100001"
    assert sheet.rows[0]["Email"] == ""
    assert sheet.rows[1]["Phone"] == "5550100002"


def test_read_rows_empty_buffer():
    with pytest.raises(SpreadsheetEmptyError, match="File appears empty."):
        read_rows(b"")


def test_read_rows_header_only():
    with pytest.raises(SpreadsheetEmptyError):
        read_rows(b"Name,Email\n")


def test_read_rows_corrupt_xlsx():
    with pytest.raises(SpreadsheetReadError):
        read_rows(b"PK\x03\x04not really a zip")


def test_extract_sheet_id():
    assert extract_sheet_id(SHEET_URL) == "1AbC-def_123"
    with pytest.raises(SheetUrlError, match="Invalid Google Sheet URL."):
        extract_sheet_id("https://example.com/spreadsheet")
    with pytest.raises(SheetUrlError):
        extract_sheet_id("")


def test_build_export_url():
    assert build_export_url("abc") == "https://docs.google.com/spreadsheets/d/abc/export?format=csv"


def test_fetch_published_sheet_ok():
    session = Mock()
    session.get.return_value = Mock(ok=True, status_code=200, content=b"Email\na@x.com\n")
    data = fetch_published_sheet(SHEET_URL, timeout=5, session=session)
    assert data == b"Email\na@x.com\n"
    session.get.assert_called_once_with(
        "https://docs.google.com/spreadsheets/d/1AbC-def_123/export?format=csv", timeout=5
    )


def test_fetch_published_sheet_http_error():
    session = Mock()
    session.get.return_value = Mock(ok=False, status_code=403, content=b"")
    with pytest.raises(SheetFetchError) as ei:
        fetch_published_sheet(SHEET_URL, session=session)
    assert "HTTP 403" in str(ei.value)
    assert "Anyone with link" in str(ei.value)


def test_fetch_published_sheet_transport_error():
    session = Mock()
    session.get.side_effect = requests.ConnectionError("boom")
    with pytest.raises(SheetFetchError):
        fetch_published_sheet(SHEET_URL, session=session)


def test_fetch_published_sheet_bad_url_makes_no_request():
    session = Mock()
    with pytest.raises(SheetUrlError):
        fetch_published_sheet("https://docs.google.com/spreadsheets/", session=session)
    session.get.assert_not_called()


def test_read_source_file(tmp_path: Path, sample_csv_bytes):
    f = tmp_path / "leads.csv"
    f.write_bytes(sample_csv_bytes)
    assert read_source(path=f) == (sample_csv_bytes, ImportMethod.FILE)


def test_read_source_url():
    session = Mock()
    session.get.return_value = Mock(ok=True, status_code=200, content=b"Email\na@x.com\n")
    buf, method = read_source(url=SHEET_URL, session=session)
    assert method is ImportMethod.GSHEET
    assert buf.startswith(b"Email")


def test_read_source_requires_exactly_one(tmp_path: Path):
    with pytest.raises(ValueError):
        read_source()
    with pytest.raises(ValueError):
        read_source(path=tmp_path / "x.csv", url=SHEET_URL)


def test_read_source_missing_file(tmp_path: Path):
    with pytest.raises(SpreadsheetReadError):
        read_source(path=tmp_path / "missing.csv")
