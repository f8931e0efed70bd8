from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from lead_import.models.record import (
    DEFAULT_DRIVER_TYPE,
    DEFAULT_FIRST_NAME,
    DEFAULT_LAST_NAME,
    CanonicalRecord,
)

from .columns import (
    CITY_KEYS,
    DRIVER_TYPE_KEYS,
    EMAIL_KEYS,
    EXPERIENCE_KEYS,
    FIRST_NAME_KEYS,
    FULL_NAME_KEYS,
    LAST_NAME_KEYS,
    PHONE_KEYS,
    STATE_KEYS,
    find_key,
)
from .phone import format_phone_number, normalize_phone
from .reader import SheetData, read_rows

"""Row parser: raw spreadsheet rows -> CanonicalRecord.

Per row:
1. first / last name via the column sniffer
2. if either is blank, split a full-name column ("Last, First" or "First Rest...")
3. remaining blanks default to "Unknown" / "Driver"
4. email, phone, driver type, experience, city, state as trimmed strings
5. display + normalized phone
6. empty or "undefined" driver type -> "unidentified"
7. rows whose original email and phone cells are both blank are dropped
8. rows without an email get a placeholder address
"""

__all__ = [
    "parse_row",
    "parse_rows",
    "parse_sheet",
    "parse_import_data",
    "split_full_name",
    "placeholder_email",
    "PLACEHOLDER_DOMAIN",
]

logger = logging.getLogger(__name__)

PLACEHOLDER_DOMAIN = "placeholder.com"


def _safe_val(row: Mapping[str, Any], key: str | None) -> str:
    if key is None:
        return ""
    val = row.get(key)
    return "" if val is None else str(val).strip()


def placeholder_email(stamp: int, index: int) -> str:
    return f"no_email_{stamp}_{index}@{PLACEHOLDER_DOMAIN}"


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split a full name into (first, last).

    "Smith, John" -> ("John", "Smith"); "John Paul Smith" -> ("John", "Paul Smith");
    a single token has no last name (the parser defaults it to "Driver").
    """
    full_name = full_name.strip()
    if not full_name:
        return "", ""
    if "," in full_name:
        last, _, first = full_name.partition(",")
        return first.strip(), last.strip()
    tokens = full_name.split()
    if len(tokens) == 1:
        return tokens[0], ""
    return tokens[0], " ".join(tokens[1:])


def parse_row(row: Mapping[str, Any], index: int, *, stamp: int) -> CanonicalRecord | None:
    """Parse one raw row. Returns None when the row has no email and no phone.

    Args:
        row: header -> cell mapping (header order = sheet column order)
        index: 0-based data row index (used in placeholder emails)
        stamp: run stamp shared by every placeholder of one parse
    """
    defaulted: set[str] = set()

    first = _safe_val(row, find_key(row, FIRST_NAME_KEYS))
    last = _safe_val(row, find_key(row, LAST_NAME_KEYS))

    if not first or not last:
        full = _safe_val(row, find_key(row, FULL_NAME_KEYS))
        if full:
            # 分割結果で両方を上書き ("Smith," のように名が空なら既存の名を残す)
            split_first, split_last = split_full_name(full)
            first = split_first or first
            last = split_last

    if not first:
        first = DEFAULT_FIRST_NAME
        defaulted.add("first_name")
    if not last:
        last = DEFAULT_LAST_NAME
        defaulted.add("last_name")

    email = _safe_val(row, find_key(row, EMAIL_KEYS))
    raw_phone = _safe_val(row, find_key(row, PHONE_KEYS))

    # validity gate uses the original cells, before any placeholder substitution
    if not email and not raw_phone:
        return None

    driver_type = _safe_val(row, find_key(row, DRIVER_TYPE_KEYS))
    if not driver_type or driver_type.lower() == "undefined":
        driver_type = DEFAULT_DRIVER_TYPE
        defaulted.add("driver_type")

    is_placeholder = False
    if not email:
        email = placeholder_email(stamp, index)
        is_placeholder = True
        defaulted.add("email")

    return CanonicalRecord(
        first_name=first,
        last_name=last,
        email=email,
        phone=format_phone_number(raw_phone) if raw_phone else "",
        normalized_phone=normalize_phone(raw_phone),
        driver_type=driver_type,
        experience=_safe_val(row, find_key(row, EXPERIENCE_KEYS)),
        city=_safe_val(row, find_key(row, CITY_KEYS)),
        state=_safe_val(row, find_key(row, STATE_KEYS)),
        is_email_placeholder=is_placeholder,
        row_index=index,
        defaulted_fields=frozenset(defaulted),
    )


def parse_rows(rows: Sequence[Mapping[str, Any]], *, stamp: int | None = None) -> list[CanonicalRecord]:
    """Parse rows in order, dropping rows that fail the validity gate."""
    if stamp is None:
        stamp = int(time.time() * 1000)
    records: list[CanonicalRecord] = []
    for index, row in enumerate(rows):
        rec = parse_row(row, index, stamp=stamp)
        if rec is None:
            logger.debug("row=%d dropped: no email and no phone", index + 1)
            continue
        records.append(rec)
    return records


def parse_sheet(sheet: SheetData, *, stamp: int | None = None) -> list[CanonicalRecord]:
    return parse_rows(sheet.rows, stamp=stamp)


def parse_import_data(buffer: bytes, *, stamp: int | None = None) -> list[CanonicalRecord]:
    """Read a spreadsheet buffer and parse it into canonical records."""
    return parse_sheet(read_rows(buffer), stamp=stamp)
