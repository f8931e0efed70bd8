from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

"""Column sniffing: map loosely-labeled spreadsheet headers to canonical fields.

Matching is case-insensitive substring containment, not fuzzy matching. The
first header (in the row's own key order) that contains any keyword wins, so
when several headers match the same keyword set the result depends on header
order.
"""

__all__ = [
    "find_key",
    "sniff_columns",
    "ColumnMap",
    "FIRST_NAME_KEYS",
    "LAST_NAME_KEYS",
    "FULL_NAME_KEYS",
    "EMAIL_KEYS",
    "PHONE_KEYS",
    "DRIVER_TYPE_KEYS",
    "EXPERIENCE_KEYS",
    "CITY_KEYS",
    "STATE_KEYS",
]

FIRST_NAME_KEYS = ("firstname", "first name", "fname", "first", "given")
LAST_NAME_KEYS = ("lastname", "last name", "lname", "last", "surname")
FULL_NAME_KEYS = ("fullname", "full name", "name", "driver name", "driver")
EMAIL_KEYS = ("email", "e-mail", "mail")
PHONE_KEYS = ("phone", "mobile", "cell", "contact")
DRIVER_TYPE_KEYS = ("type", "role", "position", "driver type")
EXPERIENCE_KEYS = ("experience", "exp", "years")
CITY_KEYS = ("city", "location")
STATE_KEYS = ("state", "province")


def find_key(row: Mapping[str, Any] | Iterable[str], keywords: Iterable[str]) -> str | None:
    """Return the first header containing any of `keywords` (case-insensitive).

    `row` may be a row mapping (header -> cell) or a plain sequence of headers.
    """
    keywords = tuple(keywords)
    for key in row:
        lowered = str(key).lower()
        if any(k in lowered for k in keywords):
            return key
    return None


@dataclass(frozen=True)
class ColumnMap:
    """Header resolved for each canonical field (None = not present)."""
    first_name: str | None
    last_name: str | None
    full_name: str | None
    email: str | None
    phone: str | None
    driver_type: str | None
    experience: str | None
    city: str | None
    state: str | None

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


def sniff_columns(headers: Mapping[str, Any] | Iterable[str]) -> ColumnMap:
    """Resolve every canonical field against one header row."""
    headers = list(headers)
    return ColumnMap(
        first_name=find_key(headers, FIRST_NAME_KEYS),
        last_name=find_key(headers, LAST_NAME_KEYS),
        full_name=find_key(headers, FULL_NAME_KEYS),
        email=find_key(headers, EMAIL_KEYS),
        phone=find_key(headers, PHONE_KEYS),
        driver_type=find_key(headers, DRIVER_TYPE_KEYS),
        experience=find_key(headers, EXPERIENCE_KEYS),
        city=find_key(headers, CITY_KEYS),
        state=find_key(headers, STATE_KEYS),
    )
