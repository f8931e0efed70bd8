from __future__ import annotations

import re
from typing import Any

"""Phone normalization helpers.

normalize_phone() produces the digits-only identity form (US country code
stripped) and is only ever used for matching. format_phone_number() produces the
`(XXX) XXX-XXXX` display form and falls back to the original input.
"""

__all__ = [
    "normalize_phone",
    "format_phone_number",
    "NOT_SPECIFIED",
]

NOT_SPECIFIED = "Not Specified"

_NON_DIGIT = re.compile(r"\D")


def normalize_phone(value: Any) -> str:
    """Strip non-digits and a leading US country code from an 11-digit number.

    >>> normalize_phone("+1 (555) 010-0199")
    '5550100199'
    >>> normalize_phone("555-12")
    '55512'
    """
    if value is None or value == "":
        return ""
    cleaned = _NON_DIGIT.sub("", str(value))
    if len(cleaned) == 11 and cleaned.startswith("1"):
        cleaned = cleaned[1:]
    return cleaned


def format_phone_number(value: Any) -> str:
    """Render a 10-digit number as `(XXX) XXX-XXXX`.

    Anything that does not normalize to 10 digits is returned as the original
    (unnormalized) string. Empty input yields "Not Specified".
    """
    if value is None or value == "":
        return NOT_SPECIFIED
    digits = normalize_phone(value)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return str(value)
