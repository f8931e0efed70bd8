from __future__ import annotations

import logging
from collections.abc import Iterable

from lead_import.models.record import CanonicalRecord

"""Intra-batch deduplication.

One forward pass. A record is dropped when its (real, lowercased) email or its
normalized phone has already been seen in the batch. First occurrence wins;
later duplicates are discarded, not merged.
"""

__all__ = [
    "dedupe_records",
]

logger = logging.getLogger(__name__)


def dedupe_records(records: Iterable[CanonicalRecord]) -> list[CanonicalRecord]:
    unique: list[CanonicalRecord] = []
    seen_emails: set[str] = set()
    seen_phones: set[str] = set()

    for rec in records:
        email_key = rec.email.lower() if not rec.is_email_placeholder else ""
        if email_key and email_key in seen_emails:
            logger.debug("row=%d duplicate email %s dropped", rec.row_index + 1, rec.email)
            continue
        if rec.normalized_phone and rec.normalized_phone in seen_phones:
            logger.debug("row=%d duplicate phone %s dropped", rec.row_index + 1, rec.normalized_phone)
            continue
        if email_key:
            seen_emails.add(email_key)
        if rec.normalized_phone:
            seen_phones.add(rec.normalized_phone)
        unique.append(rec)

    return unique
