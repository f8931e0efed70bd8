from __future__ import annotations

import logging

from lead_import.db.store import CollectionScope, RecordRef, RecordStore
from lead_import.models.record import CanonicalRecord

"""Identity resolution against the remote collection.

Email first (real addresses only, case-insensitive), then the normalized phone
digits. At most one query per identity field; none when both are empty. Every
record is resolved fresh, nothing is cached between records.
"""

__all__ = [
    "resolve_existing",
]

logger = logging.getLogger(__name__)


def resolve_existing(
    store: RecordStore,
    scope: CollectionScope,
    record: CanonicalRecord,
    *,
    email_field: str,
    phone_field: str,
) -> RecordRef | None:
    """Return the first existing document matching `record`, or None.

    Args:
        store: remote store
        scope: collection to search
        record: parsed record
        email_field: stored field holding the email (may be dotted)
        phone_field: stored field holding the normalized phone digits
    """
    if not record.is_email_placeholder and record.email:
        hits = store.query_by_field(scope, email_field, record.email, case_insensitive=True)
        if hits:
            logger.debug("row=%d matched by email -> %s", record.row_index + 1, hits[0].record_id)
            return hits[0]

    if record.normalized_phone:
        hits = store.query_by_field(scope, phone_field, record.normalized_phone)
        if hits:
            logger.debug("row=%d matched by phone -> %s", record.row_index + 1, hits[0].record_id)
            return hits[0]

    return None
