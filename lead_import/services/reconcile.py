from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from lead_import.db.commit import PlannedWrite
from lead_import.db.store import SERVER_TIMESTAMP, CollectionScope, RecordRef, RecordStore, set_field
from lead_import.models.config_models import ActorConfig, TeamMember
from lead_import.models.record import CanonicalRecord, ImportMethod

from .assignment import OwnerAssigner
from .identity import resolve_existing

"""Reconciliation: decide create vs. update for each record and build payloads.

A RecordProfile is the field-name mapping of one target collection shape:

- `lead`: flat company lead documents (companies/{tenant}/leads)
- `driver`: nested global driver documents (drivers)

Create payloads carry every canonical field. Update payloads carry only the
fields that were actually present in the sheet (non-empty and not filled by a
fallback) so existing data is never overwritten with blanks or defaults.
Ownership is only set on create.
"""

__all__ = [
    "RecordProfile",
    "LEAD_PROFILE",
    "DRIVER_PROFILE",
    "PROFILES",
    "get_profile",
    "build_create_payload",
    "build_update_payload",
    "build_audit_entry",
    "Reconciler",
    "AUDIT_COLLECTION",
]

logger = logging.getLogger(__name__)

AUDIT_COLLECTION = "activity_logs"


@dataclass(frozen=True)
class RecordProfile:
    """Stored field names and defaults for one collection shape."""
    name: str
    collection: str  # default collection for this shape
    fields: dict[str, str]  # canonical attribute -> stored (dotted) field
    created_at_field: str
    updated_at_field: str
    source_labels: dict[ImportMethod, str]
    created_action: str
    updated_action: str
    create_defaults: dict[str, Any] = field(default_factory=dict)  # stored field -> value
    create_fallbacks: dict[str, str] = field(default_factory=dict)  # canonical attr -> value when blank
    owner_id_field: str = "assignedTo"
    owner_name_field: str = "assignedToName"
    placeholder_flag_field: str = "isEmailPlaceholder"

    @property
    def email_field(self) -> str:
        return self.fields["email"]

    @property
    def phone_field(self) -> str:
        return self.fields["normalized_phone"]


LEAD_PROFILE = RecordProfile(
    name="lead",
    collection="leads",
    fields={
        "first_name": "firstName",
        "last_name": "lastName",
        "email": "email",
        "phone": "phone",
        "normalized_phone": "normalizedPhone",
        "driver_type": "driverType",
        "experience": "experience",
        "city": "city",
        "state": "state",
    },
    created_at_field="createdAt",
    updated_at_field="updatedAt",
    source_labels={
        ImportMethod.FILE: "Company Import (File)",
        ImportMethod.GSHEET: "Company Import (Sheet)",
    },
    created_action="Lead Imported",
    updated_action="Lead Data Updated",
    create_defaults={"status": "New Lead", "isPlatformLead": False},
)

DRIVER_PROFILE = RecordProfile(
    name="driver",
    collection="drivers",
    fields={
        "first_name": "personalInfo.firstName",
        "last_name": "personalInfo.lastName",
        "email": "personalInfo.email",
        "phone": "personalInfo.phone",
        "normalized_phone": "personalInfo.normalizedPhone",
        "city": "personalInfo.city",
        "state": "personalInfo.state",
        "driver_type": "driverProfile.type",
        "experience": "qualifications.experienceYears",
    },
    created_at_field="createdAt",
    updated_at_field="lastUpdatedAt",
    source_labels={
        ImportMethod.FILE: "admin_bulk_import",
        ImportMethod.GSHEET: "admin_bulk_import",
    },
    created_action="Driver Imported",
    updated_action="Driver Data Updated",
    create_defaults={
        "personalInfo.zip": "",
        "driverProfile.availability": "actively_looking",
        "driverProfile.isBulkUpload": True,
    },
    create_fallbacks={"experience": "New"},
    placeholder_flag_field="driverProfile.isEmailPlaceholder",
)

PROFILES: dict[str, RecordProfile] = {
    LEAD_PROFILE.name: LEAD_PROFILE,
    DRIVER_PROFILE.name: DRIVER_PROFILE,
}


def get_profile(name: str) -> RecordProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"unknown record profile: {name!r} (expected one of {sorted(PROFILES)})") from None


def build_create_payload(
    record: CanonicalRecord,
    profile: RecordProfile,
    *,
    source: str,
    owner: TeamMember | None = None,
) -> dict[str, Any]:
    """Full document for a new record (nested according to dotted field names)."""
    payload: dict[str, Any] = {}
    for attr, stored in profile.fields.items():
        value = getattr(record, attr)
        if not value and attr in profile.create_fallbacks:
            value = profile.create_fallbacks[attr]
        set_field(payload, stored, value)
    set_field(payload, profile.placeholder_flag_field, record.is_email_placeholder)
    for stored, value in profile.create_defaults.items():
        set_field(payload, stored, value)
    payload["source"] = source
    if owner is not None:
        payload[profile.owner_id_field] = owner.id
        payload[profile.owner_name_field] = owner.name
    payload[profile.created_at_field] = SERVER_TIMESTAMP
    payload[profile.updated_at_field] = SERVER_TIMESTAMP
    return payload


def build_update_payload(record: CanonicalRecord, profile: RecordProfile) -> dict[str, Any]:
    """Partial update keyed by dotted field names.

    Only non-empty values read from the sheet are included; placeholder emails
    and fallback names / types never overwrite stored data.
    """
    payload: dict[str, Any] = {}
    for attr, stored in profile.fields.items():
        if attr in record.defaulted_fields:
            continue
        value = getattr(record, attr)
        if value:
            payload[stored] = value
    payload[profile.updated_at_field] = SERVER_TIMESTAMP
    return payload


def build_audit_entry(action: str, details: str, actor: ActorConfig) -> dict[str, Any]:
    return {
        "action": action,
        "details": details,
        "type": "system",
        "performedBy": actor.id,
        "performedByName": actor.name,
        "timestamp": SERVER_TIMESTAMP,
    }


class Reconciler:
    """Plans the write for each record of a confirmed batch, in order.

    Identity is re-resolved against the store for every record; records
    created earlier in the same run are only visible once their group has
    been committed.
    """

    def __init__(
        self,
        store: RecordStore,
        scope: CollectionScope,
        profile: RecordProfile,
        *,
        method: ImportMethod,
        assigner: OwnerAssigner,
        actor: ActorConfig,
        source_label: str | None = None,
    ) -> None:
        self.store = store
        self.scope = scope
        self.profile = profile
        self.assigner = assigner
        self.actor = actor
        self.source = source_label or profile.source_labels[method]

    def plan(self, record: CanonicalRecord) -> PlannedWrite:
        existing = resolve_existing(
            self.store,
            self.scope,
            record,
            email_field=self.profile.email_field,
            phone_field=self.profile.phone_field,
        )
        if existing is None:
            return self._plan_create(record)
        return self._plan_update(record, existing)

    def _plan_create(self, record: CanonicalRecord) -> PlannedWrite:
        owner = self.assigner.next_owner()
        ref = self.store.new_ref(self.scope.path)
        payload = build_create_payload(record, self.profile, source=self.source, owner=owner)
        assigned = f"Assigned to {owner.name}" if owner is not None else "Unassigned"
        audit = build_audit_entry(
            self.profile.created_action,
            f"Imported via Bulk Upload. {assigned}",
            self.actor,
        )
        return PlannedWrite(
            action="create",
            ref=ref,
            payload=payload,
            audit_ref=self.store.new_ref(ref.child(AUDIT_COLLECTION)),
            audit_entry=audit,
        )

    def _plan_update(self, record: CanonicalRecord, existing: RecordRef) -> PlannedWrite:
        audit = build_audit_entry(
            self.profile.updated_action,
            "Updated via Bulk Upload match.",
            self.actor,
        )
        return PlannedWrite(
            action="update",
            ref=existing,
            payload=build_update_payload(record, self.profile),
            audit_ref=self.store.new_ref(existing.child(AUDIT_COLLECTION)),
            audit_entry=audit,
        )
