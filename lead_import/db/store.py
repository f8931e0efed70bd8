from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

"""Remote document store interface.

The pipeline only needs exact-match point queries on a named field within a
collection scope, and bounded atomic write groups. Anything that offers those
(a document database, a jsonb table, a dict in tests) can back an import.

Field names may be dotted (`personalInfo.email`) to address nested values.
"""

__all__ = [
    "SERVER_TIMESTAMP",
    "CollectionScope",
    "RecordRef",
    "WriteOp",
    "CommitGroup",
    "RecordStore",
    "StoreError",
    "get_field",
    "set_field",
    "resolve_timestamps",
]


class _ServerTimestamp:
    """Sentinel replaced by the store with the commit time."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    """Base exception for store read / write failures."""


@dataclass(frozen=True)
class CollectionScope:
    """A collection, optionally scoped under a tenant (company)."""
    collection: str
    tenant_id: str | None = None

    @property
    def path(self) -> str:
        if self.tenant_id:
            return f"companies/{self.tenant_id}/{self.collection}"
        return self.collection


@dataclass(frozen=True)
class RecordRef:
    """Opaque handle to a persisted (or about-to-be-created) document."""
    path: str  # collection path
    record_id: str

    def child(self, name: str) -> str:
        """Path of a sub-collection under this document."""
        return f"{self.path}/{self.record_id}/{name}"


@dataclass(frozen=True)
class WriteOp:
    kind: Literal["set", "update"]
    ref: RecordRef
    payload: dict[str, Any]


@dataclass
class CommitGroup:
    """Ordered write operations applied as one atomic unit."""
    ops: list[WriteOp] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ops)


class RecordStore(Protocol):
    def query_by_field(
        self,
        scope: CollectionScope,
        field: str,
        value: str,
        *,
        case_insensitive: bool = False,
    ) -> list[RecordRef]: ...

    def new_ref(self, path: str) -> RecordRef: ...

    def begin_group(self) -> CommitGroup: ...

    def group_set(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None: ...

    def group_update(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None: ...

    def commit(self, group: CommitGroup) -> None: ...


def get_field(document: dict[str, Any], field: str) -> Any:
    """Read a (possibly dotted) field from a nested document; None if absent."""
    current: Any = document
    for part in field.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def set_field(document: dict[str, Any], field: str, value: Any) -> None:
    """Write a (possibly dotted) field, creating intermediate dicts as needed."""
    parts = field.split(".")
    current = document
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def resolve_timestamps(payload: dict[str, Any], now: Any) -> dict[str, Any]:
    """Return a copy of `payload` with every SERVER_TIMESTAMP replaced by `now`."""
    out: dict[str, Any] = {}
    for k, v in payload.items():
        if v is SERVER_TIMESTAMP:
            out[k] = now
        elif isinstance(v, dict):
            out[k] = resolve_timestamps(v, now)
        else:
            out[k] = v
    return out
