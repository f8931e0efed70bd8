from __future__ import annotations

import copy
import uuid
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from .store import CollectionScope, CommitGroup, RecordRef, StoreError, WriteOp, get_field, resolve_timestamps, set_field

"""In-memory RecordStore.

Backs --dry-run / DISABLE_DB_CONNECT=1 runs and the test-suite. Commits are
atomic: every op of a group is validated before any is applied.
"""

__all__ = [
    "InMemoryStore",
]


class InMemoryStore:
    """Dict-backed document store: path -> {record_id -> document}."""

    def __init__(self, *, fail_on_commit: int | None = None) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.commits: list[CommitGroup] = []  # successfully committed groups
        self.queries: list[tuple[str, str, str]] = []  # (path, field, value)
        self.commit_attempts = 0
        # 1-based commit attempt that raises (障害注入, partial failure テスト用)
        self._fail_on_commit = fail_on_commit

    def seed(self, scope: CollectionScope | str, document: dict[str, Any], record_id: str | None = None) -> RecordRef:
        """Insert a document directly (test / fixture helper)."""
        path = scope.path if isinstance(scope, CollectionScope) else scope
        ref = self.new_ref(path) if record_id is None else RecordRef(path, record_id)
        self.documents[path][ref.record_id] = copy.deepcopy(document)
        return ref

    def get(self, ref: RecordRef) -> dict[str, Any] | None:
        return self.documents.get(ref.path, {}).get(ref.record_id)

    def query_by_field(
        self,
        scope: CollectionScope,
        field: str,
        value: str,
        *,
        case_insensitive: bool = False,
    ) -> list[RecordRef]:
        self.queries.append((scope.path, field, value))
        wanted = value.lower() if case_insensitive else value
        hits: list[RecordRef] = []
        for record_id, doc in self.documents.get(scope.path, {}).items():
            current = get_field(doc, field)
            if not isinstance(current, str):
                continue
            if (current.lower() if case_insensitive else current) == wanted:
                hits.append(RecordRef(scope.path, record_id))
        return hits

    def new_ref(self, path: str) -> RecordRef:
        return RecordRef(path, uuid.uuid4().hex[:20])

    def begin_group(self) -> CommitGroup:
        return CommitGroup()

    def group_set(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None:
        group.ops.append(WriteOp("set", ref, payload))

    def group_update(self, group: CommitGroup, ref: RecordRef, payload: dict[str, Any]) -> None:
        group.ops.append(WriteOp("update", ref, payload))

    def commit(self, group: CommitGroup) -> None:
        self.commit_attempts += 1
        if self._fail_on_commit is not None and self.commit_attempts == self._fail_on_commit:
            raise StoreError(f"simulated commit failure (attempt {self.commit_attempts})")

        # validate first so that a bad op leaves nothing applied
        created_in_group = {(op.ref.path, op.ref.record_id) for op in group.ops if op.kind == "set"}
        for op in group.ops:
            if op.kind == "update" and self.get(op.ref) is None and (op.ref.path, op.ref.record_id) not in created_in_group:
                raise StoreError(f"no document to update: {op.ref.path}/{op.ref.record_id}")

        now = datetime.now(UTC)
        for op in group.ops:
            payload = resolve_timestamps(op.payload, now)
            if op.kind == "set":
                self.documents[op.ref.path][op.ref.record_id] = copy.deepcopy(payload)
            else:
                doc = self.documents[op.ref.path][op.ref.record_id]
                for k, v in payload.items():
                    set_field(doc, k, copy.deepcopy(v))
        self.commits.append(group)
