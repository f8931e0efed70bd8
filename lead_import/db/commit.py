from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from lead_import.models.config_models import DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE
from lead_import.models.processing_result import ImportStats

from .store import RecordRef, RecordStore

"""Batched commit scheduler.

Every reconciled record contributes two operations to the open CommitGroup: its
create/update write and its audit-log entry. When the group holds `batch_size`
records it is committed and a fresh group is opened; flush() commits the
remainder.

Groups are committed sequentially. A failed commit raises CommitError at once;
earlier groups stay committed (there is no cross-group rollback) and
`committed` reports exactly what they contained.
"""

__all__ = [
    "BatchedCommitScheduler",
    "CommitError",
    "GroupMetrics",
    "PlannedWrite",
]

logger = logging.getLogger(__name__)


class CommitError(Exception):
    """A commit group failed. Carries the counts of groups committed before it."""

    def __init__(self, message: str, group_index: int, committed: ImportStats) -> None:
        super().__init__(message)
        self.group_index = group_index  # 1-based index of the failed group
        self.committed = committed


@dataclass(frozen=True)
class PlannedWrite:
    """One record's write plus its paired audit entry."""
    action: Literal["create", "update"]
    ref: RecordRef
    payload: dict[str, Any]
    audit_ref: RecordRef
    audit_entry: dict[str, Any]


@dataclass(frozen=True)
class GroupMetrics:
    """Metrics for a single group commit attempt."""
    group_index: int
    records: int
    operations: int
    elapsed_seconds: float
    success: bool


class BatchedCommitScheduler:
    """Accumulates PlannedWrites into bounded CommitGroups and commits them.

    Args:
        store: RecordStore that owns the groups
        batch_size: records per group (1..MAX_BATCH_SIZE)
        metrics_callback: receives GroupMetrics after every commit attempt
    """

    def __init__(
        self,
        store: RecordStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        metrics_callback: Callable[[GroupMetrics], None] | None = None,
    ) -> None:
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self.store = store
        self.batch_size = batch_size
        self.metrics_callback = metrics_callback
        self.committed = ImportStats()
        self.groups_committed = 0
        self._group = store.begin_group()
        self._group_records = 0
        self._group_stats = ImportStats()

    @property
    def pending(self) -> int:
        """Records queued in the open (uncommitted) group."""
        return self._group_records

    def queue(self, planned: PlannedWrite) -> None:
        if planned.action == "create":
            self.store.group_set(self._group, planned.ref, planned.payload)
            self._group_stats += ImportStats(created=1)
        else:
            self.store.group_update(self._group, planned.ref, planned.payload)
            self._group_stats += ImportStats(updated=1)
        self.store.group_set(self._group, planned.audit_ref, planned.audit_entry)
        self._group_records += 1

        if self._group_records >= self.batch_size:
            self._commit()

    def flush(self) -> None:
        """Commit the open group if it holds anything."""
        if self._group_records:
            self._commit()

    def _commit(self) -> None:
        group_index = self.groups_committed + 1
        operations = len(self._group)
        success = False
        start_time = time.time()
        try:
            self.store.commit(self._group)
            success = True
        except Exception as e:
            raise CommitError(
                f"Import failed while saving group {group_index}: {e}",
                group_index=group_index,
                committed=self.committed,
            ) from e
        finally:
            elapsed = time.time() - start_time
            if self.metrics_callback is not None:
                self.metrics_callback(
                    GroupMetrics(
                        group_index=group_index,
                        records=self._group_records,
                        operations=operations,
                        elapsed_seconds=elapsed,
                        success=success,
                    )
                )

        logger.debug(
            "group=%d committed records=%d ops=%d elapsed=%.3fs",
            group_index,
            self._group_records,
            operations,
            elapsed,
        )
        self.committed += self._group_stats
        self.groups_committed = group_index
        self._group = self.store.begin_group()
        self._group_records = 0
        self._group_stats = ImportStats()
