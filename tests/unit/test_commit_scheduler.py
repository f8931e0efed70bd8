from __future__ import annotations

import pytest

from lead_import.db.commit import BatchedCommitScheduler, CommitError, PlannedWrite
from lead_import.db.memory_store import InMemoryStore
from lead_import.db.store import RecordRef
from lead_import.models.processing_result import ImportStats

PATH = "companies/acme/leads"


def _create(store: InMemoryStore, n: int) -> PlannedWrite:
    ref = store.new_ref(PATH)
    return PlannedWrite(
        action="create",
        ref=ref,
        payload={"email": f"u{n}@x.com"},
        audit_ref=store.new_ref(ref.child("activity_logs")),
        audit_entry={"action": "Lead Imported"},
    )


def _update(store: InMemoryStore, ref: RecordRef) -> PlannedWrite:
    return PlannedWrite(
        action="update",
        ref=ref,
        payload={"city": "Reno"},
        audit_ref=store.new_ref(ref.child("activity_logs")),
        audit_entry={"action": "Lead Data Updated"},
    )


@pytest.mark.parametrize("size", [0, 451, -1])
def test_batch_size_bounds(size):
    with pytest.raises(ValueError):
        BatchedCommitScheduler(InMemoryStore(), size)


def test_each_record_contributes_two_ops():
    store = InMemoryStore()
    sched = BatchedCommitScheduler(store, 10)
    sched.queue(_create(store, 1))
    sched.queue(_create(store, 2))
    assert sched.pending == 2
    sched.flush()
    assert len(store.commits) == 1
    assert len(store.commits[0]) == 4
    assert sched.committed == ImportStats(created=2, updated=0)


def test_commits_when_bound_reached():
    store = InMemoryStore()
    sched = BatchedCommitScheduler(store, 2)
    for i in range(5):
        sched.queue(_create(store, i))
    assert len(store.commits) == 2
    assert sched.pending == 1
    sched.flush()
    assert [len(g) for g in store.commits] == [4, 4, 2]
    assert sched.groups_committed == 3


def test_flush_empty_is_noop():
    store = InMemoryStore()
    sched = BatchedCommitScheduler(store)
    sched.flush()
    assert store.commits == []
    assert store.commit_attempts == 0


def test_counts_creates_and_updates():
    store = InMemoryStore()
    existing = store.seed(PATH, {"email": "a@x.com"})
    sched = BatchedCommitScheduler(store)
    sched.queue(_create(store, 1))
    sched.queue(_update(store, existing))
    sched.flush()
    assert sched.committed == ImportStats(created=1, updated=1)
    assert store.get(existing)["city"] == "Reno"


def test_failed_group_reports_earlier_groups():
    store = InMemoryStore(fail_on_commit=2)
    sched = BatchedCommitScheduler(store, 2)
    sched.queue(_create(store, 1))
    sched.queue(_create(store, 2))
    sched.queue(_create(store, 3))
    with pytest.raises(CommitError) as ei:
        sched.queue(_create(store, 4))
    assert ei.value.group_index == 2
    assert ei.value.committed == ImportStats(created=2)
    assert "group 2" in str(ei.value)
    # 失敗したグループの書き込みは残らない
    assert len(store.documents[PATH]) == 2


def test_metrics_callback_success_and_failure():
    seen = []
    store = InMemoryStore(fail_on_commit=2)
    sched = BatchedCommitScheduler(store, 1, metrics_callback=seen.append)
    sched.queue(_create(store, 1))
    with pytest.raises(CommitError):
        sched.queue(_create(store, 2))
    assert [(m.group_index, m.records, m.operations, m.success) for m in seen] == [
        (1, 1, 2, True),
        (2, 1, 2, False),
    ]
    assert all(m.elapsed_seconds >= 0 for m in seen)
