from __future__ import annotations

from datetime import datetime

import pytest

from lead_import.db.memory_store import InMemoryStore
from lead_import.db.store import (
    SERVER_TIMESTAMP,
    CollectionScope,
    RecordRef,
    StoreError,
    get_field,
    resolve_timestamps,
    set_field,
)


def test_collection_scope_path():
    assert CollectionScope("leads", "acme").path == "companies/acme/leads"
    assert CollectionScope("drivers").path == "drivers"


def test_record_ref_child():
    assert RecordRef("drivers", "d1").child("activity_logs") == "drivers/d1/activity_logs"


def test_get_and_set_field_dotted():
    doc: dict = {}
    set_field(doc, "personalInfo.email", "a@x.com")
    set_field(doc, "status", "New Lead")
    assert doc == {"personalInfo": {"email": "a@x.com"}, "status": "New Lead"}
    assert get_field(doc, "personalInfo.email") == "a@x.com"
    assert get_field(doc, "personalInfo.phone") is None
    assert get_field(doc, "status.x") is None


def test_server_timestamp_is_singleton_and_resolved():
    assert type(SERVER_TIMESTAMP)() is SERVER_TIMESTAMP
    now = datetime(2024, 1, 1)
    out = resolve_timestamps({"a": SERVER_TIMESTAMP, "b": {"c": SERVER_TIMESTAMP}, "d": 1}, now)
    assert out == {"a": now, "b": {"c": now}, "d": 1}


def test_query_exact_and_case_insensitive():
    store = InMemoryStore()
    scope = CollectionScope("leads", "acme")
    ref = store.seed(scope, {"email": "Ann@X.com"})
    assert store.query_by_field(scope, "email", "ann@x.com") == []
    assert store.query_by_field(scope, "email", "ann@x.com", case_insensitive=True) == [ref]


def test_query_nested_field():
    store = InMemoryStore()
    scope = CollectionScope("drivers")
    ref = store.seed(scope, {"personalInfo": {"normalizedPhone": "5550100001"}})
    assert store.query_by_field(scope, "personalInfo.normalizedPhone", "5550100001") == [ref]


def test_commit_set_and_update_resolve_timestamps():
    store = InMemoryStore()
    existing = store.seed("drivers", {"personalInfo": {"email": "a@x.com", "city": "Reno"}})
    new = store.new_ref("drivers")
    group = store.begin_group()
    store.group_set(group, new, {"createdAt": SERVER_TIMESTAMP})
    store.group_update(group, existing, {"personalInfo.city": "Austin", "lastUpdatedAt": SERVER_TIMESTAMP})
    store.commit(group)

    assert isinstance(store.get(new)["createdAt"], datetime)
    doc = store.get(existing)
    # 未指定のネスト値は保持される
    assert doc["personalInfo"] == {"email": "a@x.com", "city": "Austin"}
    assert isinstance(doc["lastUpdatedAt"], datetime)
    assert store.commits == [group]


def test_commit_is_atomic_on_missing_update_target():
    store = InMemoryStore()
    group = store.begin_group()
    store.group_set(group, store.new_ref("leads"), {"email": "a@x.com"})
    store.group_update(group, RecordRef("leads", "missing"), {"city": "x"})
    with pytest.raises(StoreError):
        store.commit(group)
    assert store.documents["leads"] == {}
    assert store.commits == []


def test_fail_on_commit_injection():
    store = InMemoryStore(fail_on_commit=1)
    group = store.begin_group()
    store.group_set(group, store.new_ref("leads"), {"email": "a@x.com"})
    with pytest.raises(StoreError, match="simulated"):
        store.commit(group)
    store.commit(group)
    assert store.commit_attempts == 2
    assert len(store.documents["leads"]) == 1
