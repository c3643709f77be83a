"""
Record Store Tests

Both backends must honor the same append-only contract.
"""

from datetime import timedelta
import sqlite3

import pytest

from governance.contracts.base import TimeRange
from governance.errors import RecordStoreError
from governance.storage import InMemoryRecordStore, SQLiteRecordStore, create_store

from .fixtures import EPOCH, make_clock


@pytest.fixture(params=["memory", "sqlite"])
def clock_and_store(request, tmp_path):
    clock = make_clock()
    if request.param == "memory":
        return clock, InMemoryRecordStore(clock=clock)
    return clock, SQLiteRecordStore(tmp_path / "governance.db", clock=clock)


class TestRecordStoreContract:

    def test_append_then_query(self, clock_and_store):
        _, store = clock_and_store
        record_id = store.append("governance_decision", {"id": "d1", "approved": True})

        [record] = store.query("governance_decision")
        assert record_id == "d1"
        assert record.record_id == "d1"
        assert record.get("approved") is True
        assert record.recorded_at.value == EPOCH

    def test_append_without_id_generates_one(self, clock_and_store):
        _, store = clock_and_store
        record_id = store.append("governance_decision", {"approved": False})

        assert record_id
        assert store.query("governance_decision")[0].record_id == record_id

    def test_append_is_idempotent_by_id(self, clock_and_store):
        _, store = clock_and_store
        store.append("governance_decision", {"id": "d1", "approved": True})
        store.append("governance_decision", {"id": "d1", "approved": False})

        [record] = store.query("governance_decision")
        assert record.get("approved") is True

    def test_same_id_in_different_types(self, clock_and_store):
        _, store = clock_and_store
        store.append("governance_decision", {"id": "x"})
        store.append("sovereignty_audit_log", {"id": "x"})

        assert len(store.query("governance_decision")) == 1
        assert len(store.query("sovereignty_audit_log")) == 1

    def test_query_preserves_append_order(self, clock_and_store):
        _, store = clock_and_store
        for i in range(5):
            store.append("governance_decision", {"id": f"d{i}"})

        assert [r.record_id for r in store.query("governance_decision")] == [
            "d0", "d1", "d2", "d3", "d4"
        ]

    def test_filter_by_field(self, clock_and_store):
        _, store = clock_and_store
        store.append("governance_decision", {"id": "a", "approved": True, "operation_kind": "backup"})
        store.append("governance_decision", {"id": "b", "approved": False, "operation_kind": "backup"})
        store.append("governance_decision", {"id": "c", "approved": True, "operation_kind": "export"})

        approved = store.query("governance_decision", filter={"approved": True})
        backups = store.query("governance_decision", filter={"approved": True, "operation_kind": "backup"})

        assert [r.record_id for r in approved] == ["a", "c"]
        assert [r.record_id for r in backups] == ["a"]

    def test_time_range_query(self, clock_and_store):
        clock, store = clock_and_store
        store.append("governance_decision", {"id": "old"})
        clock.advance(timedelta(days=2))
        store.append("governance_decision", {"id": "new"})

        window = TimeRange.trailing(clock.now(), timedelta(days=1))
        assert [r.record_id for r in store.query("governance_decision", time_range=window)] == ["new"]

    def test_unknown_type_is_empty(self, clock_and_store):
        _, store = clock_and_store
        assert store.query("nothing_here") == []


class TestSQLiteRecordStore:

    def test_records_survive_reopen(self, tmp_path):
        path = tmp_path / "nested" / "governance.db"
        SQLiteRecordStore(path).append("governance_decision", {"id": "d1", "reasons": ["a", "b"]})

        [record] = SQLiteRecordStore(path).query("governance_decision")
        assert record.get("reasons") == ["a", "b"]

    def test_time_range_bounds_are_applied_in_sql(self, tmp_path):
        clock = make_clock()
        path = tmp_path / "governance.db"
        store = SQLiteRecordStore(path, clock=clock)
        store.append("governance_decision", {"id": "old"})
        clock.advance(timedelta(days=40, microseconds=250))
        store.append("governance_decision", {"id": "recent"})

        with sqlite3.connect(path) as conn:
            stored = [row[0] for row in conn.execute("SELECT recorded_at FROM records ORDER BY seq")]
            indexes = {row[1] for row in conn.execute("PRAGMA index_list(records)")}

        assert stored == sorted(stored)
        assert all(len(value) == len(stored[0]) for value in stored)
        assert "idx_records_time" in indexes

        window = TimeRange.trailing(clock.now(), timedelta(days=30))
        assert [r.record_id for r in store.query("governance_decision", time_range=window)] == ["recent"]

    def test_time_range_bounds_are_inclusive(self, tmp_path):
        clock = make_clock()
        store = SQLiteRecordStore(tmp_path / "governance.db", clock=clock)
        clock.advance(timedelta(microseconds=500))
        store.append("governance_decision", {"id": "d1"})

        exact = TimeRange(start=clock.now(), end=clock.now())
        [record] = store.query("governance_decision", time_range=exact)
        assert record.recorded_at == clock.now()

    def test_unserializable_fields_raise_store_error(self, tmp_path):
        store = SQLiteRecordStore(tmp_path / "governance.db")
        with pytest.raises(RecordStoreError):
            store.append("governance_decision", {"id": "d1", "bad": object()})

    def test_unopenable_path_raises_store_error(self, tmp_path):
        store = SQLiteRecordStore(tmp_path / "governance.db")
        (tmp_path / "governance.db").unlink()
        (tmp_path / "governance.db").mkdir()

        with pytest.raises(RecordStoreError):
            store.query("governance_decision")


class TestCreateStore:

    def test_memory_backend(self):
        assert isinstance(create_store("memory"), InMemoryRecordStore)

    def test_sqlite_backend(self, tmp_path):
        assert isinstance(create_store("sqlite", str(tmp_path / "g.db")), SQLiteRecordStore)

    def test_sqlite_requires_path(self):
        with pytest.raises(ValueError):
            create_store("sqlite")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_store("postgres")
