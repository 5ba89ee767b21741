"""
recurspace/tests/test_record_store.py

Behaviour shared by the in-memory and SQL record stores. The SQL variant
runs against a throwaway SQLite file.
"""

from datetime import timedelta

import pytest

from recurspace.core.errors import ConflictError
from recurspace.features.optimizations.store import InMemoryRecordStore, load_snapshot
from recurspace.models.records import (
    OptimizationRecord,
    OptimizationStatus,
    RecordKind,
    parse_record,
)
from recurspace.models.recommendation import EstimatedSavings, RecommendationCategory, RecommendationType


@pytest.fixture(params=["memory", "sql"])
def record_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryRecordStore()
        return

    from recurspace.core.database import dispose_engine, init_engine
    from recurspace.features.optimizations.store_pg import SqlRecordStore

    init_engine(f"sqlite:///{tmp_path / 'records.db'}")
    try:
        yield SqlRecordStore()
    finally:
        dispose_engine()


def _optimization(now, opt_id, user_id="user-1", *, minutes_ago=0, type=RecommendationType.TASK, **fields):
    return OptimizationRecord(
        id=opt_id,
        user_id=user_id,
        created_at=now - timedelta(minutes=minutes_ago),
        type=type,
        category=fields.pop("category", RecommendationCategory.EFFICIENCY),
        title=f"Optimization {opt_id}",
        description="desc",
        suggestion="do it",
        estimated_savings=EstimatedSavings(time=1, efficiency=10),
        **fields,
    )


class TestSnapshotRecords:
    def test_fetch_is_scoped_to_user_and_kind(self, record_store, now, task_factory):
        record_store.add_record(RecordKind.TASK, parse_record(RecordKind.TASK, task_factory("t1")))
        record_store.add_record(RecordKind.TASK, parse_record(RecordKind.TASK, task_factory("t2", user_id="user-2")))

        tasks = record_store.fetch_records("user-1", RecordKind.TASK)
        assert [t.id for t in tasks] == ["t1"]
        assert record_store.fetch_records("user-1", RecordKind.WORKFLOW) == []

    def test_fetch_filters_on_created_at(self, record_store, now, task_factory):
        for task_id, days in (("recent", 1), ("old", 40)):
            record_store.add_record(RecordKind.TASK, parse_record(RecordKind.TASK, task_factory(task_id, days_ago=days)))

        recent = record_store.fetch_records("user-1", RecordKind.TASK, created_after=now - timedelta(days=30))
        assert [t.id for t in recent] == ["recent"]
        old = record_store.fetch_records("user-1", RecordKind.TASK, created_before=now - timedelta(days=30))
        assert [t.id for t in old] == ["old"]

    def test_round_trip_keeps_nested_fields(self, record_store, workflow_factory):
        raw = workflow_factory("wf-1", ["completed", "pending"], step_hours=[5, 1])
        record_store.add_record(RecordKind.WORKFLOW, parse_record(RecordKind.WORKFLOW, raw))

        [workflow] = record_store.fetch_records("user-1", RecordKind.WORKFLOW)
        assert workflow.total_steps == 2
        assert workflow.steps[0].estimated_time == 5
        assert workflow.progress == 50.0
        assert workflow.created_at.tzinfo is not None

    def test_duplicate_id_conflicts(self, record_store, task_factory):
        task = parse_record(RecordKind.TASK, task_factory("t1"))
        record_store.add_record(RecordKind.TASK, task)
        with pytest.raises(ConflictError):
            record_store.add_record(RecordKind.TASK, task)

    def test_batch_is_all_or_nothing(self, record_store, task_factory):
        existing = parse_record(RecordKind.TASK, task_factory("t1"))
        record_store.add_record(RecordKind.TASK, existing)

        fresh = parse_record(RecordKind.TASK, task_factory("t2"))
        with pytest.raises(ConflictError):
            record_store.add_records(RecordKind.TASK, [fresh, existing])
        with pytest.raises(ConflictError):
            record_store.add_records(RecordKind.TASK, [fresh, fresh])

        assert [t.id for t in record_store.fetch_records("user-1", RecordKind.TASK)] == ["t1"]

    def test_load_snapshot_collects_every_kind(self, record_store, now, task_factory):
        record_store.add_record(RecordKind.TASK, parse_record(RecordKind.TASK, task_factory("t1")))
        record_store.save_optimization(_optimization(now, "o1"))

        snapshot = load_snapshot(record_store, "user-1")
        assert [t.id for t in snapshot.tasks] == ["t1"]
        assert [o.id for o in snapshot.optimizations] == ["o1"]


class TestOptimizations:
    def test_list_is_newest_first_and_filterable(self, record_store, now):
        record_store.save_optimization(_optimization(now, "older", minutes_ago=10))
        record_store.save_optimization(_optimization(now, "newer", type=RecommendationType.WORKFLOW))
        record_store.save_optimization(_optimization(now, "other-user", user_id="user-2"))

        assert [o.id for o in record_store.list_optimizations("user-1")] == ["newer", "older"]
        filtered = record_store.list_optimizations("user-1", type=RecommendationType.TASK)
        assert [o.id for o in filtered] == ["older"]

    def test_equal_timestamps_keep_insertion_order(self, record_store, now):
        for opt_id in ("a", "b", "c"):
            record_store.save_optimization(_optimization(now, opt_id))
        assert [o.id for o in record_store.list_optimizations("user-1")] == ["a", "b", "c"]

    def test_get_is_scoped_to_owner(self, record_store, now):
        record_store.save_optimization(_optimization(now, "o1"))
        assert record_store.get_optimization("user-1", "o1").id == "o1"
        assert record_store.get_optimization("user-2", "o1") is None

    def test_update_replaces_status(self, record_store, now):
        record = _optimization(now, "o1")
        record_store.save_optimization(record)

        applied = record.with_status(OptimizationStatus.APPLIED, actor="user-1", now=now)
        assert record_store.update_optimization(applied) is True

        stored = record_store.get_optimization("user-1", "o1")
        assert stored.status == OptimizationStatus.APPLIED
        assert stored.applied_by == "user-1"
        assert [o.id for o in record_store.list_optimizations("user-1", status=OptimizationStatus.APPLIED)] == ["o1"]

    def test_update_of_missing_record(self, record_store, now):
        assert record_store.update_optimization(_optimization(now, "missing")) is False

    def test_delete(self, record_store, now):
        record_store.save_optimization(_optimization(now, "o1"))
        assert record_store.delete_optimization("user-2", "o1") is False
        assert record_store.delete_optimization("user-1", "o1") is True
        assert record_store.get_optimization("user-1", "o1") is None

    def test_clear(self, record_store, now, task_factory):
        record_store.add_record(RecordKind.TASK, parse_record(RecordKind.TASK, task_factory("t1")))
        record_store.save_optimization(_optimization(now, "o1"))
        record_store.clear()
        assert record_store.fetch_records("user-1", RecordKind.TASK) == []
        assert record_store.list_optimizations("user-1") == []
        assert record_store.count_optimizations() == 0


def test_store_defaults_to_memory_without_database(store):
    assert isinstance(store, InMemoryRecordStore)
