"""
recurspace/tests/test_optimization_service.py

Tests for the optimization service: generation, pagination, review
lifecycle and stats.
"""

import itertools
from datetime import timedelta

import pytest

from recurspace.core.errors import InvalidInputError, NotFoundError
from recurspace.core.metrics import (
    insight_evaluations_total,
    optimization_status_changes_total,
    recommendations_emitted_total,
)
from recurspace.features.optimizations.service import OptimizationService
from recurspace.features.optimizations.store import InMemoryRecordStore
from recurspace.models.records import OptimizationStatus, RecordKind, parse_record


@pytest.fixture
def service():
    counter = itertools.count(1)
    return OptimizationService(InMemoryRecordStore(), id_factory=lambda: f"opt-{next(counter)}")


def _load(service, kind, raws):
    for raw in raws:
        service.store.add_record(kind, parse_record(kind, raw))


class TestGenerate:
    def test_general_persists_both_recommendations(self, service, now):
        saved = service.generate("user-1", "general", now=now)

        assert [r.id for r in saved] == ["opt-1", "opt-2"]
        assert all(r.status == OptimizationStatus.PENDING for r in saved)
        assert all(r.created_at == now and r.user_id == "user-1" for r in saved)
        assert [o.id for o in service.store.list_optimizations("user-1")] == ["opt-1", "opt-2"]

    def test_generate_reads_the_callers_records(self, service, now, task_factory):
        due = (now - timedelta(days=1)).isoformat()
        _load(service, RecordKind.TASK, [task_factory("t1", dueDate=due), task_factory("t2", user_id="user-2", dueDate=due)])

        [saved] = service.generate("user-1", "task", now=now)
        assert saved.title == "Address Overdue Tasks"
        assert saved.estimated_savings.time == 0.5
        assert saved.data["currentMetrics"] == {"overdueTasks": 1}
        assert [i.id for i in saved.related_items] == ["t1"]

    def test_nothing_to_say_persists_nothing(self, service, now):
        assert service.generate("user-1", "workflow", now=now) == []
        assert service.store.list_optimizations("user-1") == []

    def test_unknown_type_persists_nothing(self, service, now):
        with pytest.raises(InvalidInputError):
            service.generate("user-1", "everything", now=now)
        assert service.store.list_optimizations("user-1") == []

    def test_generate_updates_metrics(self, service, now):
        service.generate("user-1", "general", now=now)
        assert insight_evaluations_total.value({"type": "general"}) == 1
        assert recommendations_emitted_total.value({"rule": "task_automation"}) == 1


class TestList:
    def test_pagination(self, service, now):
        for _ in range(3):
            service.generate("user-1", "general", now=now)

        first = service.list("user-1", page=1, limit=4)
        assert len(first.optimizations) == 4
        assert first.pagination.total == 2
        assert first.pagination.has_next is True
        assert first.pagination.has_prev is False

        second = service.list("user-1", page=2, limit=4)
        assert len(second.optimizations) == 2
        assert second.pagination.has_next is False
        assert second.pagination.has_prev is True

    def test_filters(self, service, now):
        service.generate("user-1", "general", now=now)
        automation = service.list("user-1", type="automation")
        assert [o.title for o in automation.optimizations] == ["Enable Task Automation"]

    def test_pagination_serializes_camel_case(self, service, now):
        body = service.list("user-1").to_dict()
        assert body["pagination"] == {"current": 1, "total": 0, "hasNext": False, "hasPrev": False}

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 1000}, {"status": "done"}])
    def test_invalid_arguments(self, service, kwargs):
        with pytest.raises(InvalidInputError):
            service.list("user-1", **kwargs)


class TestLifecycle:
    def test_apply_then_reject_clears_applied_fields(self, service, now):
        [record, _] = service.generate("user-1", "general", now=now)

        applied = service.update_status("user-1", record.id, "applied", now=now + timedelta(hours=1))
        assert applied.applied_at == now + timedelta(hours=1)
        assert applied.applied_by == "user-1"

        rejected = service.update_status("user-1", record.id, "rejected", now=now + timedelta(hours=2))
        assert rejected.applied_at is None
        assert rejected.applied_by is None
        assert service.get("user-1", record.id).status == OptimizationStatus.REJECTED
        assert optimization_status_changes_total.value({"status": "applied"}) == 1

    def test_other_users_cannot_see_or_change(self, service, now):
        [record, _] = service.generate("user-1", "general", now=now)
        with pytest.raises(NotFoundError):
            service.get("user-2", record.id)
        with pytest.raises(NotFoundError):
            service.update_status("user-2", record.id, "applied", now=now)
        with pytest.raises(NotFoundError):
            service.delete("user-2", record.id)

    def test_invalid_status(self, service, now):
        [record, _] = service.generate("user-1", "general", now=now)
        with pytest.raises(InvalidInputError):
            service.update_status("user-1", record.id, "done", now=now)

    def test_delete(self, service, now):
        [record, _] = service.generate("user-1", "general", now=now)
        service.delete("user-1", record.id)
        with pytest.raises(NotFoundError):
            service.get("user-1", record.id)


class TestStats:
    def test_empty_stats(self, service):
        stats = service.stats("user-1")
        assert stats.total == 0
        assert stats.application_rate == 0
        assert stats.total_savings.time == 0
        assert stats.total_savings.efficiency == 0

    def test_stats_over_applied_records(self, service, now):
        automation, batching = service.generate("user-1", "general", now=now)
        service.generate("user-1", "general", now=now)
        service.update_status("user-1", automation.id, "applied", now=now)
        service.update_status("user-1", batching.id, "applied", now=now)

        stats = service.stats("user-1")
        assert stats.total == 4
        assert stats.applied == 2
        assert stats.application_rate == 50.0
        assert stats.by_status == {"applied": 2, "pending": 2}
        assert stats.by_type == {"automation": 2, "resource": 2}
        assert stats.by_impact == {"high": 2, "medium": 2}
        assert stats.total_savings.time == 7
        assert stats.total_savings.efficiency == 32.5


def test_patterns_use_stored_records(service, now, task_factory):
    due = (now - timedelta(days=1)).isoformat()
    _load(service, RecordKind.TASK, [task_factory("t1", dueDate=due)])
    report = service.patterns("user-1", now=now)
    assert [p.pattern for p in report.patterns] == ["Late Deliveries"]
