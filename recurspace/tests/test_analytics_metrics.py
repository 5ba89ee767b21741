"""
recurspace/tests/test_analytics_metrics.py

Tests for metric point generation.
"""

from datetime import timedelta

import pytest

from recurspace.core.errors import InvalidInputError
from recurspace.features.analytics.metrics import generate_metrics
from recurspace.features.analytics.models import AnalyticsType, MetricUnit


def _values(points):
    return {p.metric: p.value for p in points}


@pytest.fixture
def snapshot(now, task_factory, workflow_factory):
    due = (now - timedelta(days=1)).isoformat()
    return {
        "userId": "user-1",
        "tasks": [
            task_factory("t1", status="completed", priority="high"),
            task_factory("t2", priority="high", dueDate=due),
            task_factory("t3", priority="low"),
            task_factory("t-old", status="completed", days_ago=90),
        ],
        "workflows": [
            workflow_factory("wf-1", ["completed", "pending"], status="completed", type="automated"),
            workflow_factory("wf-2", ["pending"]),
        ],
        "templates": [
            {"id": "tpl-1", "userId": "user-1", "createdAt": (now - timedelta(days=2)).isoformat(),
             "name": "Invoice", "category": "finance", "status": "active", "totalUses": 4},
            {"id": "tpl-2", "userId": "user-1", "createdAt": (now - timedelta(days=2)).isoformat(),
             "name": "Kickoff", "category": "sales", "totalUses": 1},
        ],
    }


class TestTaskMetrics:
    def test_task_metrics_within_default_window(self, snapshot, now):
        points = generate_metrics(snapshot, "task", now=now)
        values = _values(points)

        assert values["total_tasks"] == 3
        assert values["completed_tasks"] == 1
        assert round(values["completion_rate"], 2) == 33.33
        assert values["priority_high"] == 2
        assert values["priority_low"] == 1
        assert values["overdue_tasks"] == 1
        assert all(p.type == AnalyticsType.TASK and p.date == now for p in points)

    def test_explicit_window_includes_older_records(self, snapshot, now):
        points = generate_metrics(snapshot, "task", start=now - timedelta(days=120), end=now, now=now)
        assert _values(points)["total_tasks"] == 4

    def test_units(self, snapshot, now):
        units = {p.metric: p.unit for p in generate_metrics(snapshot, "task", now=now)}
        assert units["completion_rate"] == MetricUnit.PERCENTAGE
        assert units["total_tasks"] == MetricUnit.COUNT


def test_workflow_metrics(snapshot, now):
    values = _values(generate_metrics(snapshot, "workflow", now=now))
    assert values["total_workflows"] == 2
    assert values["completed_workflows"] == 1
    assert values["workflow_completion_rate"] == 50.0
    assert values["average_progress"] == 25.0
    assert values["workflow_type_automated"] == 1
    assert values["workflow_type_manual"] == 1


def test_template_metrics(snapshot, now):
    values = _values(generate_metrics(snapshot, "template", now=now))
    assert values["total_templates"] == 2
    assert values["active_templates"] == 1
    assert values["total_template_usage"] == 5
    assert values["template_category_finance"] == 1


def test_performance_metrics(snapshot, now):
    values = _values(generate_metrics(snapshot, "performance", now=now))
    assert values["workflow_efficiency"] == 50.0
    assert values["optimization_adoption"] == 0.0
    assert values["time_savings"] == 0


def test_all_concatenates_every_type_in_order(snapshot, now):
    points = generate_metrics(snapshot, "all", now=now)
    seen = []
    for p in points:
        if p.type not in seen:
            seen.append(p.type)
    assert seen == [AnalyticsType.TASK, AnalyticsType.WORKFLOW, AnalyticsType.TEMPLATE, AnalyticsType.PERFORMANCE]


def test_empty_snapshot_yields_neutral_values(now):
    values = _values(generate_metrics({"userId": "user-1"}, "task", now=now))
    assert values["total_tasks"] == 0
    assert values["completion_rate"] == 0.0


class TestInvalidRequests:
    def test_start_after_end(self, snapshot, now):
        with pytest.raises(InvalidInputError):
            generate_metrics(snapshot, "task", start=now, end=now - timedelta(days=1), now=now)

    def test_unknown_type(self, snapshot, now):
        with pytest.raises(InvalidInputError):
            generate_metrics(snapshot, "revenue", now=now)

    def test_unknown_period(self, snapshot, now):
        with pytest.raises(InvalidInputError):
            generate_metrics(snapshot, "task", period="hourly", now=now)
