"""
recurspace/tests/test_analytics_dashboard.py

Tests for the dashboard read model.
"""

from datetime import timedelta

from recurspace.features.analytics.dashboard import build_dashboard


def _at(now, days_ago, hour):
    return (now - timedelta(days=days_ago)).replace(hour=hour).isoformat()


def _optimization(now, opt_id, status="applied", time=3):
    applied = status == "applied"
    return {
        "id": opt_id,
        "userId": "user-1",
        "createdAt": (now - timedelta(days=1)).isoformat(),
        "type": "task",
        "category": "efficiency",
        "title": "Batch",
        "description": "Batch similar tasks",
        "suggestion": "Group them",
        "estimatedSavings": {"time": time, "efficiency": 20},
        "status": status,
        "appliedAt": now.isoformat() if applied else None,
        "appliedBy": "user-1" if applied else None,
    }


def test_empty_snapshot_dashboard(now):
    report = build_dashboard({"userId": "user-1"}, now=now)

    assert report.timeframe == "month"
    assert report.window_start == now - timedelta(days=30)
    assert report.efficiency_metrics.time_saved == 0
    assert report.efficiency_metrics.efficiency_score == 0
    assert report.efficiency_metrics.revenue_per_hour == 125.0
    assert report.time_analysis.efficiency_vs_target == 0
    assert report.productivity_trends == ()
    assert report.insights == ()
    assert report.recommendations == ()
    assert report.peak_hour is None


def test_unknown_timeframe_falls_back_to_month(now):
    report = build_dashboard({"userId": "user-1"}, timeframe="decade", now=now)
    assert report.timeframe == "month"


def test_efficiency_metrics(now, task_factory):
    snapshot = {
        "userId": "user-1",
        "tasks": [
            task_factory("t1", status="completed", estimatedTime=60, actualTime=30),
            task_factory("t2", estimatedTime=60, actualTime=90),
        ],
        "templates": [
            {"id": "tpl-1", "userId": "user-1", "createdAt": now.isoformat(), "name": "Invoice", "totalUses": 4},
        ],
        "optimizations": [_optimization(now, "o1"), _optimization(now, "o2", status="pending")],
    }
    report = build_dashboard(snapshot, timeframe="week", now=now, revenue_per_hour=100)

    metrics = report.efficiency_metrics
    assert metrics.tasks_automated == 1
    assert metrics.time_saved == 4.0  # 3h applied + 4 uses x 15 min
    assert metrics.efficiency_score == 25  # (50 + 0) / 2
    assert metrics.revenue_per_hour == 100
    assert report.time_analysis.time_worked == 2.0
    assert report.time_analysis.time_projected == 2.0
    assert report.time_analysis.efficiency_vs_target == 100


def test_trends_group_by_day(now, task_factory):
    snapshot = {
        "userId": "user-1",
        "tasks": [
            task_factory("t1", days_ago=1, status="completed"),
            task_factory("t2", days_ago=1),
            task_factory("t3", days_ago=2, status="completed"),
            task_factory("t4", days_ago=20),
        ],
    }
    trends = build_dashboard(snapshot, now=now).productivity_trends

    assert [t.date for t in trends] == ["2024-03-13", "2024-03-14"]
    assert [t.day for t in trends] == ["Wed", "Thu"]
    assert [t.efficiency for t in trends] == [100, 50]
    assert [t.tasks for t in trends] == [1, 2]
    assert trends[1].time_projected == 1.0


def test_clients_and_insights(now, task_factory):
    tasks = [
        task_factory("a1", client="Acme", status="completed", createdAt=_at(now, 1, 10)),
        task_factory("a2", client="Acme", createdAt=_at(now, 2, 10)),
        task_factory("g1", client="Globex", status="completed", createdAt=_at(now, 3, 10)),
        task_factory("n1", createdAt=_at(now, 4, 15)),
    ]
    report = build_dashboard({"userId": "user-1", "tasks": tasks}, now=now)

    assert report.peak_hour == 10
    assert [(c.client, c.efficiency) for c in report.client_productivity] == [
        ("Globex", 100),
        ("Acme", 50),
        ("Unknown", 0),
    ]
    insights = {i.color: i for i in report.insights}
    assert "blue" in insights
    assert insights["green"].description.startswith("Globex")
    recommendations = {r.color: r for r in report.recommendations}
    assert "purple" in recommendations  # 3 of 4 tasks in the morning window
    assert recommendations["pink"].description == "Focus on acquiring more Acme-type clients"


def test_tagged_work_triggers_admin_and_automation_advice(now, task_factory):
    tasks = [task_factory(f"t{i}", tags=["Billing"]) for i in range(6)]
    report = build_dashboard({"userId": "user-1", "tasks": tasks}, now=now)

    assert [i.color for i in report.insights] == ["orange"]
    assert [r.color for r in report.recommendations] == ["indigo"]


def test_dashboard_is_deterministic(now, task_factory):
    snapshot = {"userId": "user-1", "tasks": [task_factory("t1", client="Acme")]}
    assert build_dashboard(snapshot, now=now).model_dump_json() == build_dashboard(snapshot, now=now).model_dump_json()
