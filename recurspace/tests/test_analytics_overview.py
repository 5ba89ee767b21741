"""
recurspace/tests/test_analytics_overview.py

Tests for the dashboard overview read model and endpoint.
"""

from datetime import timedelta

from recurspace.features.analytics.overview import build_overview, calculate_efficiency_score
from recurspace.models.records import RecordKind, parse_record

HEADERS = {"X-User-Id": "user-1"}


def _optimization(now, opt_id, days_ago, time, status="applied"):
    applied = status == "applied"
    return {
        "id": opt_id,
        "userId": "user-1",
        "createdAt": (now - timedelta(days=days_ago + 1)).isoformat(),
        "type": "task",
        "category": "efficiency",
        "title": "Batch",
        "description": "Batch similar tasks",
        "suggestion": "Group them",
        "estimatedSavings": {"time": time, "efficiency": 20},
        "status": status,
        "appliedAt": (now - timedelta(days=days_ago)).isoformat() if applied else None,
        "appliedBy": "user-1" if applied else None,
    }


def _template(template_id, total_uses, status="active"):
    return {
        "id": template_id,
        "userId": "user-1",
        "createdAt": "2024-03-01T00:00:00Z",
        "name": f"Template {template_id}",
        "status": status,
        "totalUses": total_uses,
    }


def test_empty_overview(now):
    overview = build_overview({"userId": "user-1"}, now=now)

    assert overview.quick_stats.efficiency_score == 0
    assert overview.quick_stats.tasks.total == 0
    assert overview.ai_insights == ()
    assert overview.recent_activity == ()
    assert overview.upcoming_deadlines == ()


def test_efficiency_score_is_weighted(task_factory, workflow_factory):
    tasks = [
        parse_record(RecordKind.TASK, task_factory("t1", status="completed")),
        parse_record(RecordKind.TASK, task_factory("t2")),
    ]
    workflows = [parse_record(RecordKind.WORKFLOW, workflow_factory("wf-1", ["completed"], status="completed"))]
    templates = [parse_record(RecordKind.TEMPLATE, _template("tp-1", 0))]

    # 0.5 * 0.4 + 1.0 * 0.4 + 0.0 * 0.2
    assert calculate_efficiency_score(tasks, workflows, templates) == 60
    assert calculate_efficiency_score([], [], []) == 0


def test_quick_stats_counts(now, task_factory, workflow_factory):
    yesterday = (now - timedelta(days=1)).isoformat()
    snapshot = {
        "userId": "user-1",
        "tasks": [
            task_factory("t1", status="completed", dueDate=yesterday),
            task_factory("t2", dueDate=yesterday),
            task_factory("t3", status="in-progress"),
            task_factory("t4", status="cancelled", dueDate=yesterday),
        ],
        "workflows": [
            workflow_factory("wf-1", ["completed"], status="completed"),
            workflow_factory("wf-2", ["completed"]),
            workflow_factory("wf-3", ["pending"], status="paused"),
        ],
        "templates": [_template("tp-1", 4), _template("tp-2", 1, status="draft")],
    }
    stats = build_overview(snapshot, now=now).quick_stats

    assert stats.tasks.to_dict() == {"completed": 1, "pending": 1, "inProgress": 1, "overdue": 2, "total": 4}
    assert stats.workflows.to_dict() == {"active": 1, "completed": 1, "total": 3}
    assert stats.templates.to_dict() == {"active": 1, "totalUsage": 5, "total": 2}


def test_time_saved_windows(now):
    snapshot = {
        "userId": "user-1",
        "optimizations": [
            _optimization(now, "o1", days_ago=3, time=2),
            _optimization(now, "o2", days_ago=20, time=3),
            _optimization(now, "o3", days_ago=60, time=4),
            _optimization(now, "o4", days_ago=1, time=10, status="pending"),
        ],
    }
    saved = build_overview(snapshot, now=now).quick_stats.time_saved
    assert (saved.this_week, saved.this_month, saved.total) == (2, 5, 9)


def test_insight_rules_fire_in_order(now, task_factory, workflow_factory):
    yesterday = (now - timedelta(days=1)).isoformat()
    snapshot = {
        "userId": "user-1",
        "tasks": [task_factory("late", dueDate=yesterday)]
        + [task_factory(f"h{i}", priority="urgent") for i in range(6)],
        "workflows": [
            workflow_factory("wf-1", ["completed", "pending", "pending"]),
            workflow_factory("wf-2", ["pending"], status="paused"),
        ],
    }
    insights = build_overview(snapshot, now=now).ai_insights

    assert [i.title for i in insights] == [
        "Address Overdue Tasks",
        "Optimize Workflow Progress",
        "High Priority Task Management",
    ]
    assert insights[0].description == "You have 1 overdue tasks that need attention."
    assert insights[1].description == "1 workflows are below 50% completion."
    assert [i.priority for i in insights] == ["high", "medium", "medium"]


def test_insight_rules_abstain_at_thresholds(now, task_factory, workflow_factory):
    snapshot = {
        "userId": "user-1",
        "tasks": [task_factory(f"h{i}", priority="high") for i in range(5)],
        "workflows": [workflow_factory("wf-1", ["completed", "pending"])],
    }
    assert build_overview(snapshot, now=now).ai_insights == ()


def test_upcoming_deadlines(now, task_factory):
    def due(days):
        return (now + timedelta(days=days)).isoformat()

    snapshot = {
        "userId": "user-1",
        "tasks": [
            task_factory("later", dueDate=due(6), priority="low"),
            task_factory("soon", dueDate=due(1.5), priority="high"),
            task_factory("done", dueDate=due(2), status="completed"),
            task_factory("past", dueDate=due(-1)),
            task_factory("far", dueDate=due(8)),
        ],
    }
    deadlines = build_overview(snapshot, now=now).upcoming_deadlines

    assert [(d.id, d.days_left, d.priority) for d in deadlines] == [("soon", 2, "high"), ("later", 6, "low")]


def test_upcoming_deadlines_are_capped(now, task_factory):
    tasks = [task_factory(f"t{i}", dueDate=(now + timedelta(days=6 - i)).isoformat()) for i in range(6)]
    deadlines = build_overview({"userId": "user-1", "tasks": tasks}, now=now).upcoming_deadlines
    assert [d.id for d in deadlines] == ["t5", "t4", "t3", "t2", "t1"]


def test_recent_activity_merges_newest_first(now, task_factory, workflow_factory):
    snapshot = {
        "userId": "user-1",
        "tasks": [task_factory("t-old", days_ago=3), task_factory("t-new", days_ago=1)],
        "workflows": [workflow_factory("wf-1", ["pending"], days_ago=2)],
    }
    activity = build_overview(snapshot, now=now).recent_activity

    assert [(a.type, a.id) for a in activity] == [("task", "t-new"), ("workflow", "wf-1"), ("task", "t-old")]
    assert activity[1].title == "Workflow wf-1"


def test_overview_endpoint(client, now, task_factory):
    due = (now + timedelta(days=2)).isoformat()
    client.post("/api/records/task", json={"records": [task_factory("t1", dueDate=due)]}, headers=HEADERS)

    response = client.get("/api/dashboard/overview", params={"now": "2024-03-15T12:00:00Z"}, headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    dashboard = body["dashboard"]
    assert dashboard["quickStats"]["tasks"]["pending"] == 1
    assert dashboard["quickStats"]["efficiencyScore"] == 0
    assert dashboard["upcomingDeadlines"][0]["daysLeft"] == 2
    assert dashboard["aiInsights"] == []


def test_overview_requires_user(client):
    assert client.get("/api/dashboard/overview").status_code == 422
