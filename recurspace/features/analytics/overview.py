"""
recurspace/features/analytics/overview.py

Dashboard overview: quick stats, a small insight rule set, recent activity
and upcoming deadlines, computed from one snapshot at `now`.

Insight rules:

| insight                        | trigger                                  | priority |
|--------------------------------|------------------------------------------|----------|
| Address Overdue Tasks          | overdue tasks >= 1                       | high     |
| Optimize Workflow Progress     | active workflows with progress < 50      | medium   |
| High Priority Task Management  | high/urgent tasks > 5                    | medium   |
"""

import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from recurspace.features.analytics.models import (
    ActivityItem,
    DashboardOverview,
    OverviewInsight,
    QuickStats,
    TaskCounts,
    TemplateCounts,
    TimeSavedStats,
    UpcomingDeadline,
    WorkflowCounts,
)
from recurspace.features.insights.aggregation import HIGH_PRIORITIES, completion_ratio, overdue
from recurspace.features.insights.rules import HIGH_PRIORITY_LIMIT
from recurspace.models.base import ensure_utc
from recurspace.models.records import (
    OptimizationRecord,
    OptimizationStatus,
    Snapshot,
    Task,
    TaskStatus,
    Template,
    TemplateStatus,
    Workflow,
    WorkflowStatus,
)

TASK_WEIGHT = 0.4
WORKFLOW_WEIGHT = 0.4
TEMPLATE_WEIGHT = 0.2
LOW_PROGRESS_THRESHOLD = 50
DEADLINE_HORIZON_DAYS = 7
MAX_DEADLINES = 5
ACTIVITY_PER_KIND = 5
MAX_ACTIVITY = 10


def calculate_efficiency_score(
    tasks: Sequence[Task],
    workflows: Sequence[Workflow],
    templates: Sequence[Template],
) -> int:
    """Weighted completion score in [0, 100]; empty collections contribute 0."""
    task_rate = completion_ratio(tasks, lambda t: t.is_completed)
    workflow_rate = completion_ratio(workflows, lambda w: w.status == WorkflowStatus.COMPLETED)
    template_rate = completion_ratio(templates, lambda t: t.total_uses > 0)
    score = task_rate * TASK_WEIGHT + workflow_rate * WORKFLOW_WEIGHT + template_rate * TEMPLATE_WEIGHT
    return round(score * 100)


def time_saved(optimizations: Sequence[OptimizationRecord], now: datetime) -> TimeSavedStats:
    applied = [o for o in optimizations if o.status == OptimizationStatus.APPLIED]

    def since(days: int) -> float:
        start = now - timedelta(days=days)
        return sum(o.estimated_savings.time for o in applied if start <= o.applied_at <= now)

    return TimeSavedStats(
        this_week=since(7),
        this_month=since(30),
        total=sum(o.estimated_savings.time for o in applied),
    )


def quick_stats(snapshot: Snapshot, now: datetime) -> QuickStats:
    tasks, workflows, templates = snapshot.tasks, snapshot.workflows, snapshot.templates

    def tasks_in(status: TaskStatus) -> int:
        return sum(1 for t in tasks if t.status == status)

    def workflows_in(status: WorkflowStatus) -> int:
        return sum(1 for w in workflows if w.status == status)

    return QuickStats(
        time_saved=time_saved(snapshot.optimizations, now),
        tasks=TaskCounts(
            completed=tasks_in(TaskStatus.COMPLETED),
            pending=tasks_in(TaskStatus.PENDING),
            in_progress=tasks_in(TaskStatus.IN_PROGRESS),
            overdue=len(overdue(tasks, now)),
            total=len(tasks),
        ),
        workflows=WorkflowCounts(
            active=workflows_in(WorkflowStatus.ACTIVE),
            completed=workflows_in(WorkflowStatus.COMPLETED),
            total=len(workflows),
        ),
        templates=TemplateCounts(
            active=sum(1 for t in templates if t.status == TemplateStatus.ACTIVE),
            total_usage=sum(t.total_uses for t in templates),
            total=len(templates),
        ),
        efficiency_score=calculate_efficiency_score(tasks, workflows, templates),
    )


def overview_insights(snapshot: Snapshot, now: datetime) -> List[OverviewInsight]:
    insights = []

    late = overdue(snapshot.tasks, now)
    if late:
        insights.append(OverviewInsight(
            type="warning",
            title="Address Overdue Tasks",
            description=f"You have {len(late)} overdue tasks that need attention.",
            action="view_tasks",
            priority="high",
        ))

    lagging = [
        w for w in snapshot.workflows
        if w.status == WorkflowStatus.ACTIVE and w.progress < LOW_PROGRESS_THRESHOLD
    ]
    if lagging:
        insights.append(OverviewInsight(
            type="info",
            title="Optimize Workflow Progress",
            description=f"{len(lagging)} workflows are below {LOW_PROGRESS_THRESHOLD}% completion.",
            action="view_workflows",
            priority="medium",
        ))

    urgent = [t for t in snapshot.tasks if t.priority in HIGH_PRIORITIES]
    if len(urgent) > HIGH_PRIORITY_LIMIT:
        insights.append(OverviewInsight(
            type="suggestion",
            title="High Priority Task Management",
            description="You have many high-priority tasks. Consider delegating or breaking them down.",
            action="optimize_tasks",
            priority="medium",
        ))

    return insights


def recent_activity(snapshot: Snapshot) -> List[ActivityItem]:
    """Newest tasks and workflows, merged newest first; ties keep tasks ahead."""
    newest = lambda records: sorted(records, key=lambda r: r.created_at, reverse=True)[:ACTIVITY_PER_KIND]  # noqa: E731
    items = [
        ActivityItem(type="task", id=t.id, title=t.title, status=t.status.value, timestamp=t.created_at)
        for t in newest(snapshot.tasks)
    ] + [
        ActivityItem(type="workflow", id=w.id, title=w.name, status=w.status.value, timestamp=w.created_at)
        for w in newest(snapshot.workflows)
    ]
    items.sort(key=lambda item: item.timestamp, reverse=True)
    return items[:MAX_ACTIVITY]


def upcoming_deadlines(tasks: Sequence[Task], now: datetime) -> List[UpcomingDeadline]:
    """Unfinished tasks due within the next week, soonest first."""
    horizon = now + timedelta(days=DEADLINE_HORIZON_DAYS)
    due = [
        t for t in tasks
        if t.due_date is not None and now <= t.due_date <= horizon and not t.is_completed
    ]
    due.sort(key=lambda t: t.due_date)
    return [
        UpcomingDeadline(
            id=t.id,
            title=t.title,
            due_date=t.due_date,
            priority=t.priority.value,
            days_left=math.ceil((t.due_date - now) / timedelta(days=1)),
        )
        for t in due[:MAX_DEADLINES]
    ]


def build_overview(snapshot, now: Optional[datetime] = None) -> DashboardOverview:
    """Assemble the dashboard overview for one user's snapshot (model or raw mapping)."""
    snapshot = Snapshot.from_raw(snapshot)
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    return DashboardOverview(
        computed_at=now,
        quick_stats=quick_stats(snapshot, now),
        ai_insights=tuple(overview_insights(snapshot, now)),
        recent_activity=tuple(recent_activity(snapshot)),
        upcoming_deadlines=tuple(upcoming_deadlines(snapshot.tasks, now)),
    )
