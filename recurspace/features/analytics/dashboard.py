"""
recurspace/features/analytics/dashboard.py

Dashboard read model: efficiency figures, a short productivity trend,
client breakdown, plus rule-based insights and recommendations.

All functions are pure; `now` is injected for deterministic output.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from recurspace.features.analytics.models import (
    ClientProductivity,
    DashboardInsight,
    DashboardReport,
    EfficiencyMetrics,
    TimeAnalysis,
    TrendPoint,
)
from recurspace.features.insights.aggregation import (
    argmax_by_count,
    count_by,
    group_by,
    percentage,
)
from recurspace.models.base import ensure_utc
from recurspace.models.records import OptimizationStatus, Snapshot, Task, WorkflowStatus

TIMEFRAME_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}
DEFAULT_TIMEFRAME = "month"

PEAK_WINDOW = (9, 11)
MORNING_SHARE_THRESHOLD = 0.4
ADMIN_TAGS = frozenset({"admin", "administrative", "billing", "invoicing"})
ADMIN_TASK_LIMIT = 5
REPETITIVE_TAGS = frozenset({"repetitive", "routine", "billing", "follow-up"})
REPETITIVE_TASK_LIMIT = 3
TOP_CLIENTS = 4
PROJECTED_HOURS_PER_TASK = 0.5
UNKNOWN_CLIENT = "Unknown"


def _has_tag(task: Task, tags: frozenset) -> bool:
    return any(tag.lower() in tags for tag in task.tags)


def _hours(minutes: float) -> float:
    return minutes / 60


def _round1(value: float) -> float:
    return round(value * 10) / 10


def _in_peak_window(hour: int) -> bool:
    return PEAK_WINDOW[0] <= hour <= PEAK_WINDOW[1]


def peak_hour(tasks: Sequence[Task]) -> Optional[int]:
    """Hour of day (UTC) in which most tasks were created."""
    best = argmax_by_count(count_by(tasks, lambda t: t.created_at.hour))
    return best[0] if best else None


def client_efficiencies(tasks: Sequence[Task]) -> List[Tuple[str, float]]:
    groups = group_by(tasks, lambda t: t.client or None)
    return [
        (client, percentage(sum(1 for t in items if t.is_completed), len(items)))
        for client, items in groups.items()
    ]


def productivity_trends(tasks: Sequence[Task], now: datetime, days: int = 7) -> Tuple[TrendPoint, ...]:
    since = now - timedelta(days=days)
    recent = [t for t in tasks if since <= t.created_at <= now]
    by_date = group_by(recent, lambda t: t.created_at.date().isoformat())

    points = []
    for date in sorted(by_date):
        items = by_date[date]
        completed = sum(1 for t in items if t.is_completed)
        actual_minutes = sum(t.actual_time or 0 for t in items)
        points.append(TrendPoint(
            date=date,
            day=items[0].created_at.strftime("%a"),
            efficiency=round(percentage(completed, len(items))),
            tasks=len(items),
            time_actual=_round1(_hours(actual_minutes)),
            time_projected=_round1(len(items) * PROJECTED_HOURS_PER_TASK),
        ))
    return tuple(points)


def client_productivity(tasks: Sequence[Task]) -> Tuple[ClientProductivity, ...]:
    groups = group_by(tasks, lambda t: t.client or UNKNOWN_CLIENT)
    rows = []
    for client, items in groups.items():
        completed = sum(1 for t in items if t.is_completed)
        rows.append(ClientProductivity(
            client=client,
            tasks=len(items),
            time_spent=_round1(_hours(sum(t.actual_time or 0 for t in items))),
            efficiency=round(percentage(completed, len(items))),
        ))
    rows.sort(key=lambda row: row.efficiency, reverse=True)
    return tuple(rows[:TOP_CLIENTS])


def dashboard_insights(tasks: Sequence[Task]) -> List[DashboardInsight]:
    insights = []

    hour = peak_hour(tasks)
    if hour is not None and _in_peak_window(hour):
        insights.append(DashboardInsight(
            type="productivity",
            title="Peak Productivity Window",
            description=f"Most of your work starts between {PEAK_WINDOW[0]} and {PEAK_WINDOW[1]} AM (peak at {hour}:00)",
            color="blue",
        ))

    efficiencies = client_efficiencies(tasks)
    if efficiencies:
        leader = efficiencies[0]
        for candidate in efficiencies[1:]:
            if candidate[1] > leader[1]:
                leader = candidate
        insights.append(DashboardInsight(
            type="client",
            title="Client Efficiency Leader",
            description=f"{leader[0]} projects show highest efficiency rates",
            color="green",
        ))

    admin = [t for t in tasks if _has_tag(t, ADMIN_TAGS)]
    if len(admin) > ADMIN_TASK_LIMIT:
        insights.append(DashboardInsight(
            type="optimization",
            title="Time Optimization Opportunity",
            description=f"{len(admin)} admin tasks could be batched into a single weekly block",
            color="orange",
        ))

    return insights


def dashboard_recommendations(tasks: Sequence[Task]) -> List[DashboardInsight]:
    recommendations = []

    if tasks:
        morning = sum(1 for t in tasks if _in_peak_window(t.created_at.hour))
        if morning / len(tasks) > MORNING_SHARE_THRESHOLD:
            recommendations.append(DashboardInsight(
                type="schedule",
                title="Schedule Optimization",
                description=f"Block time for deep work between {PEAK_WINDOW[0]} and {PEAK_WINDOW[1]} AM",
                color="purple",
            ))

    repetitive = [t for t in tasks if _has_tag(t, REPETITIVE_TAGS)]
    if len(repetitive) > REPETITIVE_TASK_LIMIT:
        recommendations.append(DashboardInsight(
            type="automation",
            title="Task Automation",
            description=f"Automate {len(repetitive)} repetitive tasks such as invoice follow-ups",
            color="indigo",
        ))

    top_client = argmax_by_count(count_by(tasks, lambda t: t.client or None))
    if top_client is not None:
        recommendations.append(DashboardInsight(
            type="strategy",
            title="Client Strategy",
            description=f"Focus on acquiring more {top_client[0]}-type clients",
            color="pink",
        ))

    return recommendations


def build_dashboard(
    snapshot,
    timeframe: str = DEFAULT_TIMEFRAME,
    now: Optional[datetime] = None,
    revenue_per_hour: float = 125.0,
    template_default_minutes: int = 15,
    trend_days: int = 7,
) -> DashboardReport:
    """
    Build the dashboard for one user's snapshot.

    Unknown timeframes fall back to a month.
    """
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    snap = Snapshot.from_raw(snapshot)
    days = TIMEFRAME_DAYS.get(timeframe, TIMEFRAME_DAYS[DEFAULT_TIMEFRAME])
    start = now - timedelta(days=days)

    tasks = [t for t in snap.tasks if t.created_at >= start]
    workflows = [w for w in snap.workflows if w.created_at >= start]
    templates = [t for t in snap.templates if t.created_at >= start]
    optimizations = [o for o in snap.optimizations if o.created_at >= start]

    applied = [o for o in optimizations if o.status == OptimizationStatus.APPLIED]
    template_minutes = sum(
        t.total_uses * (t.estimated_time if t.estimated_time is not None else template_default_minutes)
        for t in templates
    )
    time_saved = sum(o.estimated_savings.time for o in applied) + _hours(template_minutes)

    task_efficiency = percentage(sum(1 for t in tasks if t.is_completed), len(tasks))
    workflow_efficiency = percentage(
        sum(1 for w in workflows if w.status == WorkflowStatus.COMPLETED), len(workflows)
    )
    overall = (task_efficiency + workflow_efficiency) / 2

    workflow_hours = sum(w.total_time or 0 for w in workflows)
    time_worked = _hours(sum(t.actual_time or 0 for t in tasks)) + workflow_hours
    time_projected = _hours(sum(t.estimated_time or 0 for t in tasks)) + workflow_hours

    return DashboardReport(
        timeframe=timeframe if timeframe in TIMEFRAME_DAYS else DEFAULT_TIMEFRAME,
        window_start=start,
        computed_at=now,
        efficiency_metrics=EfficiencyMetrics(
            time_saved=_round1(time_saved),
            tasks_automated=len(applied),
            efficiency_score=round(overall),
            revenue_per_hour=revenue_per_hour,
        ),
        productivity_trends=productivity_trends(snap.tasks, now, trend_days),
        time_analysis=TimeAnalysis(
            time_worked=_round1(time_worked),
            time_projected=_round1(time_projected),
            efficiency_vs_target=round(percentage_of(time_worked, time_projected)),
        ),
        client_productivity=client_productivity(tasks),
        insights=tuple(dashboard_insights(tasks)),
        recommendations=tuple(dashboard_recommendations(tasks)),
        peak_hour=peak_hour(tasks),
    )


def percentage_of(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return part / whole * 100
