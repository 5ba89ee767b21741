"""
recurspace/features/analytics/metrics.py

Pure metric generators: (snapshot, window, now) -> list of MetricPoint.
Same snapshot + same window + same now => identical output.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from recurspace.core.errors import InvalidInputError
from recurspace.features.analytics.models import (
    AnalyticsType,
    MetricMetadata,
    MetricPoint,
    MetricUnit,
    Period,
)
from recurspace.features.insights.aggregation import average, count_by, overdue, percentage
from recurspace.models.records import (
    OptimizationStatus,
    Snapshot,
    Task,
    Template,
    TemplateStatus,
    Workflow,
    WorkflowStatus,
)

R = TypeVar("R")

DEFAULT_WINDOW_DAYS = 30


class _Emitter:
    """Collects metric points that share type, period and date."""

    def __init__(self, kind: AnalyticsType, period: Period, now: datetime, category: str = "productivity"):
        self.kind = kind
        self.period = period
        self.now = now
        self.category = category
        self.points: List[MetricPoint] = []

    def emit(self, metric: str, value: float, unit: MetricUnit, subcategory: str) -> None:
        self.points.append(MetricPoint(
            type=self.kind,
            metric=metric,
            value=value,
            unit=unit,
            period=self.period,
            date=self.now,
            metadata=MetricMetadata(category=self.category, subcategory=subcategory),
        ))

    def breakdown(self, prefix: str, counts: Dict[str, int], subcategory: str) -> None:
        for key, count in counts.items():
            self.emit(f"{prefix}{key}", count, MetricUnit.COUNT, subcategory)


def in_window(records: Sequence[R], start: datetime, end: datetime) -> List[R]:
    return [r for r in records if start <= r.created_at <= end]


def task_metrics(tasks: Sequence[Task], period: Period, now: datetime) -> List[MetricPoint]:
    out = _Emitter(AnalyticsType.TASK, period, now)
    completed = [t for t in tasks if t.is_completed]

    out.emit("total_tasks", len(tasks), MetricUnit.COUNT, "task_management")
    out.emit("completed_tasks", len(completed), MetricUnit.COUNT, "task_completion")
    out.emit("completion_rate", percentage(len(completed), len(tasks)), MetricUnit.PERCENTAGE, "efficiency")
    out.breakdown("priority_", count_by(tasks, lambda t: t.priority.value), "priority_distribution")
    out.emit("overdue_tasks", len(overdue(tasks, now)), MetricUnit.COUNT, "time_management")
    return out.points


def workflow_metrics(workflows: Sequence[Workflow], period: Period, now: datetime) -> List[MetricPoint]:
    out = _Emitter(AnalyticsType.WORKFLOW, period, now)
    completed = [w for w in workflows if w.status == WorkflowStatus.COMPLETED]

    out.emit("total_workflows", len(workflows), MetricUnit.COUNT, "workflow_management")
    out.emit("completed_workflows", len(completed), MetricUnit.COUNT, "workflow_completion")
    out.emit(
        "workflow_completion_rate",
        percentage(len(completed), len(workflows)),
        MetricUnit.PERCENTAGE,
        "efficiency",
    )
    out.emit("average_progress", average(w.progress for w in workflows), MetricUnit.PERCENTAGE, "progress_tracking")
    out.breakdown("workflow_type_", count_by(workflows, lambda w: w.type.value), "workflow_types")
    return out.points


def template_metrics(templates: Sequence[Template], period: Period, now: datetime) -> List[MetricPoint]:
    out = _Emitter(AnalyticsType.TEMPLATE, period, now)

    out.emit("total_templates", len(templates), MetricUnit.COUNT, "template_management")
    out.emit(
        "active_templates",
        sum(1 for t in templates if t.status == TemplateStatus.ACTIVE),
        MetricUnit.COUNT,
        "template_usage",
    )
    out.emit("total_template_usage", sum(t.total_uses for t in templates), MetricUnit.COUNT, "template_efficiency")
    out.breakdown("template_category_", count_by(templates, lambda t: t.category), "template_categories")
    return out.points


def performance_metrics(snapshot: Snapshot, period: Period, now: datetime) -> List[MetricPoint]:
    out = _Emitter(AnalyticsType.PERFORMANCE, period, now, category="performance")
    tasks, workflows, optimizations = snapshot.tasks, snapshot.workflows, snapshot.optimizations

    task_efficiency = percentage(sum(1 for t in tasks if t.is_completed), len(tasks))
    workflow_efficiency = percentage(
        sum(1 for w in workflows if w.status == WorkflowStatus.COMPLETED), len(workflows)
    )
    applied = [o for o in optimizations if o.status == OptimizationStatus.APPLIED]

    out.emit("overall_efficiency", (task_efficiency + workflow_efficiency) / 2, MetricUnit.PERCENTAGE, "efficiency_score")
    out.emit("task_efficiency", task_efficiency, MetricUnit.PERCENTAGE, "task_performance")
    out.emit("workflow_efficiency", workflow_efficiency, MetricUnit.PERCENTAGE, "workflow_performance")
    out.emit(
        "optimization_adoption",
        percentage(len(applied), len(optimizations)),
        MetricUnit.PERCENTAGE,
        "ai_adoption",
    )
    out.emit("time_savings", sum(o.estimated_savings.time for o in applied), MetricUnit.HOURS, "time_optimization")
    return out.points


def _window(snapshot: Snapshot, start: datetime, end: datetime) -> Snapshot:
    return snapshot.model_copy(update={
        "tasks": tuple(in_window(snapshot.tasks, start, end)),
        "workflows": tuple(in_window(snapshot.workflows, start, end)),
        "templates": tuple(in_window(snapshot.templates, start, end)),
        "optimizations": tuple(in_window(snapshot.optimizations, start, end)),
    })


_GENERATORS: Dict[AnalyticsType, Callable[[Snapshot, Period, datetime], List[MetricPoint]]] = {
    AnalyticsType.TASK: lambda s, p, n: task_metrics(s.tasks, p, n),
    AnalyticsType.WORKFLOW: lambda s, p, n: workflow_metrics(s.workflows, p, n),
    AnalyticsType.TEMPLATE: lambda s, p, n: template_metrics(s.templates, p, n),
    AnalyticsType.PERFORMANCE: performance_metrics,
}


def generate_metrics(
    snapshot,
    kind: AnalyticsType,
    period: Period = Period.DAILY,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> List[MetricPoint]:
    """
    Generate metric points for one analytics type (or all of them).

    Records are windowed on created_at within [start, end]; the window
    defaults to the `window_days` days ending at `now`.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    end = end or now
    start = start or (end - timedelta(days=window_days))
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if start > end:
        raise InvalidInputError("startDate must not be after endDate")

    try:
        kind = AnalyticsType(kind)
        period = Period(period)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    windowed = _window(Snapshot.from_raw(snapshot), start, end)

    kinds = list(_GENERATORS) if kind == AnalyticsType.ALL else [kind]
    points: List[MetricPoint] = []
    for k in kinds:
        points.extend(_GENERATORS[k](windowed, period, now))
    return points
