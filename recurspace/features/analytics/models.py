"""
recurspace/features/analytics/models.py

Analytics read models: metric points, the dashboard report and the
overview (quick stats, insights, activity, deadlines).
All frozen; computed on demand from a snapshot.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import Field

from recurspace.models.base import CamelModel


class AnalyticsType(str, Enum):
    TASK = "task"
    WORKFLOW = "workflow"
    TEMPLATE = "template"
    PERFORMANCE = "performance"
    ALL = "all"


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class MetricUnit(str, Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"
    HOURS = "hours"


class MetricMetadata(CamelModel):
    category: str
    subcategory: str


class MetricPoint(CamelModel):
    type: AnalyticsType
    metric: str
    value: float
    unit: MetricUnit
    period: Period
    date: datetime
    metadata: MetricMetadata


class EfficiencyMetrics(CamelModel):
    time_saved: float = Field(ge=0, description="Hours")
    tasks_automated: int = Field(ge=0)
    efficiency_score: int = Field(ge=0, le=100)
    revenue_per_hour: float


class TrendPoint(CamelModel):
    date: str = Field(description="YYYY-MM-DD (UTC)")
    day: str = Field(description="Short weekday name")
    efficiency: int = Field(ge=0, le=100)
    tasks: int = Field(ge=0)
    time_actual: float = Field(ge=0, description="Hours")
    time_projected: float = Field(ge=0, description="Hours")


class TimeAnalysis(CamelModel):
    time_worked: float
    time_projected: float
    efficiency_vs_target: int


class ClientProductivity(CamelModel):
    client: str
    tasks: int
    time_spent: float = Field(description="Hours")
    efficiency: int = Field(ge=0, le=100)


class DashboardInsight(CamelModel):
    type: str
    title: str
    description: str
    color: str


class DashboardReport(CamelModel):
    timeframe: str
    window_start: datetime
    computed_at: datetime
    efficiency_metrics: EfficiencyMetrics
    productivity_trends: Tuple[TrendPoint, ...]
    time_analysis: TimeAnalysis
    client_productivity: Tuple[ClientProductivity, ...]
    insights: Tuple[DashboardInsight, ...]
    recommendations: Tuple[DashboardInsight, ...]
    peak_hour: Optional[int] = None


class TimeSavedStats(CamelModel):
    this_week: float = Field(ge=0, description="Hours saved by optimizations applied in the last 7 days")
    this_month: float = Field(ge=0, description="Hours, last 30 days")
    total: float = Field(ge=0)


class TaskCounts(CamelModel):
    completed: int
    pending: int
    in_progress: int
    overdue: int
    total: int


class WorkflowCounts(CamelModel):
    active: int
    completed: int
    total: int


class TemplateCounts(CamelModel):
    active: int
    total_usage: int
    total: int


class QuickStats(CamelModel):
    time_saved: TimeSavedStats
    tasks: TaskCounts
    workflows: WorkflowCounts
    templates: TemplateCounts
    efficiency_score: int = Field(ge=0, le=100)


class OverviewInsight(CamelModel):
    type: str = Field(description="warning | info | suggestion")
    title: str
    description: str
    action: str
    priority: str


class ActivityItem(CamelModel):
    type: str = Field(description="task | workflow")
    id: str
    title: str
    status: str
    timestamp: datetime


class UpcomingDeadline(CamelModel):
    id: str
    title: str
    due_date: datetime
    priority: str
    days_left: int


class DashboardOverview(CamelModel):
    computed_at: datetime
    quick_stats: QuickStats
    ai_insights: Tuple[OverviewInsight, ...]
    recent_activity: Tuple[ActivityItem, ...]
    upcoming_deadlines: Tuple[UpcomingDeadline, ...]
