"""
Recommendation models emitted by the insight rule engine.

Each rule documents its own metric shapes below instead of sharing a
free-form dict, so every rule's output can be asserted field by field.
"""

from enum import Enum
from typing import Tuple

from pydantic import Field, SerializeAsAny

from recurspace.models.base import CamelModel


class RecommendationType(str, Enum):
    WORKFLOW = "workflow"
    TASK = "task"
    SCHEDULE = "schedule"
    RESOURCE = "resource"
    AUTOMATION = "automation"


class RecommendationCategory(str, Enum):
    EFFICIENCY = "efficiency"
    TIME_MANAGEMENT = "time_management"
    RESOURCE_ALLOCATION = "resource_allocation"
    AUTOMATION = "automation"
    COLLABORATION = "collaboration"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


IMPACT_RANK = {
    Impact.LOW: 0,
    Impact.MEDIUM: 1,
    Impact.HIGH: 2,
    Impact.CRITICAL: 3,
}


class RuleMetrics(CamelModel):
    """Base for per-rule metric snapshots."""


# Workflow efficiency
class WorkflowEfficiencyMetrics(RuleMetrics):
    efficiency: float
    completed_steps: int
    total_steps: int


class EfficiencyTarget(RuleMetrics):
    efficiency: float


# Long workflow steps
class LongStepMetrics(RuleMetrics):
    long_steps: int


class TimeReductionTarget(RuleMetrics):
    estimated_time_reduction: str


# Overdue tasks
class OverdueMetrics(RuleMetrics):
    overdue_tasks: int


class OverdueReductionTarget(RuleMetrics):
    overdue_reduction: str


# High-priority overload
class HighPriorityMetrics(RuleMetrics):
    high_priority_tasks: int


class HighPriorityTarget(RuleMetrics):
    optimal_high_priority: str


# Productive-day schedule hint
class ProductiveDayMetrics(RuleMetrics):
    most_productive_day: str
    tasks_completed: int


class ProductivityTarget(RuleMetrics):
    productivity_increase: str


# General suggestions
class AutomationLevel(RuleMetrics):
    automation_level: str


class ContextSwitching(RuleMetrics):
    context_switching: str


class RecommendationData(CamelModel):
    current_metrics: SerializeAsAny[RuleMetrics]
    suggested_metrics: SerializeAsAny[RuleMetrics]


class EstimatedSavings(CamelModel):
    time: float = Field(ge=0, description="Hours saved")
    efficiency: float = Field(description="Efficiency gain in percentage points")


class RelatedItem(CamelModel):
    type: str = Field(description="task | workflow | template")
    id: str


class Recommendation(CamelModel):
    """A single rule's output. Pure data, safe to serialize or persist."""

    type: RecommendationType
    category: RecommendationCategory
    title: str = Field(max_length=200)
    description: str = Field(max_length=1000)
    suggestion: str
    impact: Impact
    confidence: int = Field(ge=0, le=100)
    estimated_savings: EstimatedSavings
    data: RecommendationData
    related_items: Tuple[RelatedItem, ...] = ()
    rule: str = Field(default="", exclude=True, description="Catalogue name of the emitting rule")
