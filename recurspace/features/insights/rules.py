"""
recurspace/features/insights/rules.py

Optimization rule catalogue.

Each rule reads the shared aggregates and either abstains (None) or emits
exactly one Recommendation. Rules never call each other and never mutate
their input; catalogue order only decides output order.

Thresholds and emitted constants:

| rule                   | trigger                          | impact | conf | time     | eff |
|------------------------|----------------------------------|--------|------|----------|-----|
| workflow_efficiency    | step completion < 70%            | medium | 85   | 2h       | 25  |
| long_workflow_steps    | >= 1 step estimated over 4h      | high   | 90   | 2h/step  | 30  |
| overdue_tasks          | >= 1 overdue task                | high   | 95   | 0.5h/task| 20  |
| high_priority_overload | > 5 high/urgent tasks            | medium | 80   | 1h       | 15  |
| productive_day         | >= 1 completion with a timestamp | medium | 85   | 1h       | 20  |
| task_automation        | always (general)                 | high   | 90   | 5h       | 40  |
| task_batching          | always (general)                 | medium | 85   | 2h       | 25  |
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from recurspace.features.insights.aggregation import LONG_STEP_HOURS, SnapshotStats, WorkflowStats
from recurspace.models.recommendation import (
    AutomationLevel,
    ContextSwitching,
    EfficiencyTarget,
    EstimatedSavings,
    HighPriorityMetrics,
    HighPriorityTarget,
    Impact,
    LongStepMetrics,
    OverdueMetrics,
    OverdueReductionTarget,
    ProductiveDayMetrics,
    ProductivityTarget,
    Recommendation,
    RecommendationCategory,
    RecommendationData,
    RecommendationType,
    RelatedItem,
    TimeReductionTarget,
    WorkflowEfficiencyMetrics,
)


class EvaluationType(str, Enum):
    """Which part of the catalogue an evaluation runs."""
    WORKFLOW = "workflow"
    TASK = "task"
    SCHEDULE = "schedule"
    GENERAL = "general"


WORKFLOW_EFFICIENCY_THRESHOLD = 70.0
EFFICIENCY_UPLIFT = 25.0
HIGH_PRIORITY_LIMIT = 5


@dataclass(frozen=True)
class Rule:
    name: str
    scope: EvaluationType
    evaluate: Callable[..., Optional[Recommendation]]
    per_workflow: bool = False

    def __call__(self, subject: Union[SnapshotStats, WorkflowStats]) -> Optional[Recommendation]:
        return self.evaluate(subject)


def _workflow_ref(stats: WorkflowStats) -> Tuple[RelatedItem, ...]:
    return (RelatedItem(type="workflow", id=stats.workflow_id),)


def workflow_efficiency(stats: WorkflowStats) -> Optional[Recommendation]:
    if stats.total_steps == 0:
        return None
    efficiency = stats.efficiency
    if efficiency >= WORKFLOW_EFFICIENCY_THRESHOLD:
        return None

    return Recommendation(
        rule="workflow_efficiency",
        type=RecommendationType.WORKFLOW,
        category=RecommendationCategory.EFFICIENCY,
        title=f"Improve {stats.name} Efficiency",
        description=(
            f"This workflow has a {efficiency:.1f}% completion rate. "
            "Consider optimizing the workflow structure."
        ),
        suggestion="Break down complex steps into smaller, more manageable tasks. Add checkpoints to track progress.",
        impact=Impact.MEDIUM,
        confidence=85,
        estimated_savings=EstimatedSavings(time=2, efficiency=EFFICIENCY_UPLIFT),
        data=RecommendationData(
            current_metrics=WorkflowEfficiencyMetrics(
                efficiency=efficiency,
                completed_steps=stats.completed_steps,
                total_steps=stats.total_steps,
            ),
            suggested_metrics=EfficiencyTarget(efficiency=efficiency + EFFICIENCY_UPLIFT),
        ),
        related_items=_workflow_ref(stats),
    )


def long_workflow_steps(stats: WorkflowStats) -> Optional[Recommendation]:
    if stats.long_steps < 1:
        return None

    return Recommendation(
        rule="long_workflow_steps",
        type=RecommendationType.WORKFLOW,
        category=RecommendationCategory.TIME_MANAGEMENT,
        title=f"Optimize Long Steps in {stats.name}",
        description=f"{stats.long_steps} steps are estimated to take more than {LONG_STEP_HOURS} hours.",
        suggestion="Consider breaking down long steps into smaller sub-tasks or parallelizing work.",
        impact=Impact.HIGH,
        confidence=90,
        estimated_savings=EstimatedSavings(time=stats.long_steps * 2, efficiency=30),
        data=RecommendationData(
            current_metrics=LongStepMetrics(long_steps=stats.long_steps),
            suggested_metrics=TimeReductionTarget(estimated_time_reduction="50%"),
        ),
        related_items=_workflow_ref(stats),
    )


def overdue_tasks(stats: SnapshotStats) -> Optional[Recommendation]:
    count = len(stats.tasks.overdue)
    if count < 1:
        return None

    return Recommendation(
        rule="overdue_tasks",
        type=RecommendationType.TASK,
        category=RecommendationCategory.TIME_MANAGEMENT,
        title="Address Overdue Tasks",
        description=f"You have {count} overdue tasks that need attention.",
        suggestion="Prioritize overdue tasks and consider adjusting your scheduling approach.",
        impact=Impact.HIGH,
        confidence=95,
        estimated_savings=EstimatedSavings(time=count * 0.5, efficiency=20),
        data=RecommendationData(
            current_metrics=OverdueMetrics(overdue_tasks=count),
            suggested_metrics=OverdueReductionTarget(overdue_reduction="80%"),
        ),
        related_items=tuple(RelatedItem(type="task", id=t.id) for t in stats.tasks.overdue),
    )


def high_priority_overload(stats: SnapshotStats) -> Optional[Recommendation]:
    count = stats.tasks.high_priority
    if count <= HIGH_PRIORITY_LIMIT:
        return None

    return Recommendation(
        rule="high_priority_overload",
        type=RecommendationType.TASK,
        category=RecommendationCategory.RESOURCE_ALLOCATION,
        title="High Priority Task Overload",
        description=f"You have {count} high-priority tasks, which may indicate poor prioritization.",
        suggestion="Review and re-prioritize tasks. Consider delegating or breaking down complex high-priority items.",
        impact=Impact.MEDIUM,
        confidence=80,
        estimated_savings=EstimatedSavings(time=1, efficiency=15),
        data=RecommendationData(
            current_metrics=HighPriorityMetrics(high_priority_tasks=count),
            suggested_metrics=HighPriorityTarget(optimal_high_priority="3-5 tasks"),
        ),
    )


def productive_day(stats: SnapshotStats) -> Optional[Recommendation]:
    best = stats.tasks.most_productive_day
    if best is None:
        return None
    day, completed = best

    return Recommendation(
        rule="productive_day",
        type=RecommendationType.SCHEDULE,
        category=RecommendationCategory.TIME_MANAGEMENT,
        title="Optimize Your Schedule",
        description=f"{day}s are your most productive day ({completed} tasks completed).",
        suggestion="Schedule important and complex tasks on your most productive days.",
        impact=Impact.MEDIUM,
        confidence=85,
        estimated_savings=EstimatedSavings(time=1, efficiency=20),
        data=RecommendationData(
            current_metrics=ProductiveDayMetrics(most_productive_day=day, tasks_completed=completed),
            suggested_metrics=ProductivityTarget(productivity_increase="25%"),
        ),
    )


def task_automation(stats: SnapshotStats) -> Optional[Recommendation]:
    return Recommendation(
        rule="task_automation",
        type=RecommendationType.AUTOMATION,
        category=RecommendationCategory.AUTOMATION,
        title="Enable Task Automation",
        description="Consider automating repetitive tasks to save time and reduce errors.",
        suggestion="Set up automated workflows for common tasks like email responses, data entry, and reporting.",
        impact=Impact.HIGH,
        confidence=90,
        estimated_savings=EstimatedSavings(time=5, efficiency=40),
        data=RecommendationData(
            current_metrics=AutomationLevel(automation_level="low"),
            suggested_metrics=AutomationLevel(automation_level="medium"),
        ),
    )


def task_batching(stats: SnapshotStats) -> Optional[Recommendation]:
    return Recommendation(
        rule="task_batching",
        type=RecommendationType.RESOURCE,
        category=RecommendationCategory.RESOURCE_ALLOCATION,
        title="Batch Similar Tasks",
        description="Group similar tasks together to reduce context switching and improve efficiency.",
        suggestion="Schedule blocks of time for similar activities like email, meetings, and focused work.",
        impact=Impact.MEDIUM,
        confidence=85,
        estimated_savings=EstimatedSavings(time=2, efficiency=25),
        data=RecommendationData(
            current_metrics=ContextSwitching(context_switching="high"),
            suggested_metrics=ContextSwitching(context_switching="reduced"),
        ),
    )


RULE_CATALOGUE: Tuple[Rule, ...] = (
    Rule("workflow_efficiency", EvaluationType.WORKFLOW, workflow_efficiency, per_workflow=True),
    Rule("long_workflow_steps", EvaluationType.WORKFLOW, long_workflow_steps, per_workflow=True),
    Rule("overdue_tasks", EvaluationType.TASK, overdue_tasks),
    Rule("high_priority_overload", EvaluationType.TASK, high_priority_overload),
    Rule("productive_day", EvaluationType.SCHEDULE, productive_day),
    Rule("task_automation", EvaluationType.GENERAL, task_automation),
    Rule("task_batching", EvaluationType.GENERAL, task_batching),
)


def rules_for(scope: EvaluationType) -> Tuple[Rule, ...]:
    return tuple(rule for rule in RULE_CATALOGUE if rule.scope == scope)
