"""
recurspace/features/suggestions/service.py

Heuristic suggestions for a list of recurring tasks:
time-optimization tips, batching advice and overdue patterns.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from recurspace.core.errors import InvalidInputError
from recurspace.features.insights.aggregation import argmax_by_count, count_by, group_by, weekday_name
from recurspace.features.suggestions.models import (
    FrequencyCompletion,
    RecurringTask,
    Suggestion,
    SuggestionInsights,
    SuggestionReport,
    SuggestionSummary,
    TaskAnalysis,
)
from recurspace.models.base import ensure_utc

LOW_COMPLETION_RATIO = 0.5
TASK_VOLUME_LIMIT = 10
BATCH_MIN_SIZE = 3
BATCH_SIZE = 3
SIMILAR_MIN_COUNT = 2
SIMILAR_KEYWORDS = ("email", "review", "check")

TIME_BLOCKS = {
    "daily": "morning",
    "weekly": "morning",
    "bi-weekly": "afternoon",
    "monthly": "afternoon",
    "quarterly": "afternoon",
    "yearly": "afternoon",
}


def parse_tasks(raw: Any) -> List[RecurringTask]:
    if not isinstance(raw, (list, tuple)):
        raise InvalidInputError("Tasks array is required")
    if not raw:
        raise InvalidInputError("At least one task is required for analysis")

    tasks = []
    for index, item in enumerate(raw):
        if isinstance(item, RecurringTask):
            tasks.append(item)
            continue
        if not isinstance(item, dict):
            raise InvalidInputError(f"tasks[{index}] must be an object")
        try:
            tasks.append(RecurringTask.model_validate(item))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            raise InvalidInputError(f"tasks[{index}].{field}: {first.get('msg')}") from exc
    return tasks


def _is_overdue(task: RecurringTask, now: datetime) -> bool:
    return not task.completed and task.due_date is not None and task.due_date < now


def analyze_tasks(tasks: Sequence[RecurringTask], now: datetime) -> TaskAnalysis:
    by_frequency = group_by(tasks, lambda t: t.frequency)
    return TaskAnalysis(
        total_tasks=len(tasks),
        completed_tasks=sum(1 for t in tasks if t.completed),
        overdue_tasks=sum(1 for t in tasks if _is_overdue(t, now)),
        frequency_breakdown={freq: len(items) for freq, items in by_frequency.items()},
        completion_rates={
            freq: FrequencyCompletion(
                completed=sum(1 for t in items if t.completed),
                total=len(items),
            )
            for freq, items in by_frequency.items()
        },
    )


def time_optimization_tips(analysis: TaskAnalysis) -> List[Suggestion]:
    tips = []

    if analysis.overdue_tasks > 0:
        tips.append(Suggestion(
            type="time_optimization",
            title="Address Overdue Tasks",
            description=(
                f"You have {analysis.overdue_tasks} overdue tasks. "
                "Consider dedicating a specific time block to catch up on these items."
            ),
            priority="high",
        ))

    low_completion = [
        freq for freq, rate in analysis.completion_rates.items()
        if rate.total > 0 and rate.ratio < LOW_COMPLETION_RATIO
    ]
    if low_completion:
        tips.append(Suggestion(
            type="time_optimization",
            title="Improve Completion Rates",
            description=(
                f"Tasks with {', '.join(low_completion)} frequency have low completion rates. "
                "Consider adjusting your schedule or breaking them into smaller chunks."
            ),
            priority="medium",
        ))

    if analysis.total_tasks > TASK_VOLUME_LIMIT:
        tips.append(Suggestion(
            type="time_optimization",
            title="Task Volume Management",
            description=(
                "You have a high number of recurring tasks. Consider consolidating similar tasks "
                "or reducing frequency for less critical items."
            ),
            priority="medium",
        ))

    return tips


def _is_similar(task: RecurringTask) -> bool:
    title = task.title.lower()
    return any(keyword in title for keyword in SIMILAR_KEYWORDS)


def batching_advice(tasks: Sequence[RecurringTask]) -> List[Suggestion]:
    advice = []

    for freq, group in group_by(tasks, lambda t: t.frequency).items():
        if len(group) >= BATCH_MIN_SIZE:
            advice.append(Suggestion(
                type="task_batching",
                title=f"Batch {freq} Tasks",
                description=(
                    f"You have {len(group)} {freq} tasks. Consider grouping them together "
                    "to reduce context switching and improve efficiency."
                ),
                suggested_batch=tuple(t.title for t in group[:BATCH_SIZE]),
                priority="medium",
            ))

    similar = [t for t in tasks if _is_similar(t)]
    if len(similar) >= SIMILAR_MIN_COUNT:
        advice.append(Suggestion(
            type="task_batching",
            title="Group Similar Tasks",
            description=f"Found {len(similar)} similar tasks. Batch them together for better workflow efficiency.",
            suggested_batch=tuple(t.title for t in similar),
            priority="low",
        ))

    return advice


def best_completion_day(tasks: Sequence[RecurringTask]) -> Optional[Tuple[str, int]]:
    completions = count_by(
        (t for t in tasks if t.completed),
        lambda t: weekday_name(t.due_date) if t.due_date else None,
    )
    return argmax_by_count(completions)


def overdue_patterns(tasks: Sequence[RecurringTask], now: datetime) -> List[Suggestion]:
    patterns = []

    overdue_by_frequency = count_by((t for t in tasks if _is_overdue(t, now)), lambda t: t.frequency)
    worst = argmax_by_count(overdue_by_frequency)
    if worst is not None:
        freq, count = worst
        patterns.append(Suggestion(
            type="overdue_patterns",
            title="Frequency-Specific Overdue Pattern",
            description=(
                f"Most overdue tasks are {freq} ({count} tasks). Consider adjusting your schedule "
                f"for {freq} tasks or reducing their frequency."
            ),
            priority="high",
            pattern=f"{freq}_overdue",
        ))

    best = best_completion_day(tasks)
    if best is not None:
        day, count = best
        patterns.append(Suggestion(
            type="overdue_patterns",
            title="Optimal Completion Day",
            description=(
                f"{day}s are your most productive day for completing tasks ({count} completed). "
                "Consider scheduling important tasks on this day."
            ),
            priority="medium",
            pattern="optimal_day",
        ))

    return patterns


def _time_blocks(frequencies: Sequence[str]) -> Dict[str, Tuple[str, ...]]:
    blocks: Dict[str, List[str]] = {}
    for freq in frequencies:
        blocks.setdefault(TIME_BLOCKS.get(freq, "evening"), []).append(freq)
    return {block: tuple(items) for block, items in blocks.items()}


def generate_suggestions(raw_tasks: Any, now: Optional[datetime] = None) -> SuggestionReport:
    """
    Analyze recurring tasks and build the suggestion report.

    Raises:
        InvalidInputError: tasks missing, empty or malformed
    """
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    tasks = parse_tasks(raw_tasks)
    analysis = analyze_tasks(tasks, now)

    recommendations = [
        *time_optimization_tips(analysis),
        *batching_advice(tasks),
        *overdue_patterns(tasks, now),
    ]

    best = best_completion_day(tasks)
    completion_rate = analysis.completed_tasks / analysis.total_tasks * 100

    return SuggestionReport(
        summary=SuggestionSummary(
            total_tasks=analysis.total_tasks,
            completion_rate=round(completion_rate, 1),
            overdue_count=analysis.overdue_tasks,
            frequency_breakdown=analysis.frequency_breakdown,
        ),
        recommendations=tuple(recommendations),
        insights=SuggestionInsights(
            most_productive_day=best[0] if best else None,
            recommended_batch_size=BATCH_SIZE,
            suggested_time_blocks=_time_blocks(list(analysis.frequency_breakdown)),
        ),
        analysis=analysis,
        generated_at=now,
    )
