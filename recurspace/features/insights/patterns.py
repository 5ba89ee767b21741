"""
recurspace/features/insights/patterns.py

Behaviour patterns detected across a user's tasks and workflows.
Patterns are lighter than recommendations: a label, how often it shows up,
what it costs and what to do about it.
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

from pydantic import Field

from recurspace.features.insights.aggregation import SnapshotStats, aggregate
from recurspace.features.insights.rules import HIGH_PRIORITY_LIMIT, WORKFLOW_EFFICIENCY_THRESHOLD
from recurspace.features.insights.summarizer import InsightSummary, summarize
from recurspace.models.base import CamelModel, ensure_utc
from recurspace.models.records import Snapshot


class Pattern(CamelModel):
    pattern: str
    frequency: str
    impact: str
    recommendation: str
    confidence: int = Field(ge=0, le=100)
    category: str


class PatternReport(CamelModel):
    patterns: Tuple[Pattern, ...]
    summary: InsightSummary


def late_deliveries(stats: SnapshotStats) -> Optional[Pattern]:
    count = len(stats.tasks.overdue)
    if count == 0:
        return None
    return Pattern(
        pattern="Late Deliveries",
        frequency=f"{count} out of {stats.tasks.total} tasks",
        impact="Client satisfaction risk",
        recommendation="Move deadlines a day earlier than the hand-off date",
        confidence=85,
        category="time_management",
    )


def peak_completion_day(stats: SnapshotStats) -> Optional[Pattern]:
    best = stats.tasks.most_productive_day
    if best is None:
        return None
    day, count = best
    return Pattern(
        pattern="Peak Completion Day",
        frequency=f"{count} tasks on {day}s",
        impact="Uneven workload across the week",
        recommendation=f"Block focused work and communication time on {day}s",
        confidence=78,
        category="communication",
    )


def priority_inflation(stats: SnapshotStats) -> Optional[Pattern]:
    count = stats.tasks.high_priority
    if count <= HIGH_PRIORITY_LIMIT:
        return None
    return Pattern(
        pattern="Priority Inflation",
        frequency=f"{count} high-priority tasks",
        impact="Follow-ups and invoices slip behind urgent work",
        recommendation="Automate reminder follow-ups",
        confidence=92,
        category="financial",
    )


def workflow_inefficiency(stats: SnapshotStats) -> Optional[Pattern]:
    if not stats.workflows:
        return None
    avg = stats.average_workflow_efficiency
    if avg >= WORKFLOW_EFFICIENCY_THRESHOLD:
        return None
    return Pattern(
        pattern="Workflow Inefficiency",
        frequency=f"{avg:.1f}% completion rate",
        impact="Reduced productivity",
        recommendation="Optimize workflow structure",
        confidence=88,
        category="workflow",
    )


PATTERN_RULES: Tuple[Callable[[SnapshotStats], Optional[Pattern]], ...] = (
    late_deliveries,
    peak_completion_day,
    priority_inflation,
    workflow_inefficiency,
)


def analyze_patterns(snapshot: Any, now: Optional[datetime] = None) -> PatternReport:
    """Run the pattern rules over a snapshot and attach the summary."""
    snap = Snapshot.from_raw(snapshot)
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    stats = aggregate(snap, now)

    patterns: List[Pattern] = []
    for rule in PATTERN_RULES:
        found = rule(stats)
        if found is not None:
            patterns.append(found)

    return PatternReport(patterns=tuple(patterns), summary=summarize(patterns))
