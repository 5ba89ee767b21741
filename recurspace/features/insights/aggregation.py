"""
recurspace/features/insights/aggregation.py

Pure aggregation helpers shared by every rule set.
Empty inputs and zero denominators produce neutral values, never errors.

Grouping keeps first-encounter key order, and argmax_by_count resolves
ties in favour of the key seen first.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from recurspace.models.records import Priority, Snapshot, StepStatus, Task, TaskStatus, Workflow

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DONE_STATUSES = frozenset({TaskStatus.COMPLETED})
HIGH_PRIORITIES = frozenset({Priority.HIGH, Priority.URGENT})
LONG_STEP_HOURS = 4


def completion_ratio(records: Sequence[T], is_done: Callable[[T], bool]) -> float:
    """Done / total in [0, 1]; 0 for an empty collection."""
    total = len(records)
    if total == 0:
        return 0.0
    done = sum(1 for record in records if is_done(record))
    return done / total


def overdue(tasks: Iterable[Task], now: datetime) -> List[Task]:
    """Tasks due strictly before `now` that are not done."""
    return [
        task for task in tasks
        if task.due_date is not None
        and task.due_date < now
        and task.status not in DONE_STATUSES
    ]


def group_by(records: Iterable[T], key_fn: Callable[[T], Optional[K]]) -> Dict[K, List[T]]:
    """Group records by key; records whose key is None are skipped."""
    groups: Dict[K, List[T]] = {}
    for record in records:
        key = key_fn(record)
        if key is None:
            continue
        groups.setdefault(key, []).append(record)
    return groups


def count_by(records: Iterable[T], key_fn: Callable[[T], Optional[K]]) -> Dict[K, int]:
    """Like group_by, but only the group sizes."""
    counts: Dict[K, int] = {}
    for record in records:
        key = key_fn(record)
        if key is None:
            continue
        counts[key] = counts.get(key, 0) + 1
    return counts


def argmax_by_count(grouping: Mapping[K, Union[int, Sequence]]) -> Optional[Tuple[K, int]]:
    """(key, count) of the largest group, or None when there are no groups."""
    best: Optional[Tuple[K, int]] = None
    for key, value in grouping.items():
        count = value if isinstance(value, int) else len(value)
        # strict comparison keeps the first-encountered key on ties
        if best is None or count > best[1]:
            best = (key, count)
    return best


def average(values: Iterable[float]) -> float:
    """Arithmetic mean; 0 for no values."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def percentage(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return part / whole * 100


def weekday_name(ts: datetime) -> str:
    return WEEKDAYS[ts.weekday()]


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    overdue: Tuple[Task, ...]
    high_priority: int
    completions_by_weekday: Dict[str, int] = field(default_factory=dict)
    priority_distribution: Dict[str, int] = field(default_factory=dict)
    client_distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def completion_rate(self) -> float:
        return percentage(self.completed, self.total)

    @property
    def most_productive_day(self) -> Optional[Tuple[str, int]]:
        return argmax_by_count(self.completions_by_weekday)


@dataclass(frozen=True)
class WorkflowStats:
    workflow_id: str
    name: str
    completed_steps: int
    total_steps: int
    long_steps: int

    @property
    def efficiency(self) -> float:
        """Step completion percentage; 0 when the workflow has no steps."""
        return percentage(self.completed_steps, self.total_steps)


@dataclass(frozen=True)
class SnapshotStats:
    user_id: str
    now: datetime
    tasks: TaskStats
    workflows: Tuple[WorkflowStats, ...]

    @property
    def average_workflow_efficiency(self) -> float:
        return average(w.efficiency for w in self.workflows)


def summarize_tasks(tasks: Sequence[Task], now: datetime) -> TaskStats:
    completed = [t for t in tasks if t.is_completed]
    return TaskStats(
        total=len(tasks),
        completed=len(completed),
        overdue=tuple(overdue(tasks, now)),
        high_priority=sum(1 for t in tasks if t.priority in HIGH_PRIORITIES),
        completions_by_weekday=count_by(
            completed,
            lambda t: weekday_name(t.completed_at) if t.completed_at else None,
        ),
        priority_distribution=count_by(tasks, lambda t: t.priority.value),
        client_distribution=count_by(tasks, lambda t: t.client or None),
    )


def summarize_workflow(workflow: Workflow) -> WorkflowStats:
    return WorkflowStats(
        workflow_id=workflow.id,
        name=workflow.name,
        completed_steps=sum(1 for s in workflow.steps if s.status == StepStatus.COMPLETED),
        total_steps=len(workflow.steps),
        long_steps=sum(
            1 for s in workflow.steps
            if s.estimated_time is not None and s.estimated_time > LONG_STEP_HOURS
        ),
    )


def aggregate(snapshot: Snapshot, now: datetime) -> SnapshotStats:
    """Scan the snapshot once and build the stats every rule reads."""
    return SnapshotStats(
        user_id=snapshot.user_id,
        now=now,
        tasks=summarize_tasks(snapshot.tasks, now),
        workflows=tuple(summarize_workflow(w) for w in snapshot.workflows),
    )
