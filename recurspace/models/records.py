"""
Snapshot record models: tasks, workflows, templates, optimization records.

All records are frozen and owned by exactly one user. The insight engine
only ever reads them; stores hand out fresh copies per call.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import Field, computed_field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from recurspace.core.errors import InvalidInputError
from recurspace.models.base import CamelModel, ensure_utc
from recurspace.models.recommendation import (
    EstimatedSavings,
    Impact,
    Recommendation,
    RecommendationCategory,
    RecommendationType,
    RelatedItem,
)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    OPTIMIZING = "optimizing"
    NEEDS_ATTENTION = "needs_attention"


class WorkflowType(str, Enum):
    MANUAL = "manual"
    AUTOMATED = "automated"
    SCHEDULED = "scheduled"
    TRIGGERED = "triggered"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"
    DEPRECATED = "deprecated"


class OptimizationStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"


class RecordKind(str, Enum):
    TASK = "task"
    WORKFLOW = "workflow"
    TEMPLATE = "template"
    OPTIMIZATION = "optimization"


class _Record(CamelModel):
    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Task(_Record):
    title: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
    client: Optional[str] = None
    estimated_time: Optional[float] = Field(default=None, ge=0, description="Minutes")
    actual_time: Optional[float] = Field(default=None, ge=0, description="Minutes")

    @field_validator("due_date", "completed_at")
    @classmethod
    def _timestamps_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class WorkflowStep(CamelModel):
    name: str
    status: StepStatus = StepStatus.PENDING
    order: int = 0
    estimated_time: Optional[float] = Field(default=None, ge=0, description="Hours")


class Workflow(_Record):
    name: str = Field(max_length=100)
    status: WorkflowStatus = WorkflowStatus.ACTIVE
    type: WorkflowType = WorkflowType.MANUAL
    steps: Tuple[WorkflowStep, ...] = ()
    total_time: Optional[float] = Field(default=None, ge=0, description="Hours")

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def completed_steps(self) -> int:
        return sum(1 for step in self.steps if step.status == StepStatus.COMPLETED)

    @computed_field
    @property
    def progress(self) -> float:
        """Completed steps as a percentage, always derived from step statuses."""
        if not self.steps:
            return 0.0
        return self.completed_steps / self.total_steps * 100


class Template(_Record):
    name: str = ""
    category: str = "business"
    status: TemplateStatus = TemplateStatus.DRAFT
    total_uses: int = Field(default=0, ge=0)
    last_used: Optional[datetime] = None
    estimated_time: Optional[float] = Field(default=None, ge=0, description="Minutes")

    @field_validator("last_used")
    @classmethod
    def _last_used_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class OptimizationRecord(_Record):
    """Persisted recommendation with its review lifecycle."""

    type: RecommendationType
    category: RecommendationCategory
    title: str
    description: str
    suggestion: str
    impact: Impact = Impact.MEDIUM
    confidence: int = Field(default=75, ge=0, le=100)
    estimated_savings: EstimatedSavings
    data: Dict[str, Any] = Field(default_factory=dict)
    related_items: Tuple[RelatedItem, ...] = ()
    tags: Tuple[str, ...] = ()
    priority: Priority = Priority.MEDIUM
    status: OptimizationStatus = OptimizationStatus.PENDING
    applied_at: Optional[datetime] = None
    applied_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_validator("applied_at", "updated_at")
    @classmethod
    def _timestamps_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _applied_fields_match_status(self) -> "OptimizationRecord":
        applied = self.status == OptimizationStatus.APPLIED
        has_fields = self.applied_at is not None and self.applied_by is not None
        has_any = self.applied_at is not None or self.applied_by is not None
        if applied and not has_fields:
            raise ValueError("applied optimizations require appliedAt and appliedBy")
        if not applied and has_any:
            raise ValueError("appliedAt/appliedBy are only set on applied optimizations")
        return self

    @classmethod
    def from_recommendation(
        cls,
        recommendation: Recommendation,
        *,
        record_id: str,
        user_id: str,
        now: datetime,
    ) -> "OptimizationRecord":
        return cls(
            id=record_id,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            type=recommendation.type,
            category=recommendation.category,
            title=recommendation.title,
            description=recommendation.description,
            suggestion=recommendation.suggestion,
            impact=recommendation.impact,
            confidence=recommendation.confidence,
            estimated_savings=recommendation.estimated_savings,
            data=recommendation.data.model_dump(by_alias=True, mode="json"),
            related_items=recommendation.related_items,
        )

    def with_status(self, status: OptimizationStatus, *, actor: str, now: datetime) -> "OptimizationRecord":
        """Return a copy in `status`; applied fields follow the status."""
        applied = status == OptimizationStatus.APPLIED
        return self.model_copy(update={
            "status": status,
            "applied_at": now if applied else None,
            "applied_by": actor if applied else None,
            "updated_at": now,
        })


RECORD_MODELS = {
    RecordKind.TASK: Task,
    RecordKind.WORKFLOW: Workflow,
    RecordKind.TEMPLATE: Template,
    RecordKind.OPTIMIZATION: OptimizationRecord,
}

_SNAPSHOT_FIELDS = {
    "tasks": RecordKind.TASK,
    "workflows": RecordKind.WORKFLOW,
    "templates": RecordKind.TEMPLATE,
    "optimizations": RecordKind.OPTIMIZATION,
}


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "invalid value")


def parse_record(kind: RecordKind, raw: Any):
    """Validate one raw record of `kind`, raising InvalidInputError on failure."""
    model = RECORD_MODELS[kind]
    if isinstance(raw, model):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidInputError(f"{kind.value} record must be an object, got {type(raw).__name__}")
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise InvalidInputError(f"Invalid {kind.value} record: {_describe(exc)}") from exc


class Snapshot(CamelModel):
    """One user's records for a single evaluation."""

    user_id: str = Field(min_length=1)
    tasks: Tuple[Task, ...] = ()
    workflows: Tuple[Workflow, ...] = ()
    templates: Tuple[Template, ...] = ()
    optimizations: Tuple[OptimizationRecord, ...] = ()

    def all_records(self) -> Iterable[_Record]:
        yield from self.tasks
        yield from self.workflows
        yield from self.templates
        yield from self.optimizations

    def foreign_records(self) -> List[str]:
        """Ids of records owned by someone other than `user_id`."""
        return [r.id for r in self.all_records() if r.user_id != self.user_id]

    @classmethod
    def from_raw(cls, raw: Any) -> "Snapshot":
        """Build a snapshot from plain data; malformed input is InvalidInputError."""
        if isinstance(raw, Snapshot):
            snapshot = raw
        else:
            if not isinstance(raw, Mapping):
                raise InvalidInputError(f"Snapshot must be an object, got {type(raw).__name__}")
            user_id = raw.get("userId", raw.get("user_id"))
            if not isinstance(user_id, str) or not user_id:
                raise InvalidInputError("Snapshot is missing userId")

            fields: Dict[str, Tuple] = {}
            for name, kind in _SNAPSHOT_FIELDS.items():
                items = raw.get(name, ())
                if items is None:
                    items = ()
                if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, (list, tuple)):
                    raise InvalidInputError(f"Snapshot field '{name}' must be a list")
                fields[name] = tuple(parse_record(kind, item) for item in items)
            snapshot = cls(user_id=user_id, **fields)

        foreign = snapshot.foreign_records()
        if foreign:
            raise InvalidInputError(
                f"Snapshot for {snapshot.user_id} contains records owned by other users: {', '.join(foreign[:5])}"
            )
        return snapshot
