"""
Suggestion engine models.

Input is a client-supplied list of recurring task descriptors; nothing here
is persisted.
"""

from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import Field, field_validator

from recurspace.models.base import CamelModel, ensure_utc


class RecurringTask(CamelModel):
    title: str = Field(min_length=1)
    frequency: str = "unspecified"
    due_date: Optional[datetime] = None
    completed: bool = False

    @field_validator("due_date")
    @classmethod
    def _due_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @field_validator("frequency")
    @classmethod
    def _frequency_lower(cls, value: str) -> str:
        return value.strip().lower() or "unspecified"


class FrequencyCompletion(CamelModel):
    completed: int = Field(ge=0)
    total: int = Field(ge=0)

    @property
    def ratio(self) -> float:
        return self.completed / self.total if self.total else 0.0


class TaskAnalysis(CamelModel):
    total_tasks: int
    completed_tasks: int
    overdue_tasks: int
    frequency_breakdown: Dict[str, int]
    completion_rates: Dict[str, FrequencyCompletion]


class Suggestion(CamelModel):
    type: str = Field(description="time_optimization | task_batching | overdue_patterns")
    title: str
    description: str
    priority: str = Field(description="low | medium | high")
    suggested_batch: Optional[Tuple[str, ...]] = None
    pattern: Optional[str] = None


class SuggestionSummary(CamelModel):
    total_tasks: int
    completion_rate: float
    overdue_count: int
    frequency_breakdown: Dict[str, int]


class SuggestionInsights(CamelModel):
    most_productive_day: Optional[str] = None
    recommended_batch_size: int = 3
    suggested_time_blocks: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)


class SuggestionReport(CamelModel):
    summary: SuggestionSummary
    recommendations: Tuple[Suggestion, ...]
    insights: SuggestionInsights
    analysis: TaskAnalysis
    generated_at: datetime
