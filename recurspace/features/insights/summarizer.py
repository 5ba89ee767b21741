"""
recurspace/features/insights/summarizer.py

Reduce emitted insights (recommendations or patterns) to a response summary.
"""

from typing import Any, List, Sequence

from pydantic import Field

from recurspace.features.insights.aggregation import average
from recurspace.models.base import CamelModel

HIGH_CONFIDENCE_THRESHOLD = 80


class InsightSummary(CamelModel):
    total_patterns: int = Field(ge=0)
    high_impact_patterns: int = Field(ge=0)
    average_confidence: float = Field(ge=0, le=100)


def _confidence(item: Any) -> float:
    if isinstance(item, dict):
        return float(item["confidence"])
    return float(item.confidence)


def high_confidence(items: Sequence[Any], threshold: int = HIGH_CONFIDENCE_THRESHOLD) -> List[Any]:
    """Items whose confidence is strictly above `threshold`."""
    return [item for item in items if _confidence(item) > threshold]


def summarize(items: Sequence[Any]) -> InsightSummary:
    return InsightSummary(
        total_patterns=len(items),
        high_impact_patterns=len(high_confidence(items)),
        average_confidence=round(average(_confidence(i) for i in items), 1),
    )
