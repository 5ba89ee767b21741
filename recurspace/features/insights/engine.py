"""
recurspace/features/insights/engine.py

Stateless evaluation of the optimization rule catalogue.

evaluate(snapshot, params) -> ordered list of Recommendation
Same snapshot + same params (including `now`) => identical output.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from recurspace.core.errors import InvalidInputError
from recurspace.features.insights.aggregation import SnapshotStats, aggregate
from recurspace.features.insights.rules import EvaluationType, rules_for
from recurspace.models.base import ensure_utc
from recurspace.models.recommendation import IMPACT_RANK, Recommendation
from recurspace.models.records import Snapshot


@dataclass(frozen=True)
class EvaluationParams:
    type: Union[EvaluationType, str]
    now: Optional[datetime] = None
    limit: Optional[int] = None
    ranked: bool = False


def _resolve_type(value: Union[EvaluationType, str]) -> EvaluationType:
    try:
        return EvaluationType(value)
    except ValueError:
        valid = ", ".join(t.value for t in EvaluationType)
        raise InvalidInputError(f"Unknown evaluation type '{value}'. Must be one of: {valid}")


def rank(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Order by impact, then confidence, both descending; ties keep input order."""
    return sorted(
        recommendations,
        key=lambda r: (IMPACT_RANK[r.impact], r.confidence),
        reverse=True,
    )


def run_rules(stats: SnapshotStats, scope: EvaluationType) -> List[Recommendation]:
    rules = rules_for(scope)
    emitted: List[Recommendation] = []

    per_workflow = [rule for rule in rules if rule.per_workflow]
    for workflow in stats.workflows:
        for rule in per_workflow:
            result = rule(workflow)
            if result is not None:
                emitted.append(result)

    for rule in rules:
        if rule.per_workflow:
            continue
        result = rule(stats)
        if result is not None:
            emitted.append(result)

    return emitted


def evaluate(snapshot: Union[Snapshot, Any], params: EvaluationParams) -> List[Recommendation]:
    """
    Evaluate one user's snapshot against the rule catalogue.

    Args:
        snapshot: Snapshot, or raw mapping validated via Snapshot.from_raw
        params: evaluation type, fixed `now` for determinism, optional ranking/limit

    Returns:
        Recommendations in catalogue order (or ranked), truncated to `limit`

    Raises:
        InvalidInputError: malformed snapshot or unknown type, before any rule runs
    """
    snap = Snapshot.from_raw(snapshot)
    scope = _resolve_type(params.type)
    if params.limit is not None and params.limit < 0:
        raise InvalidInputError("limit must be >= 0")

    now = ensure_utc(params.now) if params.now else datetime.now(timezone.utc)

    stats = aggregate(snap, now)
    recommendations = run_rules(stats, scope)

    if params.ranked:
        recommendations = rank(recommendations)
    if params.limit is not None:
        recommendations = recommendations[:params.limit]
    return recommendations
