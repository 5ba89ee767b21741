"""
recurspace/features/optimizations/service.py

Adapter between the rule engine and the record store: fetch a snapshot,
evaluate it, persist the results, and manage their review lifecycle.
"""

import math
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from recurspace.core.config import settings
from recurspace.core.errors import InvalidInputError, NotFoundError
from recurspace.core.logging import log_event
from recurspace.core.metrics import (
    insight_evaluations_total,
    optimization_status_changes_total,
    recommendations_emitted_total,
    stored_optimizations,
)
from recurspace.features.insights.aggregation import average, count_by
from recurspace.features.insights.engine import EvaluationParams, evaluate
from recurspace.features.insights.patterns import PatternReport, analyze_patterns
from recurspace.features.optimizations.models import (
    OptimizationPage,
    OptimizationStats,
    Pagination,
    SavingsTotals,
)
from recurspace.features.optimizations.store import RecordStore, get_store, load_snapshot
from recurspace.models.base import ensure_utc
from recurspace.models.records import OptimizationRecord, OptimizationStatus
from recurspace.models.recommendation import RecommendationCategory, RecommendationType


def _now(now: Optional[datetime]) -> datetime:
    return ensure_utc(now) if now else datetime.now(timezone.utc)


def _coerce(enum_cls, value, field: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        valid = ", ".join(v.value for v in enum_cls)
        raise InvalidInputError(f"Invalid {field} '{value}'. Must be one of: {valid}") from exc


class OptimizationService:
    def __init__(
        self,
        store: Optional[RecordStore] = None,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
        default_page_size: Optional[int] = None,
        max_page_size: Optional[int] = None,
    ):
        self.store = store if store is not None else get_store()
        self.id_factory = id_factory
        self.default_page_size = default_page_size or settings.DEFAULT_PAGE_SIZE
        self.max_page_size = max_page_size or settings.MAX_PAGE_SIZE

    def generate(
        self,
        user_id: str,
        type: str,
        now: Optional[datetime] = None,
        *,
        ranked: bool = False,
        limit: Optional[int] = None,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List[OptimizationRecord]:
        """
        Evaluate the user's snapshot and persist every recommendation.

        created_after/created_before narrow the snapshot to records created in
        that window. Returns the stored records in emission (or ranked) order.
        """
        now = _now(now)
        if created_after and created_before and ensure_utc(created_after) > ensure_utc(created_before):
            raise InvalidInputError("createdAfter must not be later than createdBefore")
        snapshot = load_snapshot(
            self.store,
            user_id,
            ensure_utc(created_after) if created_after else None,
            ensure_utc(created_before) if created_before else None,
        )
        recommendations = evaluate(snapshot, EvaluationParams(type=type, now=now, limit=limit, ranked=ranked))

        saved = []
        for recommendation in recommendations:
            record = OptimizationRecord.from_recommendation(
                recommendation,
                record_id=self.id_factory(),
                user_id=user_id,
                now=now,
            )
            self.store.save_optimization(record)
            recommendations_emitted_total.inc(labels={"rule": recommendation.rule or "unknown"})
            saved.append(record)

        insight_evaluations_total.inc(labels={"type": str(getattr(type, "value", type))})
        self._refresh_gauge()
        log_event(
            "info",
            "optimizations.generated",
            user_id=user_id,
            event_type=str(getattr(type, "value", type)),
            extra={"count": len(saved)},
        )
        return saved

    def list(
        self,
        user_id: str,
        type: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> OptimizationPage:
        limit = limit if limit is not None else self.default_page_size
        if page < 1:
            raise InvalidInputError("page must be >= 1")
        if limit < 1 or limit > self.max_page_size:
            raise InvalidInputError(f"limit must be between 1 and {self.max_page_size}")

        records = self.store.list_optimizations(
            user_id,
            type=_coerce(RecommendationType, type, "type"),
            category=_coerce(RecommendationCategory, category, "category"),
            status=_coerce(OptimizationStatus, status, "status"),
        )
        skip = (page - 1) * limit
        window = records[skip:skip + limit]
        total = len(records)
        return OptimizationPage(
            optimizations=tuple(window),
            pagination=Pagination(
                current=page,
                total=math.ceil(total / limit),
                has_next=skip + len(window) < total,
                has_prev=page > 1,
            ),
        )

    def get(self, user_id: str, optimization_id: str) -> OptimizationRecord:
        record = self.store.get_optimization(user_id, optimization_id)
        if record is None:
            raise NotFoundError("Optimization not found")
        return record

    def update_status(
        self,
        user_id: str,
        optimization_id: str,
        status: str,
        now: Optional[datetime] = None,
    ) -> OptimizationRecord:
        new_status = _coerce(OptimizationStatus, status, "status")
        if new_status is None:
            raise InvalidInputError("status is required")

        current = self.get(user_id, optimization_id)
        updated = current.with_status(new_status, actor=user_id, now=_now(now))
        if not self.store.update_optimization(updated):
            raise NotFoundError("Optimization not found")

        optimization_status_changes_total.inc(labels={"status": new_status.value})
        log_event(
            "info",
            "optimization.status_changed",
            user_id=user_id,
            record_id=optimization_id,
            event_type=new_status.value,
            extra={"previous": current.status.value},
        )
        return updated

    def delete(self, user_id: str, optimization_id: str) -> None:
        if not self.store.delete_optimization(user_id, optimization_id):
            raise NotFoundError("Optimization not found")
        self._refresh_gauge()
        log_event("info", "optimization.deleted", user_id=user_id, record_id=optimization_id)

    def stats(self, user_id: str) -> OptimizationStats:
        records = self.store.list_optimizations(user_id)
        applied = [r for r in records if r.status == OptimizationStatus.APPLIED]
        total = len(records)
        return OptimizationStats(
            by_status=count_by(records, lambda r: r.status.value),
            by_type=count_by(records, lambda r: r.type.value),
            by_impact=count_by(records, lambda r: r.impact.value),
            total=total,
            applied=len(applied),
            application_rate=round(len(applied) / total * 100, 1) if total else 0.0,
            total_savings=SavingsTotals(
                time=sum(r.estimated_savings.time for r in applied),
                efficiency=average(r.estimated_savings.efficiency for r in applied),
            ),
        )

    def patterns(self, user_id: str, now: Optional[datetime] = None) -> PatternReport:
        return analyze_patterns(load_snapshot(self.store, user_id), _now(now))

    def _refresh_gauge(self) -> None:
        counter = getattr(self.store, "count_optimizations", None)
        if counter is not None:
            stored_optimizations.set(counter())
