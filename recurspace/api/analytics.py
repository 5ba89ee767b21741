"""
recurspace/api/analytics.py

Analytics endpoints: metric points and the dashboard read model.
Snapshot → pure generators → API. Deterministic given `now`.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Header, Query

from recurspace.api.deps import parse_now
from recurspace.core.config import settings
from recurspace.core.logging import log_event
from recurspace.features.analytics.dashboard import build_dashboard
from recurspace.features.analytics.metrics import generate_metrics
from recurspace.features.optimizations.store import get_store, load_snapshot
from recurspace.models.base import CamelModel

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

UserId = Annotated[str, Header(alias="X-User-Id", min_length=1)]


class GenerateAnalyticsRequest(CamelModel):
    type: str
    period: str = "daily"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    now: Optional[str] = None


@router.post("/generate")
def generate_analytics(body: GenerateAnalyticsRequest, user_id: UserId) -> Dict[str, Any]:
    """
    Compute metric points for `type` (task | workflow | template | performance | all).

    The window defaults to ANALYTICS_WINDOW_DAYS days ending at `now`.
    """
    points = generate_metrics(
        load_snapshot(get_store(), user_id),
        body.type,
        period=body.period,
        start=body.start_date,
        end=body.end_date,
        now=parse_now(body.now),
        window_days=settings.ANALYTICS_WINDOW_DAYS,
    )
    log_event("info", "analytics.generated", user_id=user_id, event_type=body.type, extra={"count": len(points)})
    return {
        "success": True,
        "analytics": [point.to_dict() for point in points],
        "count": len(points),
    }


@router.get("/dashboard")
def analytics_dashboard(
    user_id: UserId,
    timeframe: str = Query("month", description="week | month | quarter | year"),
    now: Optional[str] = Query(None, description="ISO timestamp for deterministic results (testing only)"),
) -> Dict[str, Any]:
    report = build_dashboard(
        load_snapshot(get_store(), user_id),
        timeframe=timeframe,
        now=parse_now(now),
        revenue_per_hour=settings.REVENUE_PER_HOUR,
        template_default_minutes=settings.TEMPLATE_DEFAULT_MINUTES,
        trend_days=settings.TREND_WINDOW_DAYS,
    )
    return {"success": True, **report.to_dict()}
