"""
recurspace/api/dashboard.py

Dashboard overview for the caller: quick stats, insights, recent activity
and upcoming deadlines.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Header, Query

from recurspace.api.deps import parse_now
from recurspace.features.analytics.overview import build_overview
from recurspace.features.optimizations.store import get_store, load_snapshot

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/overview")
def dashboard_overview(
    user_id: Annotated[str, Header(alias="X-User-Id", min_length=1)],
    now: Optional[str] = Query(None, description="ISO timestamp for deterministic results (testing only)"),
) -> Dict[str, Any]:
    overview = build_overview(load_snapshot(get_store(), user_id), now=parse_now(now))
    return {"success": True, "dashboard": overview.to_dict()}
