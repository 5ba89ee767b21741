"""
recurspace/api/suggestions.py

Stateless suggestions for a client-supplied list of recurring tasks.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Body, Header

from recurspace.api.deps import parse_now
from recurspace.core.logging import log_event
from recurspace.features.suggestions.service import generate_suggestions

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


@router.post("")
def create_suggestions(
    user_id: Annotated[str, Header(alias="X-User-Id", min_length=1)],
    tasks: Any = Body(None, embed=True),
    now: Optional[str] = Body(None, embed=True),
) -> Dict[str, Any]:
    """
    Analyze recurring tasks and return time-optimization, batching and
    overdue-pattern suggestions. Nothing is persisted.
    """
    report = generate_suggestions(tasks, now=parse_now(now))
    log_event(
        "info",
        "suggestions.generated",
        user_id=user_id,
        extra={"count": len(report.recommendations)},
    )
    return {"success": True, **report.to_dict()}
