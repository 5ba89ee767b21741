"""
recurspace/api/optimizations.py

Optimization endpoints: generate from the rule catalogue, then list, review
and delete stored optimizations. Scoped to the caller (X-User-Id).
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query
from pydantic import Field

from recurspace.api.deps import get_optimization_service, parse_now, parse_timestamp
from recurspace.features.optimizations.service import OptimizationService
from recurspace.models.base import CamelModel

router = APIRouter(prefix="/api/optimizations", tags=["optimizations"])

UserId = Annotated[str, Header(alias="X-User-Id", min_length=1)]
Service = Annotated[OptimizationService, Depends(get_optimization_service)]


class GenerateRequest(CamelModel):
    type: str
    now: Optional[str] = None
    ranked: bool = False
    limit: Optional[int] = Field(default=None, ge=0)
    created_after: Optional[str] = None
    created_before: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    status: str
    now: Optional[str] = None


@router.post("/generate")
def generate_optimizations(body: GenerateRequest, user_id: UserId, service: Service) -> Dict[str, Any]:
    """
    Run the rule catalogue for `type` (workflow | task | schedule | general)
    over the caller's records and store every recommendation.

    Optional: `ranked` orders by impact then confidence, `limit` truncates,
    `createdAfter`/`createdBefore` restrict the snapshot window.
    """
    saved = service.generate(
        user_id,
        body.type,
        now=parse_now(body.now),
        ranked=body.ranked,
        limit=body.limit,
        created_after=parse_timestamp(body.created_after, "createdAfter"),
        created_before=parse_timestamp(body.created_before, "createdBefore"),
    )
    return {
        "success": True,
        "optimizations": [record.to_dict() for record in saved],
        "count": len(saved),
    }


@router.get("")
def list_optimizations(
    user_id: UserId,
    service: Service,
    type: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
) -> Dict[str, Any]:
    result = service.list(user_id, type=type, category=category, status=status, page=page, limit=limit)
    return {"success": True, **result.to_dict()}


@router.get("/stats")
def optimization_stats(user_id: UserId, service: Service) -> Dict[str, Any]:
    return {"success": True, "stats": service.stats(user_id).to_dict()}


@router.get("/patterns")
def optimization_patterns(
    user_id: UserId,
    service: Service,
    now: Optional[str] = Query(None, description="Optional ISO timestamp for deterministic testing"),
) -> Dict[str, Any]:
    """Behaviour patterns across the caller's tasks and workflows."""
    report = service.patterns(user_id, now=parse_now(now))
    return {"success": True, **report.to_dict()}


@router.get("/{optimization_id}")
def get_optimization(optimization_id: str, user_id: UserId, service: Service) -> Dict[str, Any]:
    return {"success": True, "optimization": service.get(user_id, optimization_id).to_dict()}


@router.patch("/{optimization_id}")
def update_optimization_status(
    optimization_id: str,
    body: StatusUpdateRequest,
    user_id: UserId,
    service: Service,
) -> Dict[str, Any]:
    updated = service.update_status(user_id, optimization_id, body.status, now=parse_now(body.now))
    return {"success": True, "optimization": updated.to_dict()}


@router.delete("/{optimization_id}")
def delete_optimization(optimization_id: str, user_id: UserId, service: Service) -> Dict[str, Any]:
    service.delete(user_id, optimization_id)
    return {"success": True, "message": "Optimization deleted successfully"}
