"""Shared request helpers for the HTTP routers."""

from datetime import datetime
from typing import Optional

from recurspace.core.errors import ValidationError
from recurspace.features.optimizations.service import OptimizationService
from recurspace.features.optimizations.store import get_store
from recurspace.models.base import ensure_utc


def get_optimization_service() -> OptimizationService:
    """Get optimization service bound to the current store."""
    return OptimizationService(get_store())


def parse_timestamp(value: Optional[str], field: str) -> Optional[datetime]:
    """Parse an optional ISO 8601 timestamp; naive values are UTC."""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise ValidationError(f"Invalid '{field}' timestamp format. Use ISO 8601.")


def parse_now(now: Optional[str]) -> Optional[datetime]:
    """Parse the optional 'now' override used for deterministic responses."""
    return parse_timestamp(now, "now")
