"""Response models for stored optimizations."""

from typing import Dict, Tuple

from pydantic import Field

from recurspace.models.base import CamelModel
from recurspace.models.records import OptimizationRecord


class Pagination(CamelModel):
    current: int = Field(ge=1)
    total: int = Field(ge=0, description="Total number of pages")
    has_next: bool
    has_prev: bool


class OptimizationPage(CamelModel):
    optimizations: Tuple[OptimizationRecord, ...]
    pagination: Pagination


class SavingsTotals(CamelModel):
    time: float = Field(ge=0, description="Hours saved by applied optimizations")
    efficiency: float = Field(description="Mean efficiency gain of applied optimizations")


class OptimizationStats(CamelModel):
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    by_impact: Dict[str, int]
    total: int = Field(ge=0)
    applied: int = Field(ge=0)
    application_rate: float = Field(ge=0, le=100)
    total_savings: SavingsTotals
