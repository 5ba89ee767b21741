from fastapi import APIRouter, Response

from recurspace.core.metrics import METRICS, stored_optimizations
from recurspace.features.optimizations.store import get_store


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics_endpoint():
    """Prometheus text exposition of the in-process registry."""
    store = get_store()
    if hasattr(store, "count_optimizations"):
        stored_optimizations.set(store.count_optimizations())
    return Response(content=METRICS.export_prometheus(), media_type="text/plain")
