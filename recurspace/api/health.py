"""
Health endpoints for RecurSpace.

Lightweight liveness and store readiness checks; no secrets exposed.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from recurspace.core.logging import LOGGER_NAME, get_request_id
from recurspace.features.optimizations.store import InMemoryRecordStore, get_store

logger = logging.getLogger(LOGGER_NAME)

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: the record store answers a query."""
    store = get_store()
    backend = "memory" if isinstance(store, InMemoryRecordStore) else "sql"
    if backend == "sql":
        from recurspace.core.database import check_connection

        if not check_connection():
            logger.warning("readyz.failed", extra={"request_id": get_request_id(), "error_code": "db_unavailable"})
            return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
    return {"status": "ok", "store": backend}
