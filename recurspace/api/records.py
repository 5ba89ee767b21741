"""
recurspace/api/records.py

Load snapshot records (tasks, workflows, templates, optimizations) for the
caller. Records are validated before they reach the store.
"""

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Body, Header

from recurspace.core.errors import InvalidInputError
from recurspace.core.logging import log_event
from recurspace.features.optimizations.store import get_store
from recurspace.models.records import RecordKind, parse_record

router = APIRouter(prefix="/api/records", tags=["records"])


def _resolve_kind(kind: str) -> RecordKind:
    try:
        return RecordKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in RecordKind)
        raise InvalidInputError(f"Unknown record kind '{kind}'. Must be one of: {valid}")


def _owned(raw: Any, user_id: str, index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidInputError(f"records[{index}] must be an object")
    owner = raw.get("userId", raw.get("user_id"))
    if owner is not None and owner != user_id:
        raise InvalidInputError(f"records[{index}] is owned by another user")
    return {**raw, "userId": user_id}


@router.post("/{kind}")
def add_records(
    kind: str,
    user_id: Annotated[str, Header(alias="X-User-Id", min_length=1)],
    records: List[Any] = Body(..., embed=True),
) -> Dict[str, Any]:
    """
    Store records of `kind` owned by the caller.

    All records are validated first; nothing is stored if any is malformed
    or if any id repeats or already exists.
    """
    record_kind = _resolve_kind(kind)
    parsed = [parse_record(record_kind, _owned(raw, user_id, i)) for i, raw in enumerate(records)]

    get_store().add_records(record_kind, parsed)

    log_event("info", "records.added", user_id=user_id, event_type=record_kind.value, extra={"count": len(parsed)})
    return {"success": True, "kind": record_kind.value, "count": len(parsed)}
