"""
recurspace/features/optimizations/store.py

Record store for snapshot records and persisted optimizations.
In-memory implementation by default; SqlRecordStore when a database is
configured and reachable.

Stores hand out records by value (frozen models), never shared containers.
"""

import logging
import os
import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from recurspace.core.errors import ConflictError
from recurspace.core.logging import LOGGER_NAME
from recurspace.models.records import (
    OptimizationRecord,
    OptimizationStatus,
    RecordKind,
    Snapshot,
)
from recurspace.models.recommendation import RecommendationCategory, RecommendationType


class RecordStore(Protocol):
    def fetch_records(
        self,
        user_id: str,
        kind: RecordKind,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List: ...

    def add_record(self, kind: RecordKind, record) -> None: ...

    def add_records(self, kind: RecordKind, records: Sequence) -> None: ...

    def save_optimization(self, record: OptimizationRecord) -> None: ...

    def get_optimization(self, user_id: str, optimization_id: str) -> Optional[OptimizationRecord]: ...

    def list_optimizations(
        self,
        user_id: str,
        type: Optional[RecommendationType] = None,
        category: Optional[RecommendationCategory] = None,
        status: Optional[OptimizationStatus] = None,
    ) -> List[OptimizationRecord]: ...

    def update_optimization(self, record: OptimizationRecord) -> bool: ...

    def delete_optimization(self, user_id: str, optimization_id: str) -> bool: ...

    def clear(self) -> None: ...


def in_range(created_at: datetime, created_after: Optional[datetime], created_before: Optional[datetime]) -> bool:
    if created_after is not None and created_at < created_after:
        return False
    if created_before is not None and created_at > created_before:
        return False
    return True


def ensure_unique_ids(records: Sequence) -> None:
    seen = set()
    for record in records:
        if record.id in seen:
            raise ConflictError(f"Record {record.id} appears more than once in the batch")
        seen.add(record.id)


def newest_first(records: List[OptimizationRecord]) -> List[OptimizationRecord]:
    """Sort by created_at descending; equal timestamps keep insertion order."""
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class InMemoryRecordStore:
    """
    Process-local record store.

    Records are keyed by user and kind; optimizations by id.
    """

    def __init__(self):
        self._records: Dict[str, Dict[RecordKind, List]] = {}
        self._ids: Dict[str, RecordKind] = {}
        self._optimizations: Dict[str, OptimizationRecord] = {}
        self._lock = threading.Lock()

    def fetch_records(
        self,
        user_id: str,
        kind: RecordKind,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List:
        kind = RecordKind(kind)
        with self._lock:
            if kind == RecordKind.OPTIMIZATION:
                records = [r for r in self._optimizations.values() if r.user_id == user_id]
            else:
                records = list(self._records.get(user_id, {}).get(kind, []))
        return [r for r in records if in_range(r.created_at, created_after, created_before)]

    def add_record(self, kind: RecordKind, record) -> None:
        self.add_records(kind, [record])

    def add_records(self, kind: RecordKind, records: Sequence) -> None:
        """Store a batch of records of one kind; all or nothing."""
        kind = RecordKind(kind)
        ensure_unique_ids(records)
        with self._lock:
            existing = self._optimizations if kind == RecordKind.OPTIMIZATION else self._ids
            for record in records:
                if record.id in existing:
                    raise ConflictError(f"Record {record.id} already exists")
            for record in records:
                if kind == RecordKind.OPTIMIZATION:
                    self._optimizations[record.id] = record
                else:
                    self._ids[record.id] = kind
                    self._records.setdefault(record.user_id, {}).setdefault(kind, []).append(record)

    def save_optimization(self, record: OptimizationRecord) -> None:
        with self._lock:
            if record.id in self._optimizations:
                raise ConflictError(f"Optimization {record.id} already exists")
            self._optimizations[record.id] = record

    def get_optimization(self, user_id: str, optimization_id: str) -> Optional[OptimizationRecord]:
        with self._lock:
            record = self._optimizations.get(optimization_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def list_optimizations(
        self,
        user_id: str,
        type: Optional[RecommendationType] = None,
        category: Optional[RecommendationCategory] = None,
        status: Optional[OptimizationStatus] = None,
    ) -> List[OptimizationRecord]:
        with self._lock:
            records = [r for r in self._optimizations.values() if r.user_id == user_id]
        if type is not None:
            records = [r for r in records if r.type == type]
        if category is not None:
            records = [r for r in records if r.category == category]
        if status is not None:
            records = [r for r in records if r.status == status]
        return newest_first(records)

    def update_optimization(self, record: OptimizationRecord) -> bool:
        with self._lock:
            current = self._optimizations.get(record.id)
            if current is None or current.user_id != record.user_id:
                return False
            self._optimizations[record.id] = record
            return True

    def delete_optimization(self, user_id: str, optimization_id: str) -> bool:
        with self._lock:
            current = self._optimizations.get(optimization_id)
            if current is None or current.user_id != user_id:
                return False
            del self._optimizations[optimization_id]
            return True

    def count_optimizations(self) -> int:
        with self._lock:
            return len(self._optimizations)

    def clear(self) -> None:
        """
        Clear all records.
        FOR TESTING ONLY.
        """
        with self._lock:
            self._records.clear()
            self._ids.clear()
            self._optimizations.clear()


def load_snapshot(
    store: RecordStore,
    user_id: str,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> Snapshot:
    """Assemble one user's snapshot from the store."""
    fetch = lambda kind: tuple(store.fetch_records(user_id, kind, created_after, created_before))  # noqa: E731
    return Snapshot(
        user_id=user_id,
        tasks=fetch(RecordKind.TASK),
        workflows=fetch(RecordKind.WORKFLOW),
        templates=fetch(RecordKind.TEMPLATE),
        optimizations=fetch(RecordKind.OPTIMIZATION),
    )


def get_record_store():
    """
    Get the appropriate record store implementation.

    - Uses SQL when DATABASE_URL is configured and reachable
    - Falls back to in-memory otherwise
    - Service and API are agnostic to implementation
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Check DATABASE_URL directly from environment (not cached settings)
    database_url = os.getenv("DATABASE_URL")

    if database_url:
        from recurspace.core.database import check_connection
        from recurspace.features.optimizations.store_pg import SqlRecordStore

        if check_connection():
            try:
                return SqlRecordStore()
            except SQLAlchemyError as exc:
                logger.warning(
                    "store.sql_init_failed",
                    extra={"error_code": "db_unavailable", "error_message": str(exc)},
                )
        logger.warning("store.fallback_in_memory")

    return InMemoryRecordStore()


# Global store instance (lazy initialization)
_store_instance = None


def get_store():
    """
    Get the singleton record store instance.

    This is the primary API that all consumers should use.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = get_record_store()
    return _store_instance


def reset_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
