"""
recurspace/features/optimizations/store_pg.py

SQL-backed record store (PostgreSQL in production, SQLite in tests).

Maintains the same interface as InMemoryRecordStore:
- records are stored as validated JSON payloads and rebuilt on read
- ordering is deterministic (created_at, then insertion sequence)
- timestamps are normalised to UTC before they reach the database
"""

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from recurspace.core.database import create_all_tables, get_db_session, optimizations, user_records
from recurspace.core.errors import ConflictError
from recurspace.features.optimizations.store import ensure_unique_ids
from recurspace.models.base import ensure_utc
from recurspace.models.records import (
    RECORD_MODELS,
    OptimizationRecord,
    OptimizationStatus,
    RecordKind,
)
from recurspace.models.recommendation import RecommendationCategory, RecommendationType


def _enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def _optimization_row(record: OptimizationRecord) -> dict:
    return dict(
        id=record.id,
        user_id=record.user_id,
        type=_enum_value(record.type),
        category=_enum_value(record.category),
        status=_enum_value(record.status),
        payload=record.model_dump(by_alias=True, mode="json"),
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at or record.created_at),
    )


class SqlRecordStore:
    """
    SQLAlchemy Core record store.

    Tables are created on construction (idempotent).
    """

    def __init__(self):
        create_all_tables()

    def fetch_records(
        self,
        user_id: str,
        kind: RecordKind,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List:
        kind = RecordKind(kind)
        if kind == RecordKind.OPTIMIZATION:
            table = optimizations
            filters = [table.c.user_id == user_id]
        else:
            table = user_records
            filters = [table.c.user_id == user_id, table.c.kind == kind.value]

        if created_after is not None:
            filters.append(table.c.created_at >= ensure_utc(created_after))
        if created_before is not None:
            filters.append(table.c.created_at <= ensure_utc(created_before))

        query = select(table.c.payload).where(and_(*filters)).order_by(table.c.seq)
        model = RECORD_MODELS[kind]
        with get_db_session() as session:
            rows = session.execute(query).all()
        return [model.model_validate(dict(row.payload)) for row in rows]

    def add_record(self, kind: RecordKind, record) -> None:
        self.add_records(kind, [record])

    def add_records(self, kind: RecordKind, records: Sequence) -> None:
        """Insert a batch in one transaction; a conflict rolls back the whole batch."""
        kind = RecordKind(kind)
        ensure_unique_ids(records)
        if not records:
            return
        if kind == RecordKind.OPTIMIZATION:
            stmt = insert(optimizations).values([_optimization_row(r) for r in records])
        else:
            stmt = insert(user_records).values(
                [
                    dict(
                        id=record.id,
                        user_id=record.user_id,
                        kind=kind.value,
                        payload=record.model_dump(by_alias=True, mode="json"),
                        created_at=ensure_utc(record.created_at),
                    )
                    for record in records
                ]
            )
        try:
            with get_db_session() as session:
                session.execute(stmt)
        except IntegrityError as exc:
            raise ConflictError("One or more records already exist") from exc

    def save_optimization(self, record: OptimizationRecord) -> None:
        stmt = insert(optimizations).values(**_optimization_row(record))
        try:
            with get_db_session() as session:
                session.execute(stmt)
        except IntegrityError as exc:
            raise ConflictError(f"Optimization {record.id} already exists") from exc

    def get_optimization(self, user_id: str, optimization_id: str) -> Optional[OptimizationRecord]:
        query = select(optimizations.c.payload).where(
            and_(optimizations.c.id == optimization_id, optimizations.c.user_id == user_id)
        )
        with get_db_session() as session:
            row = session.execute(query).first()
        if row is None:
            return None
        return OptimizationRecord.model_validate(dict(row.payload))

    def list_optimizations(
        self,
        user_id: str,
        type: Optional[RecommendationType] = None,
        category: Optional[RecommendationCategory] = None,
        status: Optional[OptimizationStatus] = None,
    ) -> List[OptimizationRecord]:
        filters = [optimizations.c.user_id == user_id]
        if type is not None:
            filters.append(optimizations.c.type == _enum_value(type))
        if category is not None:
            filters.append(optimizations.c.category == _enum_value(category))
        if status is not None:
            filters.append(optimizations.c.status == _enum_value(status))

        # Newest first; equal timestamps keep insertion order
        query = (
            select(optimizations.c.payload)
            .where(and_(*filters))
            .order_by(optimizations.c.created_at.desc(), optimizations.c.seq)
        )
        with get_db_session() as session:
            rows = session.execute(query).all()
        return [OptimizationRecord.model_validate(dict(row.payload)) for row in rows]

    def update_optimization(self, record: OptimizationRecord) -> bool:
        stmt = (
            update(optimizations)
            .where(and_(optimizations.c.id == record.id, optimizations.c.user_id == record.user_id))
            .values(
                type=_enum_value(record.type),
                category=_enum_value(record.category),
                status=_enum_value(record.status),
                payload=record.model_dump(by_alias=True, mode="json"),
                updated_at=ensure_utc(record.updated_at or record.created_at),
            )
        )
        with get_db_session() as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def delete_optimization(self, user_id: str, optimization_id: str) -> bool:
        stmt = delete(optimizations).where(
            and_(optimizations.c.id == optimization_id, optimizations.c.user_id == user_id)
        )
        with get_db_session() as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def count_optimizations(self) -> int:
        with get_db_session() as session:
            return len(session.execute(select(optimizations.c.seq)).all())

    def clear(self) -> None:
        """
        Clear all records.
        FOR TESTING ONLY.
        """
        with get_db_session() as session:
            session.execute(optimizations.delete())
            session.execute(user_records.delete())
