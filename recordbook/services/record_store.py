"""
Recordbook Backend: Record Store Accessor
==========================================

What:  Every statement the API issues against the `records` table.
How:   RecordStore is constructed with the async engine (or None when the
       store is unbound). Each public operation opens its own short
       transaction, runs its statement(s), and translates rows into response
       models. SQLAlchemy errors are converted into DatabaseError at this
       boundary so routes never see driver exceptions.
Who:   Built once by the application factory; reached by routes through the
       `get_record_store` dependency.

Operations:
    ensure_schema()        CREATE TABLE IF NOT EXISTS records (...)
    ensure_grade_column()  inspect columns; ALTER TABLE ADD COLUMN grade if missing
    initialize()           both of the above, for GET /api/init
    list_records()         ensure schema + grade column, then SELECT ... ORDER BY created_at DESC
    create_record()        validate body, then INSERT
    delete_record()        DELETE WHERE id = ?  (success even if nothing matched)
    compute_stats()        four independent aggregate SELECTs

Grade column migration:
    Tables created before `grade` existed are upgraded in place. The column is
    looked up through the SQLAlchemy inspector first and added with Alembic's
    runtime Operations API only when absent, so no store error is ever
    swallowed.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from alembic.migration import MigrationContext
from alembic.operations import Operations
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Column, String, delete, desc, func, inspect, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from recordbook.database import Base
from recordbook.exceptions import DatabaseError, StoreNotBoundError, ValidationError
from recordbook.models.record import GRADES, Record
from recordbook.schemas.record import (
    CreateRecordResponse,
    DeleteRecordResponse,
    DepartmentCount,
    GradeCount,
    InitResponse,
    RecordCreate,
    RecordListResponse,
    RecordResponse,
    StatsResponse,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("date", "grade", "department", "content")

# `type` attached to list failures
LIST_ERROR_TYPE = "DATABASE_ERROR"


def today_iso() -> str:
    """Today's UTC calendar date as YYYY-MM-DD, the format stats compares against."""
    return datetime.now(timezone.utc).date().isoformat()


def validate_record_payload(payload: Any) -> RecordCreate:
    """
    Validate a decoded POST /api/records body.

    Raises:
        ValidationError: a field is missing, empty, or not a string
            (details: required, received), or the grade is not 高一 / 高二
            (details: received).
    """
    try:
        record_in = RecordCreate.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            message="缺少必填字段",
            details={"required": list(REQUIRED_FIELDS), "received": payload},
            context={"errors": e.errors(include_url=False)},
        ) from e

    if record_in.grade not in GRADES:
        raise ValidationError(
            message='年级必须是"高一"或"高二"',
            details={"received": record_in.grade},
        )
    return record_in


# ── Schema helpers (run inside AsyncConnection.run_sync) ──────────────────

def _create_records_table(sync_conn: Connection) -> None:
    Base.metadata.create_all(sync_conn, tables=[Record.__table__], checkfirst=True)


def _add_grade_column_if_missing(sync_conn: Connection) -> bool:
    inspector = inspect(sync_conn)
    table_name = Record.__tablename__
    if not inspector.has_table(table_name):
        return False
    columns = {column["name"] for column in inspector.get_columns(table_name)}
    if "grade" in columns:
        return False

    operations = Operations(MigrationContext.configure(connection=sync_conn))
    operations.add_column(table_name, Column("grade", String(16), nullable=True))
    return True


def _driver_message(exc: Exception) -> str:
    """The underlying driver message, without SQLAlchemy's statement dump."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


class RecordStore:
    """
    Accessor for the `records` table.

    Error Handling Strategy:
        Validation runs before any storage access and raises ValidationError.
        An unbound store raises StoreNotBoundError. Any SQLAlchemyError is
        logged and re-raised as DatabaseError carrying the driver message.
        Nothing is retried.
    """

    def __init__(self, engine: Optional[AsyncEngine]):
        self._engine = engine
        self._session_factory = (
            async_sessionmaker(engine, expire_on_commit=False)
            if engine is not None
            else None
        )

    @property
    def is_bound(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    @asynccontextmanager
    async def _store_errors(
        self, operation: str, error_type: Optional[str] = None
    ) -> AsyncIterator[None]:
        """Guard a block of store access: require a binding, translate driver errors."""
        if self._engine is None:
            logger.error("Store operation %s attempted without a database binding", operation)
            raise StoreNotBoundError(error_type=error_type)
        try:
            yield
        except (SQLAlchemyError, OverflowError) as e:
            # OverflowError: the SQLite driver rejects integers beyond 64 bits
            # before SQLAlchemy sees the statement
            message = _driver_message(e)
            logger.error("Store error during %s: %s", operation, message, exc_info=True)
            raise DatabaseError(
                message=message,
                error_type=error_type,
                context={"operation": operation, "error_class": type(e).__name__},
            ) from e

    # ── Schema ────────────────────────────────────────────────────────────

    async def _create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(_create_records_table)

    async def _migrate_grade_column(self) -> None:
        async with self._engine.begin() as conn:
            added = await conn.run_sync(_add_grade_column_if_missing)
        if added:
            logger.info("Added missing grade column to records table")

    async def ensure_schema(self) -> None:
        """Create the records table if it does not exist. Idempotent."""
        async with self._store_errors("ensure_schema"):
            await self._create_schema()

    async def ensure_grade_column(self) -> None:
        """Add the nullable grade column to a legacy records table. Idempotent."""
        async with self._store_errors("ensure_grade_column"):
            await self._migrate_grade_column()

    async def initialize(self) -> InitResponse:
        """Schema initializer behind GET /api/init."""
        async with self._store_errors("initialize"):
            await self._create_schema()
            await self._migrate_grade_column()
        logger.info("Records schema initialized")
        return InitResponse(success=True, message="数据库表创建成功")

    # ── Records ───────────────────────────────────────────────────────────

    async def list_records(self) -> RecordListResponse:
        """
        All records, newest first.

        created_at has one-second resolution on SQLite, so rows inserted in
        the same second are ordered by id, newest first.
        """
        async with self._store_errors("list_records", error_type=LIST_ERROR_TYPE):
            await self._create_schema()
            await self._migrate_grade_column()
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Record).order_by(desc(Record.created_at), desc(Record.id))
                )
                rows = result.scalars().all()

        records = [RecordResponse.model_validate(row) for row in rows]
        return RecordListResponse(records=records, count=len(records))

    async def create_record(self, payload: Any) -> CreateRecordResponse:
        """
        Validate and insert one record.

        Args:
            payload: The decoded JSON body, any JSON value.

        Returns:
            CreateRecordResponse with the id assigned by the store.

        Raises:
            ValidationError: before storage is touched (→ 400)
            DatabaseError: the insert failed (→ 500)
        """
        record_in = validate_record_payload(payload)

        async with self._store_errors("create_record"):
            async with self._session_factory() as session:
                async with session.begin():
                    record = Record(**record_in.model_dump())
                    session.add(record)
                    await session.flush()
                    record_id = record.id

        logger.info(
            "Record %d created (department=%s, grade=%s)",
            record_id, record_in.department, record_in.grade,
        )
        return CreateRecordResponse(success=True, id=record_id)

    async def delete_record(self, record_id: int) -> DeleteRecordResponse:
        """Delete by exact id. Reports success whether or not a row matched."""
        async with self._store_errors("delete_record"):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(Record).where(Record.id == record_id)
                    )

        logger.info("Delete record %d: %d row(s) affected", record_id, result.rowcount)
        return DeleteRecordResponse(success=True)

    # ── Statistics ────────────────────────────────────────────────────────

    async def compute_stats(self) -> StatsResponse:
        """
        Four read-only aggregates: total, today, per department, per grade.

        `today` compares the stored date string with today_iso(). Grade groups
        exclude NULL grades, so their counts may sum to less than `total`.
        """
        today = today_iso()

        async with self._store_errors("compute_stats"):
            async with self._session_factory() as session:
                total = (
                    await session.execute(select(func.count()).select_from(Record))
                ).scalar()

                today_count = (
                    await session.execute(
                        select(func.count()).select_from(Record).where(Record.date == today)
                    )
                ).scalar()

                department_rows = (
                    await session.execute(
                        select(Record.department, func.count())
                        .group_by(Record.department)
                        .order_by(Record.department)
                    )
                ).all()

                grade_rows = (
                    await session.execute(
                        select(Record.grade, func.count())
                        .where(Record.grade.is_not(None))
                        .group_by(Record.grade)
                        .order_by(Record.grade)
                    )
                ).all()

        return StatsResponse(
            total=total or 0,
            today=today_count or 0,
            by_department=[
                DepartmentCount(department=department, count=count)
                for department, count in department_rows
            ],
            by_grade=[
                GradeCount(grade=grade, count=count)
                for grade, count in grade_rows
            ],
        )
