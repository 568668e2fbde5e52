"""
Recordbook Backend: RecordStore Tests
======================================

What:  Tests for RecordStore against a real SQLite database per test.
How:   Calls the service directly, without HTTP.

What we test:
    ✅ Schema creation is idempotent
    ✅ Grade column is added to legacy tables and left alone otherwise
    ✅ Create → list returns newest first with store-assigned id and timestamp
    ✅ Validation failures never insert
    ✅ Delete of a missing id succeeds without changes
    ✅ Stats aggregates (today, per department, per grade)
    ✅ Unbound store and store failures raise DatabaseError
"""

from datetime import datetime

import pytest
from sqlalchemy import inspect

from recordbook.exceptions import DatabaseError, StoreNotBoundError, ValidationError
from recordbook.services.record_store import (
    LIST_ERROR_TYPE,
    RecordStore,
    today_iso,
    validate_record_payload,
)


async def _column_names(engine):
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns("records")}
        )


class TestValidateRecordPayload:
    """Body validation runs before any storage access."""

    def test_valid_payload(self, sample_record):
        record_in = validate_record_payload(sample_record)
        assert record_in.grade == "高一"
        assert record_in.department == "学生会"

    @pytest.mark.parametrize("field", ["date", "grade", "department", "content"])
    def test_missing_field(self, sample_record, field):
        del sample_record[field]
        with pytest.raises(ValidationError) as exc_info:
            validate_record_payload(sample_record)
        assert exc_info.value.message == "缺少必填字段"
        assert exc_info.value.details["required"] == ["date", "grade", "department", "content"]
        assert exc_info.value.details["received"] == sample_record

    def test_empty_string_counts_as_missing(self, sample_record):
        sample_record["content"] = ""
        with pytest.raises(ValidationError, match="缺少必填字段"):
            validate_record_payload(sample_record)

    def test_non_string_field_rejected(self, sample_record):
        sample_record["department"] = 42
        with pytest.raises(ValidationError, match="缺少必填字段"):
            validate_record_payload(sample_record)

    def test_non_object_body_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_record_payload(["2024-01-15", "高一"])
        assert exc_info.value.details["received"] == ["2024-01-15", "高一"]

    def test_unknown_grade(self, sample_record):
        sample_record["grade"] = "高三"
        with pytest.raises(ValidationError) as exc_info:
            validate_record_payload(sample_record)
        assert exc_info.value.message == '年级必须是"高一"或"高二"'
        assert exc_info.value.details == {"received": "高三"}


class TestSchema:
    """ensure_schema / ensure_grade_column / initialize."""

    @pytest.mark.asyncio
    async def test_ensure_schema_is_idempotent(self, record_store, store_engine):
        await record_store.ensure_schema()
        await record_store.ensure_schema()

        columns = await _column_names(store_engine)
        assert {"id", "date", "grade", "department", "content", "created_at"} <= columns

    @pytest.mark.asyncio
    async def test_initialize_twice(self, record_store):
        first = await record_store.initialize()
        second = await record_store.initialize()
        assert first.success is True
        assert second.message == "数据库表创建成功"

    @pytest.mark.asyncio
    async def test_grade_column_added_to_legacy_table(self, legacy_table):
        store = RecordStore(legacy_table)
        assert "grade" not in await _column_names(legacy_table)

        await store.ensure_grade_column()

        assert "grade" in await _column_names(legacy_table)

    @pytest.mark.asyncio
    async def test_grade_column_migration_is_idempotent(self, legacy_table):
        store = RecordStore(legacy_table)
        await store.ensure_grade_column()
        await store.ensure_grade_column()
        assert "grade" in await _column_names(legacy_table)

    @pytest.mark.asyncio
    async def test_grade_column_without_table_is_noop(self, record_store, store_engine):
        await record_store.ensure_grade_column()
        async with store_engine.connect() as conn:
            has_table = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table("records")
            )
        assert has_table is False


class TestRecords:
    """list_records / create_record / delete_record."""

    @pytest.mark.asyncio
    async def test_list_empty_store(self, record_store):
        result = await record_store.list_records()
        assert result.records == []
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_create_then_list_newest_first(self, record_store, sample_record):
        await record_store.initialize()
        first = await record_store.create_record(sample_record)
        second = await record_store.create_record({**sample_record, "content": "第二条"})

        assert second.id > first.id

        result = await record_store.list_records()
        assert result.count == 2
        newest = result.records[0]
        assert newest.id == second.id
        assert newest.content == "第二条"
        assert newest.grade == "高一"
        assert isinstance(newest.created_at, datetime)

    @pytest.mark.asyncio
    async def test_invalid_payload_does_not_insert(self, record_store, sample_record):
        await record_store.initialize()
        await record_store.create_record(sample_record)

        with pytest.raises(ValidationError):
            await record_store.create_record({**sample_record, "grade": "初三"})
        with pytest.raises(ValidationError):
            await record_store.create_record({"date": "2024-01-15"})

        result = await record_store.list_records()
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_delete_record(self, record_store, sample_record):
        await record_store.initialize()
        created = await record_store.create_record(sample_record)

        result = await record_store.delete_record(created.id)

        assert result.success is True
        assert (await record_store.list_records()).count == 0

    @pytest.mark.asyncio
    async def test_delete_missing_id_succeeds(self, record_store, sample_record):
        await record_store.initialize()
        created = await record_store.create_record(sample_record)

        result = await record_store.delete_record(created.id + 100)

        assert result.success is True
        listing = await record_store.list_records()
        assert [r.id for r in listing.records] == [created.id]

    @pytest.mark.asyncio
    async def test_legacy_rows_listed_with_null_grade(self, legacy_table):
        store = RecordStore(legacy_table)

        result = await store.list_records()

        assert result.count == 1
        assert result.records[0].grade is None
        assert result.records[0].content == "旧记录"

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, record_store, sample_record):
        await record_store.initialize()
        first = await record_store.create_record(sample_record)
        await record_store.delete_record(first.id)

        second = await record_store.create_record(sample_record)

        assert second.id > first.id


class TestStats:
    """compute_stats aggregates."""

    @pytest.mark.asyncio
    async def test_stats_on_empty_table(self, record_store):
        await record_store.initialize()
        stats = await record_store.compute_stats()
        assert stats.total == 0
        assert stats.today == 0
        assert stats.by_department == []
        assert stats.by_grade == []

    @pytest.mark.asyncio
    async def test_stats_counts(self, record_store, sample_record):
        await record_store.initialize()
        today = today_iso()
        for department in ("学生会", "学生会", "团委"):
            await record_store.create_record({**sample_record, "date": today, "department": department})
        for grade in ("高一", "高二"):
            await record_store.create_record({**sample_record, "date": "2000-01-01", "grade": grade})

        stats = await record_store.compute_stats()

        assert stats.total == 5
        assert stats.today == 3
        departments = {item.department: item.count for item in stats.by_department}
        assert departments == {"学生会": 4, "团委": 1}
        grades = {item.grade: item.count for item in stats.by_grade}
        assert grades == {"高一": 4, "高二": 1}
        assert sum(departments.values()) == stats.total

    @pytest.mark.asyncio
    async def test_stats_exclude_null_grades(self, legacy_table, sample_record):
        store = RecordStore(legacy_table)
        await store.initialize()
        await store.create_record(sample_record)

        stats = await store.compute_stats()

        assert stats.total == 2
        assert sum(item.count for item in stats.by_grade) == 1

    @pytest.mark.asyncio
    async def test_stats_without_table_raises_database_error(self, record_store):
        with pytest.raises(DatabaseError, match="no such table"):
            await record_store.compute_stats()


class TestUnboundStore:
    """A RecordStore built without an engine."""

    def setup_method(self):
        self.store = RecordStore(None)

    def test_is_bound(self):
        assert self.store.is_bound is False

    @pytest.mark.asyncio
    async def test_list_raises_with_type(self):
        with pytest.raises(StoreNotBoundError) as exc_info:
            await self.store.list_records()
        assert exc_info.value.error_type == LIST_ERROR_TYPE

    @pytest.mark.asyncio
    async def test_create_validates_before_binding_check(self):
        with pytest.raises(ValidationError):
            await self.store.create_record({})

    @pytest.mark.asyncio
    async def test_stats_raises(self):
        with pytest.raises(StoreNotBoundError, match="数据库未绑定"):
            await self.store.compute_stats()
