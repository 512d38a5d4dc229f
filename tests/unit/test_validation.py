"""
Unit tests for argument validation.

These run against an engine that cannot connect, so every assertion
also proves the argument is rejected before any statement is sent.
"""

import inspect
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from pgjobqueue.constants import DEFAULT_PRIORITY, MAX_PRIORITY, MIN_PRIORITY
from pgjobqueue.db.migrations import Migration, SchemaManager
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.db.schema import MAX_TABLE_NAME_LENGTH, validate_identifier
from pgjobqueue.errors import InvalidArgumentError
from pgjobqueue.types.api import ScheduleJobRequest

GOOD_IDENTIFIERS = ["test", "test_1", "test_1_2", "fooBar", "MOO", "_private"]
BAD_IDENTIFIERS = [
    "test-1",
    "test 1",
    "test!",
    "test@",
    "test#",
    "",
    "3",
    "1abc",
    'a"b',
    "jobs\n",
    "public\n",
    "\njobs",
]


class TestIdentifierValidation:
    """Tests for schema and table name validation."""

    @pytest.mark.parametrize("schema", GOOD_IDENTIFIERS)
    def test_accepts_good_schema(self, offline_engine: AsyncEngine, schema: str):
        """Test that letters, digits and underscores are accepted."""
        JobQueue(offline_engine, schema=schema)

    @pytest.mark.parametrize("schema", BAD_IDENTIFIERS)
    def test_rejects_bad_schema(self, offline_engine: AsyncEngine, schema: str):
        """Test that anything else is rejected at construction."""
        with pytest.raises(InvalidArgumentError):
            JobQueue(offline_engine, schema=schema)

    @pytest.mark.parametrize("table", GOOD_IDENTIFIERS)
    def test_accepts_good_table(self, offline_engine: AsyncEngine, table: str):
        JobQueue(offline_engine, table=table)

    @pytest.mark.parametrize("table", BAD_IDENTIFIERS)
    def test_rejects_bad_table(self, offline_engine: AsyncEngine, table: str):
        with pytest.raises(InvalidArgumentError):
            JobQueue(offline_engine, table=table)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidArgumentError):
            validate_identifier("schema", None)  # type: ignore[arg-type]

    def test_table_length_leaves_room_for_derived_names(self, offline_engine: AsyncEngine):
        """Test that over-long table names are rejected."""
        JobQueue(offline_engine, table="t" * MAX_TABLE_NAME_LENGTH)
        with pytest.raises(InvalidArgumentError):
            JobQueue(offline_engine, table="t" * (MAX_TABLE_NAME_LENGTH + 1))

    def test_error_is_a_value_error(self, offline_engine: AsyncEngine):
        with pytest.raises(ValueError, match="schema"):
            JobQueue(offline_engine, schema="bad-name")

    @pytest.mark.parametrize("value", ["jobs\n", "jobs\r\n", "jobs\x00"])
    def test_whole_name_must_match(self, value: str):
        """Test that trailing control characters are not ignored."""
        with pytest.raises(InvalidArgumentError, match="table"):
            validate_identifier("table", value)


class TestScheduleValidation:
    """Tests for schedule() argument checks."""

    @pytest.fixture
    def queue(self, offline_engine: AsyncEngine) -> JobQueue:
        return JobQueue(offline_engine)

    @pytest.mark.parametrize("priority", [MIN_PRIORITY - 1, MAX_PRIORITY + 1, 10**6])
    async def test_rejects_out_of_range_priority(self, queue: JobQueue, priority: int):
        """Test that priority outside the smallint range is rejected."""
        with pytest.raises(InvalidArgumentError, match="priority"):
            await queue.schedule({"foo": 1}, priority=priority)

    @pytest.mark.parametrize("priority", [1.5, "1", True, None])
    async def test_rejects_non_integer_priority(self, queue: JobQueue, priority):
        with pytest.raises(InvalidArgumentError, match="priority"):
            await queue.schedule({"foo": 1}, priority=priority)

    @pytest.mark.parametrize("payload", [[1, 2], "text", None, 42])
    async def test_rejects_non_mapping_payload(self, queue: JobQueue, payload):
        with pytest.raises(InvalidArgumentError, match="payload"):
            await queue.schedule(payload)

    def test_priority_bounds_are_exposed(self, queue: JobQueue):
        assert queue.min_priority == -32768
        assert queue.max_priority == 32767

    def test_default_priority_is_shared_with_api(self):
        assert inspect.signature(JobQueue.schedule).parameters["priority"].default == DEFAULT_PRIORITY
        assert ScheduleJobRequest(payload={}).priority == DEFAULT_PRIORITY


class TestRetentionValidation:
    """Tests for delete_completed() argument checks."""

    @pytest.fixture
    def queue(self, offline_engine: AsyncEngine) -> JobQueue:
        return JobQueue(offline_engine)

    async def test_rejects_negative_ttl(self, queue: JobQueue):
        with pytest.raises(InvalidArgumentError, match="ttl"):
            await queue.delete_completed(timedelta(seconds=-1))

    async def test_rejects_non_timedelta_ttl(self, queue: JobQueue):
        with pytest.raises(InvalidArgumentError, match="ttl"):
            await queue.delete_completed(3600)  # type: ignore[arg-type]

    @pytest.mark.parametrize("limit", [0, -5, 2.5, True])
    async def test_rejects_bad_limit(self, queue: JobQueue, limit):
        with pytest.raises(InvalidArgumentError, match="limit"):
            await queue.delete_completed(timedelta(hours=1), limit=limit)


class TestMigrationDefinitions:
    """Tests for the migration sequence itself."""

    def test_builtin_migrations_quote_identifiers(self, offline_engine: AsyncEngine):
        manager = SchemaManager(offline_engine, schema="Tenant_A", table="Jobs")
        [first] = manager.migrations

        assert first.version == "0001"
        assert manager.latest_version == "0001"
        create_table, acquire_index, retention_index = first.statements
        assert 'CREATE TABLE "Tenant_A"."Jobs"' in create_table
        assert '"ix_Jobs_acquire"' in acquire_index
        assert "(queue, status, priority DESC, created_at)" in acquire_index
        assert '"ix_Jobs_retention"' in retention_index
        assert "(updated_at, status)" in retention_index

    def test_rejects_unordered_versions(self, offline_engine: AsyncEngine):
        migrations = [Migration("0002", ("SELECT 1",)), Migration("0001", ("SELECT 1",))]
        with pytest.raises(InvalidArgumentError, match="migrations"):
            SchemaManager(offline_engine, migrations=migrations)

    def test_rejects_duplicate_versions(self, offline_engine: AsyncEngine):
        migrations = [Migration("0001", ("SELECT 1",)), Migration("0001", ("SELECT 2",))]
        with pytest.raises(InvalidArgumentError):
            SchemaManager(offline_engine, migrations=migrations)

    def test_empty_sequence_has_no_latest_version(self, offline_engine: AsyncEngine):
        assert SchemaManager(offline_engine, migrations=[]).latest_version is None
