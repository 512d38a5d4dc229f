"""
Versioned schema migrations for the jobs table.

Migrations are plain data: an ordered sequence of ``Migration(version,
statements)``. Each outstanding migration runs in its own transaction
together with its ledger row, under a transaction-scoped advisory lock, so
repeated or concurrent initialization never applies a step twice.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, insert, select, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.schema import CreateTable

from pgjobqueue.constants import DEFAULT_SCHEMA, DEFAULT_TABLE, SPAN_UPGRADE_SCHEMA
from pgjobqueue.db.schema import (
    MAX_TABLE_NAME_LENGTH,
    build_ledger_table,
    ledger_table_name,
    validate_identifier,
)
from pgjobqueue.errors import InvalidArgumentError
from pgjobqueue.observability.tracing import get_tracer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """A single schema version and the statements that produce it."""

    version: str
    statements: tuple[str, ...]


def build_migrations(schema: str, table: str) -> tuple[Migration, ...]:
    """
    Build the migration sequence for a jobs table.

    Args:
        schema: Validated schema name.
        table: Validated table name.

    Returns:
        Migrations ordered by version.
    """
    qualified = f'"{schema}"."{table}"'
    return (
        Migration(
            version="0001",
            statements=(
                f"""
                CREATE TABLE {qualified} (
                    id text PRIMARY KEY,
                    queue text NOT NULL,
                    payload jsonb NOT NULL,
                    status text NOT NULL,
                    priority smallint NOT NULL,
                    worker text,
                    result jsonb,
                    created_at timestamptz NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at timestamptz NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """,
                f"""
                CREATE INDEX "ix_{table}_acquire"
                ON {qualified} (queue, status, priority DESC, created_at)
                """,
                f"""
                CREATE INDEX "ix_{table}_retention"
                ON {qualified} (updated_at, status)
                """,
            ),
        ),
    )


class SchemaManager:
    """
    Applies the migration sequence and reports the current schema version.

    The applied-migration ledger lives in ``"<schema>"."_<table>_migrations"``,
    next to the jobs table it describes.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        schema: str = DEFAULT_SCHEMA,
        table: str = DEFAULT_TABLE,
        migrations: Sequence[Migration] | None = None,
    ):
        """
        Initialize the schema manager.

        Args:
            engine: The async database engine.
            schema: Schema holding the jobs table.
            table: Name of the jobs table.
            migrations: Migration sequence. Defaults to the built-in one.

        Raises:
            InvalidArgumentError: If an identifier is malformed or the
                migration versions are not unique and ascending.
        """
        self._schema = validate_identifier("schema", schema)
        self._table = validate_identifier("table", table, MAX_TABLE_NAME_LENGTH)
        self._engine = engine
        self._ledger = build_ledger_table(schema, table)
        self._lock_key = f"pgjobqueue:{schema}.{table}"
        self._migrations = (
            tuple(migrations)
            if migrations is not None
            else build_migrations(schema, table)
        )

        versions = [m.version for m in self._migrations]
        if versions != sorted(set(versions)):
            raise InvalidArgumentError(
                "migrations", versions, "versions must be unique and ascending"
            )

    @property
    def migrations(self) -> tuple[Migration, ...]:
        """Get the migration sequence."""
        return self._migrations

    @property
    def latest_version(self) -> str | None:
        """Get the version the schema is brought to by ``upgrade``."""
        return self._migrations[-1].version if self._migrations else None

    async def upgrade(self) -> list[str]:
        """
        Apply every migration that is not yet in the ledger.

        Returns:
            Versions applied by this call, in order. Empty when the schema
            was already up to date.

        Raises:
            sqlalchemy.exc.DBAPIError: If a migration step fails. The failed
                step and its ledger row are rolled back together.
        """
        with get_tracer().start_as_current_span(SPAN_UPGRADE_SCHEMA) as span:
            span.set_attribute("schema", self._schema)
            span.set_attribute("table", self._table)

            async with self._engine.begin() as conn:
                await self._lock(conn)
                await conn.execute(CreateTable(self._ledger, if_not_exists=True))

            applied = set(await self.applied_versions())
            newly_applied: list[str] = []

            for migration in self._migrations:
                if migration.version in applied:
                    continue

                async with self._engine.begin() as conn:
                    await self._lock(conn)

                    # Another initializer may have won the lock first
                    if await self._is_applied(conn, migration.version):
                        continue

                    for statement in migration.statements:
                        await conn.execute(text(statement))
                    await conn.execute(
                        insert(self._ledger).values(version=migration.version)
                    )

                newly_applied.append(migration.version)
                logger.info(
                    "Applied schema migration",
                    extra={
                        "schema": self._schema,
                        "table": self._table,
                        "version": migration.version,
                    },
                )

            return newly_applied

    async def applied_versions(self) -> list[str]:
        """
        Get the versions recorded in the ledger.

        Returns:
            Applied versions in ascending order; empty if the ledger does not
            exist yet.
        """
        async with self._engine.connect() as conn:
            exists = await conn.scalar(
                select(func.to_regclass(self._qualified_ledger_name()))
            )
            if exists is None:
                return []

            result = await conn.execute(
                select(self._ledger.c.version).order_by(self._ledger.c.version)
            )
            return [row.version for row in result]

    async def current_version(self) -> str | None:
        """Get the latest applied version, or None before the first upgrade."""
        versions = await self.applied_versions()
        return versions[-1] if versions else None

    async def _lock(self, conn: AsyncConnection) -> None:
        await conn.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": self._lock_key},
        )

    async def _is_applied(self, conn: AsyncConnection, version: str) -> bool:
        found = await conn.scalar(
            select(self._ledger.c.version).where(self._ledger.c.version == version)
        )
        return found is not None

    def _qualified_ledger_name(self) -> str:
        return f'"{self._schema}"."{ledger_table_name(self._table)}"'
