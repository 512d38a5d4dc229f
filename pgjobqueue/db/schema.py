"""
SQLAlchemy Core metadata describing the queue tables.

The schema and table names are chosen at runtime, so tables are built per
queue instance instead of being declared once at import time.
"""

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    SmallInteger,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

from pgjobqueue.constants import IDENTIFIER_PATTERN, MAX_IDENTIFIER_LENGTH
from pgjobqueue.errors import InvalidArgumentError

# Leaves room for the ledger and index names derived from the table name
MAX_TABLE_NAME_LENGTH = MAX_IDENTIFIER_LENGTH - len("_migrations") - 2


def validate_identifier(
    name: str, value: str, max_length: int = MAX_IDENTIFIER_LENGTH
) -> str:
    """
    Check a schema or table name against the identifier allow-list.

    Args:
        name: Argument name, used in the error message.
        value: The identifier to check.
        max_length: Longest accepted identifier.

    Returns:
        The identifier, unchanged.

    Raises:
        InvalidArgumentError: If the identifier is not letters, digits and
            underscores, starts with a digit, or is too long.
    """
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise InvalidArgumentError(
            name, value, f"must match {IDENTIFIER_PATTERN.pattern}"
        )
    if len(value) > max_length:
        raise InvalidArgumentError(
            name, value, f"must be at most {max_length} characters"
        )
    return value


def ledger_table_name(table: str) -> str:
    """Get the name of the migration ledger table for a jobs table."""
    return f"_{table}_migrations"


def build_jobs_table(schema: str, table: str) -> Table:
    """
    Build the jobs table bound to its own metadata.

    Args:
        schema: Validated schema name.
        table: Validated table name.

    Returns:
        Table: The jobs table.
    """
    metadata = MetaData(schema=schema)
    return Table(
        table,
        metadata,
        Column("id", Text, primary_key=True),
        Column("queue", Text, nullable=False),
        Column("payload", JSONB(none_as_null=True), nullable=False),
        Column("status", Text, nullable=False),
        Column("priority", SmallInteger, nullable=False),
        Column("worker", Text, nullable=True),
        Column("result", JSONB(none_as_null=True), nullable=True),
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    )


def build_ledger_table(schema: str, table: str) -> Table:
    """
    Build the migration ledger table that records applied versions.

    Args:
        schema: Validated schema name.
        table: Validated jobs table name.

    Returns:
        Table: The ledger table.
    """
    metadata = MetaData(schema=schema)
    return Table(
        ledger_table_name(table),
        metadata,
        Column("version", Text, primary_key=True),
        Column(
            "applied_at",
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
        ),
    )


__all__ = [
    "MAX_TABLE_NAME_LENGTH",
    "validate_identifier",
    "ledger_table_name",
    "build_jobs_table",
    "build_ledger_table",
]
