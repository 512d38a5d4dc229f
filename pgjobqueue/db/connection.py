"""
Database connection management.
Handles the process-wide async SQLAlchemy engine and job queue.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from pgjobqueue.config import get_settings
from pgjobqueue.db.queue import JobQueue

logger = logging.getLogger(__name__)

# Global instances
_engine: AsyncEngine | None = None
_job_queue: JobQueue | None = None


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return _engine


def create_test_engine(database_url: str) -> AsyncEngine:
    """
    Create an engine with NullPool, for tests and one-off scripts.

    Args:
        database_url: The database URL.

    Returns:
        AsyncEngine: An engine that opens a fresh connection per checkout.
    """
    return create_async_engine(database_url, poolclass=NullPool)


def get_job_queue() -> JobQueue:
    """
    Get or create the job queue configured by the settings.

    Returns:
        JobQueue: The queue bound to the global engine.
    """
    global _job_queue
    if _job_queue is None:
        settings = get_settings()
        _job_queue = JobQueue(
            get_engine(),
            schema=settings.queue_schema,
            table=settings.queue_table,
            default_queue=settings.default_queue,
        )
    return _job_queue


async def init_db() -> JobQueue:
    """
    Initialize the configured job queue's schema.
    Should be called on process startup.

    Returns:
        JobQueue: The initialized queue.
    """
    queue = get_job_queue()
    await queue.initialize()
    logger.info(
        "Job queue initialized",
        extra={"schema_version": await queue.schema_version()},
    )
    return queue


async def close_db() -> None:
    """
    Dispose the engine and forget the global queue.
    Should be called on process shutdown.
    """
    global _engine, _job_queue
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _job_queue = None
        logger.info("Database connection closed")
