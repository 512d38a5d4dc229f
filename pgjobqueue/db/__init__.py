"""
Database module.
Contains the connection, schema, migrations and the job queue itself.
"""

from pgjobqueue.db.connection import (
    close_db,
    create_test_engine,
    get_engine,
    get_job_queue,
    init_db,
)
from pgjobqueue.db.migrations import Migration, SchemaManager
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.db.retention import RetentionCleaner
from pgjobqueue.db.stats import StatsAggregator

__all__ = [
    "get_engine",
    "create_test_engine",
    "get_job_queue",
    "init_db",
    "close_db",
    "JobQueue",
    "Migration",
    "SchemaManager",
    "StatsAggregator",
    "RetentionCleaner",
]
