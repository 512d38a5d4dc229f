"""
FastAPI dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from pgjobqueue.db.queue import JobQueue


def get_queue(request: Request) -> JobQueue:
    """Get the job queue attached to the application."""
    return request.app.state.job_queue


QueueDep = Annotated[JobQueue, Depends(get_queue)]
