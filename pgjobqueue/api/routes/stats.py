"""
Queue statistics routes.
"""

from fastapi import APIRouter

from pgjobqueue.api.dependencies import QueueDep
from pgjobqueue.constants import API_V1_PREFIX
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.types.api import StatsResponse

router = APIRouter(prefix=API_V1_PREFIX, tags=["Stats"])


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Job counts",
    description="Count jobs grouped by queue and status.",
)
async def get_stats(job_queue: QueueDep) -> StatsResponse:
    """Get job counts and refresh the queue depth gauge with them."""
    counts = await job_queue.count_by_queue_by_status()
    get_metrics().update_queue_depth(counts)
    return StatsResponse(queues=counts)
