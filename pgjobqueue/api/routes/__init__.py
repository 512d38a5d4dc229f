"""
API routes module.
"""

from pgjobqueue.api.routes.health import router as health_router
from pgjobqueue.api.routes.jobs import router as jobs_router
from pgjobqueue.api.routes.stats import router as stats_router

__all__ = ["jobs_router", "stats_router", "health_router"]
