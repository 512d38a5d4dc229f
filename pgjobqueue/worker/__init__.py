"""
Worker module.
Contains the job worker and the handler registry.
"""

from pgjobqueue.worker.handlers import get_handler, list_handlers, register_handler
from pgjobqueue.worker.main import Worker, run

__all__ = ["Worker", "run", "register_handler", "get_handler", "list_handlers"]
