"""
Structured logging setup using structlog.

Library modules keep using ``logging.getLogger(__name__)`` with ``extra``
fields; ``setup_logging`` routes those records through structlog so the
extras, bound job context and trace ids all land in one rendered line.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from pgjobqueue.config import get_settings

# Loggers that only need to speak up when something is wrong
_QUIET_LOGGERS = ("uvicorn.access", "httpx")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach ``trace_id``/``span_id`` of the recording span, if there is one."""
    span = trace.get_current_span()
    if not span.is_recording():
        return event_dict

    span_context = span.get_span_context()
    event_dict["trace_id"] = format(span_context.trace_id, "032x")
    event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def _pre_chain() -> list[Any]:
    # Runs for structlog loggers and for plain stdlib records alike
    return [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structured logging for a queue process.

    Replaces the root logger's handlers with a single stdout handler.

    Args:
        level: Log level name. Defaults to ``settings.log_level``.
        log_format: ``json`` or ``console``. Defaults to ``settings.log_format``.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format or settings.log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # SQL echo only at DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if log_level <= logging.DEBUG else logging.WARNING
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def bind_job_context(job_id: str, queue: str, worker: str | None = None) -> None:
    """
    Bind the job being processed to every log line emitted from this task.

    Args:
        job_id: The job ID.
        queue: The job's queue.
        worker: The worker processing the job.
    """
    context: dict[str, Any] = {"job_id": job_id, "queue": queue}
    if worker is not None:
        context["worker"] = worker
    structlog.contextvars.bind_contextvars(**context)


def clear_job_context() -> None:
    """Drop the job context bound by ``bind_job_context``."""
    structlog.contextvars.unbind_contextvars("job_id", "queue", "worker")
