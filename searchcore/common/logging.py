"""Structured logging configuration for the search engine.

This module standardizes logging using ``structlog``. It produces either JSON
(for machines) or a pretty console format (for humans) and binds the service
name and deployment environment so logs are useful when aggregated.

Typical usage
- Call ``configure_logging_from_settings(settings)`` at startup
  (``create_search_service`` does this)
- Wrap a unit of work in ``search_context(model=...)`` so every log line
  emitted while it runs, providers included, carries the model
- Acquire loggers via ``structlog.get_logger(name)`` or ``get_logger``
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

from .config import EngineSettings


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    environment: Optional[str] = None,
) -> None:
    """Configure structured logging for the engine.

    Parameters
    - service_name: Logical service identifier bound to each log line
    - log_level: ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR`` (case-insensitive)
    - log_format: ``json`` for production; ``console`` for local dev
    - environment: Deployment environment bound as ``env`` when given
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    context = {"service": service_name}
    if environment:
        context["env"] = environment
    structlog.contextvars.bind_contextvars(**context)


def configure_logging_from_settings(
    settings: EngineSettings,
    service_name: str = "search-engine",
) -> None:
    """Configure logging from ``SEARCH_LOG_LEVEL``, ``SEARCH_LOG_FORMAT`` and ``SEARCH_ENV``."""
    configure_logging(
        service_name,
        log_level=settings.search_log_level,
        log_format=settings.search_log_format,
        environment=settings.search_env,
    )


@contextmanager
def search_context(**context: Any) -> Iterator[None]:
    """Bind ``context`` to every log line emitted inside the block.

    Bindings live in contextvars, so each asyncio task (one per model in a
    federated search) sees only its own.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log the timing of a search operation.

    Parameters
    - operation: ``search`` or ``federated_search``
    - duration_ms: Elapsed time in milliseconds, rounded to 0.01
    - kwargs: Result dimensions (model, sort, total, count, status)
    """
    get_logger("search_engine.performance").info(
        f"Operation {operation} completed",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **kwargs
    )
