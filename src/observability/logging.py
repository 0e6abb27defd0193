"""
Structured Logging with structlog
=============================================================================
CONCEPT: Structured (JSON) Logging

Plain text:
    2025-01-15 10:30:45 INFO Updated employee 42 to version 3

Structured:
    {"timestamp": "2025-01-15T10:30:45Z", "level": "info",
     "event": "employee_updated", "employee_id": 42, "version": 3}

Every field is queryable, so "all update conflicts for employee 42" is a
filter instead of a regex.

STRUCTLOG PIPELINE:
    Raw event  ->  [merge_contextvars]  ->  [add_log_level]  ->  [TimeStamper]
               ->  [ConsoleRenderer | JSONRenderer]  ->  stdout

structlog is bridged onto stdlib logging, so uvicorn and SQLAlchemy output
passes through the same handler.
=============================================================================
"""

import logging
import sys

import structlog

from src.config import settings


_logging_configured: bool = False


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger.

    Called once from the application lifespan. Repeated calls are no-ops.
    Debug mode renders coloured console output, otherwise one JSON object
    per line.
    """
    global _logging_configured

    if _logging_configured:
        return

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=shared_processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer(),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Reduce noise from verbose third-party libraries
    for noisy_logger in ["uvicorn.access", "sqlalchemy.engine", "aiosqlite"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a named structured logger. Use the module's __name__.

    USAGE:
        logger = get_logger(__name__)
        logger.info("employee_created", employee_id=42)

    Request-scoped fields are bound with structlog.contextvars:

        structlog.contextvars.bind_contextvars(request_path="/employees")
    """
    return structlog.get_logger(name)
