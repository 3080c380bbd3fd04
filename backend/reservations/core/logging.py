"""
Structured logging configuration using structlog.

Every log line carries the request context (request id, method, path) and,
when known, the acting clerk. Console output in development, JSON lines
when LOG_FORMAT is "json" or the environment is production.
"""

import logging
import sys
from typing import Optional

import structlog
from reservations.core.config import get_settings

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _add_service(logger, method_name: str, event_dict: dict) -> dict:
    settings = get_settings()
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def _use_json(settings) -> bool:
    if settings.LOG_FORMAT:
        return settings.LOG_FORMAT == "json"
    return settings.ENVIRONMENT == "production"


def setup_logging(level: Optional[str] = None) -> None:
    settings = get_settings()
    as_json = _use_json(settings)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if as_json:
        shared_processors += [_add_service, structlog.processors.format_exc_info]
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    # Replace, not append: setup may run more than once per process
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(request_id: str, method: str, path: str, actor: Optional[str] = None) -> None:
    """Reset the contextvars for a new request and bind its identity."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    if actor:
        structlog.contextvars.bind_contextvars(actor=actor)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
