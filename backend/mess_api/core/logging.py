"""
Structured logging for the mess API, built on structlog over stdlib logging.

Production renders one JSON object per line; every other environment gets the
coloured console renderer. Context bound by the request middleware
(request_id, method, path) is merged into every event, and every event is
stamped with the service name and environment.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from mess_api.core.config import Settings, get_settings

_HANDLER_NAME = "mess_api"

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def _service_stamper(settings: Settings) -> Processor:
    def stamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("env", settings.ENVIRONMENT)
        return event_dict

    return stamp


def _build_processors(settings: Settings) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_stamper(settings),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.ENVIRONMENT == "production":
        # JSON lines need the traceback as a string field
        processors.append(structlog.processors.format_exc_info)
    return processors


def _pick_renderer(environment: str) -> Processor:
    if environment == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    shared = _build_processors(settings)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain formats records from uvicorn/sqlalchemy the same way
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _pick_renderer(settings.ENVIRONMENT),
        ],
    )

    root_logger = logging.getLogger()
    # Lifespan can run more than once per process (reloads, test clients)
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
