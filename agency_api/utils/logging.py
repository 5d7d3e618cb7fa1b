"""
Structured logging for the analytics service, built on structlog.

Every event is a snake_case name plus key/value context. The HTTP middleware
binds the request id with ``bind_request_context`` so all events emitted
while serving a request carry it.
"""

import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from agency_api.config import get_settings

SERVICE_NAME = "agency-analytics"


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def normalize_values(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Make report values JSON friendly.

    Dates become ISO strings and DuckDB DECIMAL sums become floats.
    """
    for key, value in event_dict.items():
        if isinstance(value, (date, datetime)):
            event_dict[key] = value.isoformat()
        elif isinstance(value, Decimal):
            event_dict[key] = float(value)
    return event_dict


def configure_logging() -> None:
    """
    Configure stdlib logging and structlog.

    JSON lines when ``log_format`` is json outside dev mode, a plain console
    renderer otherwise.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # one line per request already comes from the tracing middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_severity,
            add_service,
            normalize_values,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(request_id: str, **values: Any) -> None:
    """Replace the per-request logging context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **values)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
