from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from carrier.config import get_settings
from carrier.context import RequestContext


_CONFIGURED = False


def configure_logging(level: int | None = None) -> None:
    """Configure structlog + stdlib logging.

    JSON output unless ``CARRIER_LOG_JSON`` is false. Safe to call multiple
    times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    if level is None:
        level = settings.log_level_number

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            # Let ProcessorFormatter render stdlib log records too.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Any = structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Keep uvicorn's own loggers consistent with our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    _CONFIGURED = True


def bind_request_context(context: RequestContext) -> None:
    """Attach the context's tracing fields to every log line in this task."""

    structlog.contextvars.bind_contextvars(**context.logging_details())
