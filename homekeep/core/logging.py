"""Logfire setup plus small helpers for spans and structured log records.

Modules log through ``logging.getLogger(__name__)`` with ``extra={...}``.
Once ``configure_logfire()`` has run, those records are shipped alongside
the spans opened with ``span()``.
"""

import logging

import logfire
from fastapi import FastAPI

from homekeep import __version__
from homekeep.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Set up Logfire for this process; nothing leaves the host without a token."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="homekeep",
        service_version=__version__,
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire ready", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    logfire.instrument_fastapi(app)
    logger.info("Request tracing enabled", extra={"app": app.title})


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span, e.g. ``with span("task_service.create_task", frequency="weekly"):``."""
    return logfire.span(name, **attributes)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Emit ``message`` at ``level`` with ``context`` attached as record extras."""
    logger.log(logging.getLevelNamesMapping()[level.upper()], message, extra=context)
