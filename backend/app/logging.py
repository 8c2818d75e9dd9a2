"""Logging configuration for the application."""

from __future__ import annotations

import contextvars
import logging

from app.config import settings

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id",
    default=None,
)
user_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id",
    default=None,
)

_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("user_id", user_id_var),
)


def _attach_context(record: logging.LogRecord) -> None:
    for name, var in _CONTEXT_FIELDS:
        current = getattr(record, name, None)
        setattr(record, name, current or var.get() or "-")


class RequestContextFilter(logging.Filter):
    """Attach request_id and user_id from contextvars to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        _attach_context(record)
        return True


def configure_logging() -> None:
    """Configure structured logging for the service."""
    factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = factory(*args, **kwargs)
        _attach_context(record)
        return record

    logging.setLogRecordFactory(record_factory)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=(
            "%(asctime)s %(levelname)s %(name)s %(message)s "
            "request_id=%(request_id)s user_id=%(user_id)s"
        ),
    )
    root_logger = logging.getLogger()
    context_filter = RequestContextFilter()
    root_logger.addFilter(context_filter)
    for handler in root_logger.handlers:
        handler.addFilter(context_filter)
