"""Structured logging configuration.

Every strata module obtains its logger through get_logger(__name__). Events are
rendered as JSON lines with an ISO timestamp and the log level; debug events are
dropped unless the host application configures structlog itself.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger with structured output.

    Notes:
        structlog is only configured here when the host application has not
        configured it already.
    """
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            cache_logger_on_first_use=True,
        )
    return structlog.get_logger(name)
