"""Diagnostic logging for grouplogger itself.

The group loggers handed out by :class:`grouplogger.Client` write to the
logging backend. This package is the separate channel the library uses to
report on its own behaviour: delivery failures without an error callback,
hostname lookup failures, middleware problems.

Example:
    from grouplogger.observability import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(group_id="abc"):
        logger.warning("Entry dropped", stream="web-app")
"""

from grouplogger.observability.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
