"""Structured diagnostic logging for grouplogger.

Builds on Python's standard logging module with:
- Structured data support (keyword arguments become key-value pairs)
- JSON formatting option for log aggregation
- Context management for per-request tracking

Everything lives under the ``grouplogger`` logger namespace and never
propagates to the root logger, so an application that forwards its own
records into a group (see :mod:`grouplogger.handler`) does not receive
the library's diagnostics a second time.

Example:
    logger = get_logger(__name__)
    logger.info("Client opened", parent="projects/demo")

    with LogContext(group_id="105445aa7843bc8bf206b12000100000/1"):
        logger.warning("Delivery failed", stream="web-app")

    configure_logging(json_format=True, force=True)
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

#: Root of the diagnostic logger hierarchy.
ROOT_LOGGER_NAME = "grouplogger"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "grouplogger_log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Adapter whose level methods accept structured keyword data.

    Wraps whatever ``logging.Logger`` already exists under the name, so it
    works when the host application created (or configured) that logger
    before importing grouplogger. The global logger class is not changed.
    Unknown keyword arguments are stored on the record as
    ``structured_data``, merged over the active ``LogContext``.

    Usage:
        logger = get_logger("grouplogger.client")
        logger.info("Logger created", name="web", group_id="abc")
    """

    #: Keyword arguments understood by ``Logger._log`` itself.
    _LOG_KWARGS = frozenset({"exc_info", "extra", "stack_info", "stacklevel"})

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Move structured keyword data into ``extra["structured_data"]``.

        Merge order is LogContext values < explicit kwargs, so values given
        at the call site override ambient context.
        """
        log_kwargs = {k: v for k, v in kwargs.items() if k in self._LOG_KWARGS}
        structured = {k: v for k, v in kwargs.items() if k not in self._LOG_KWARGS}

        extra = dict(log_kwargs.get("extra") or {})
        extra["structured_data"] = {**_log_context.get(), **structured}
        log_kwargs["extra"] = extra
        return msg, log_kwargs


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp - name - level - message | key=value key=value
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format the record and append its structured data, if any."""
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """JSON formatter emitting one object per record.

    Keys: timestamp (ISO 8601, UTC), level, logger, message, exception
    (only when exc_info is set), plus every structured data key at the top
    level. Values that are not JSON-serializable fall back to ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format a value for key=value output.

    None becomes ``null``, strings containing spaces are quoted, dicts and
    lists are JSON-encoded and everything else goes through ``str()``.

    Example:
        >>> _format_value("has spaces")
        '"has spaces"'
        >>> _format_value({"status": 200})
        '{"status": 200}'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Context manager adding key-value pairs to every diagnostic record.

    Backed by a ContextVar, so each thread and each asyncio task sees its
    own context. Contexts nest; inner values override outer ones.

    Usage:
        with LogContext(group_id="abc", name="web"):
            logger.info("Closing group")  # includes group_id and name
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._token = None

    def __enter__(self) -> LogContext:
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure the grouplogger diagnostic logger.

    Installs one stream handler on the ``grouplogger`` logger and stops
    propagation to the root logger. Idempotent: calls after the first are
    ignored unless ``force`` is True. Guarded by a lock so concurrent
    first calls configure exactly once.

    Args:
        level: Minimum level, as int or name. Default INFO.
        json_format: Use JSONFormatter instead of StructuredFormatter.
        stream: Output stream. Default ``sys.stderr``.
        include_structured: Append key=value data in text mode.
        force: Drop the current configuration and reconfigure.

    Example:
        >>> import io
        >>> buffer = io.StringIO()
        >>> configure_logging(stream=buffer, level="DEBUG", force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Internal implementation of configure_logging (assumes lock is held)."""
    global _configured

    if _configured:
        return

    if stream is None:
        stream = sys.stderr
    handler = logging.StreamHandler(stream)

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (assumes lock is held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Return diagnostic logging to the unconfigured state.

    Removes and closes every handler on the ``grouplogger`` logger. The
    next ``configure_logging()`` or ``get_logger()`` call reinitializes.
    Intended for tests.
    """
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured diagnostic logger.

    Configures logging with defaults on first use (INFO, text, stderr)
    using double-checked locking.

    Args:
        name: Logger name, normally ``__name__`` of a grouplogger module.

    Returns:
        StructuredLogger accepting ``logger.info("msg", key=value)``.

    Example:
        >>> logger = get_logger("grouplogger.backend")
        >>> logger.warning("Delivery failed", stream="web-app")
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    return StructuredLogger(logging.getLogger(name))
