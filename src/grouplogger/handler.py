"""Standard library logging bridge.

Application code mostly logs through ``logging.getLogger(__name__)``
rather than through a GroupLogger passed down every call. GroupLogHandler
forwards those records into the group of the request being handled, as
inner entries, so they count towards the group's severity.

The "current group" is a ContextVar: each thread and each asyncio task
sees the group bound in its own context. GroupLoggingMiddleware binds
one per request; outside a request records are dropped by this handler
(other handlers still see them).

Example:
    logging.getLogger().addHandler(client.log_handler())

    with bind_group(client.logger(request, "worker")) as group:
        logging.getLogger("jobs").warning("Retrying %s", job_id)
        group.close()
"""

from __future__ import annotations

import contextvars
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from grouplogger.entry import Entry
from grouplogger.group_logger import GroupLogger
from grouplogger.severity import Severity, from_logging_level

_current_group: contextvars.ContextVar[GroupLogger | None] = contextvars.ContextVar(
    "grouplogger_current_group", default=None
)

#: LogRecord attributes that are not user-supplied ``extra`` data.
_RECORD_ATTRS = frozenset(
    vars(logging.makeLogRecord({})).keys() | {"message", "asctime", "taskName"}
)


def current_group() -> GroupLogger | None:
    """Return the group bound to the current context, if any."""
    return _current_group.get()


@contextmanager
def bind_group(group: GroupLogger) -> Iterator[GroupLogger]:
    """Make ``group`` the current group for the duration of the block.

    The group is not closed on exit.
    """
    token = _current_group.set(group)
    try:
        yield group
    finally:
        _current_group.reset(token)


class GroupLogHandler(logging.Handler):
    """Handler forwarding log records to the current group.

    Includes a thread-local recursion guard so a backend that itself logs
    while writing cannot loop back into the group.
    """

    _local = threading.local()

    def __init__(
        self,
        group_getter: Callable[[], GroupLogger | None] = current_group,
        min_severity: Severity = Severity.DEFAULT,
        level: int = logging.NOTSET,
    ) -> None:
        """Create the handler.

        Args:
            group_getter: Returns the group to write to, or None to drop
                the record. Defaults to the ContextVar-bound group.
            min_severity: Records mapping below this severity are dropped.
            level: Standard handler level, applied before mapping.
        """
        super().__init__(level)
        self._get_group = group_getter
        self.min_severity = min_severity

    def emit(self, record: logging.LogRecord) -> None:
        """Write ``record`` as an inner entry of the current group.

        The payload carries the formatted message, the logger name, any
        ``extra`` fields or structured data on the record, and the
        traceback text when ``exc_info`` is set.
        """
        if getattr(self._local, "emitting", False):
            return

        try:
            self._local.emitting = True

            group = self._get_group()
            if group is None:
                return

            severity = from_logging_level(record.levelno)
            if severity < self.min_severity:
                return

            group.log_inner_entry(
                Entry(
                    severity=severity,
                    payload=self._payload(record),
                    timestamp=datetime.fromtimestamp(record.created, tz=UTC),
                )
            )
        except Exception:
            self.handleError(record)
        finally:
            self._local.emitting = False

    def _payload(self, record: logging.LogRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key != "structured_data"
        }
        payload.update(getattr(record, "structured_data", {}))
        payload["message"] = record.getMessage()
        payload["logger"] = record.name
        if record.exc_info:
            payload["exception"] = logging.Formatter().formatException(
                record.exc_info
            )
        return payload
