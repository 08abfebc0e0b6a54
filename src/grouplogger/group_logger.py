"""Grouped log entries.

A :class:`GroupLogger` writes to two streams. Inner entries are the
detail lines of a unit of work (usually one HTTP request). The outer
entry, written once when the group is closed, summarizes it: it carries
the request statistics and the highest severity among the inner entries.
Because both share the group id as their trace, the logging console
shows the inner entries nested under the outer one, the way App Engine
standard displays request logs.

Example:
    group = client.logger(request, "web")
    group.info("Loading profile")
    group.error({"message": "Profile missing", "user": user_id})
    group.close_with(HTTPRequest(status=404, latency=elapsed))
    # Outer entry on "web-request" has severity ERROR.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

from grouplogger.backend import StreamLogger
from grouplogger.entry import Entry, HTTPRequest
from grouplogger.severity import Severity, max_severity


class GroupLogger:
    """Writes one group of log entries.

    For inner entries to appear grouped, ``close_with`` (or ``close``, or
    ``log_outer_entry`` with an entry carrying ``http_request``) must be
    called. Closing is not guarded: each call writes another outer entry
    computed from the inner entries present at that moment, and inner
    entries logged after a close are still written and recorded.

    Thread Safety:
        Not thread-safe. A group logger belongs to one request handler. If
        several threads or tasks share one, serialize calls to the log and
        close methods yourself.

    Attributes:
        request: The originating request, or None.
        group_id: Trace value stamped on every entry of the group.
        outer_logger: Stream receiving the outer entry.
        inner_logger: Stream receiving inner entries.
        inner_entries: Inner entries logged so far, in call order.
    """

    def __init__(
        self,
        request: Any,
        group_id: str,
        outer_logger: StreamLogger,
        inner_logger: StreamLogger,
        inner_entries: list[Entry] | None = None,
    ) -> None:
        self.request = request
        self.group_id = group_id
        self.outer_logger = outer_logger
        self.inner_logger = inner_logger
        self.inner_entries: list[Entry] = (
            inner_entries if inner_entries is not None else []
        )

    def __repr__(self) -> str:
        return (
            f"GroupLogger(group_id={self.group_id!r}, "
            f"inner_entries={len(self.inner_entries)})"
        )

    # -------------------------------------------------------------------------
    # Closing
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the group without request statistics.

        Latency, status and sizes are left at zero. The client that created
        the group logger is not closed.
        """
        self.close_with(HTTPRequest())

    def close_with(self, stats: HTTPRequest) -> None:
        """Write the outer entry of the group.

        Sets ``stats.request`` to the group's request (None included) and
        logs an outer entry whose severity is the maximum inner severity so
        far, DEFAULT when there are none. ``inner_entries`` is left as is.

        Args:
            stats: Completion statistics for the request. Mutated.
        """
        stats.request = self.request
        entry = Entry(
            trace=self.group_id,
            severity=self.max_severity(),
            http_request=stats,
        )
        self.log_outer_entry(entry)

    def max_severity(self) -> Severity:
        """Return the highest severity among the inner entries logged so far."""
        return max_severity(entry.severity for entry in self.inner_entries)

    def __enter__(self) -> GroupLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Writing entries
    # -------------------------------------------------------------------------

    def log_inner_entry(self, entry: Entry) -> None:
        """Write an inner entry stamped with the group id and record it."""
        entry.trace = self.group_id
        self.inner_logger.log(entry)
        self.inner_entries.append(entry)

    def log_outer_entry(self, entry: Entry) -> None:
        """Write the top-level entry of the group, stamped with the group id.

        The console only groups under this entry if ``entry.http_request``
        is set.
        """
        entry.trace = self.group_id
        self.outer_logger.log(entry)

    def log(self, entry: Entry) -> None:
        """Write a caller-built entry as an inner entry."""
        self.log_inner_entry(entry)

    def _log_payload(
        self, severity: Severity, payload: Any, labels: dict[str, str] | None
    ) -> None:
        self.log_inner_entry(
            Entry(severity=severity, payload=payload, labels=dict(labels or {}))
        )

    def default(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity DEFAULT."""
        self._log_payload(Severity.DEFAULT, payload, labels)

    def debug(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity DEBUG."""
        self._log_payload(Severity.DEBUG, payload, labels)

    def info(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity INFO."""
        self._log_payload(Severity.INFO, payload, labels)

    def notice(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity NOTICE."""
        self._log_payload(Severity.NOTICE, payload, labels)

    def warning(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity WARNING."""
        self._log_payload(Severity.WARNING, payload, labels)

    def error(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity ERROR."""
        self._log_payload(Severity.ERROR, payload, labels)

    def critical(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity CRITICAL."""
        self._log_payload(Severity.CRITICAL, payload, labels)

    def alert(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity ALERT."""
        self._log_payload(Severity.ALERT, payload, labels)

    def emergency(self, payload: Any, labels: dict[str, str] | None = None) -> None:
        """Log ``payload`` as an inner entry with severity EMERGENCY."""
        self._log_payload(Severity.EMERGENCY, payload, labels)
