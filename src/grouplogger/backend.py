"""Logging backend collaborators.

A group logger only needs somewhere to submit entries. The protocols in
this module describe that surface; :class:`JSONStreamBackend` is the
bundled implementation.

Protocols:
    StreamLogger: One named log stream accepting entries.
    Backend: Factory for stream loggers plus connection checks.

JSONStreamBackend writes each entry as one line of Cloud Logging
structured JSON. On Cloud Run, GKE, App Engine flexible and Cloud
Functions the platform agent ingests stdout lines in this shape, so no
API client or credentials are needed. Writes happen on a
``logging.handlers.QueueListener`` thread: ``StreamLogger.log`` only
serializes and enqueues, and never blocks on the output stream.

Errors never propagate to the code that logged. They are passed to the
backend's ``on_error`` callback, or reported on the diagnostic logger
when no callback is set.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from typing import IO, Any, Protocol, runtime_checkable
from urllib.parse import quote

from grouplogger.entry import Entry
from grouplogger.observability import get_logger
from grouplogger.severity import Severity

logger = get_logger(__name__)

#: Signature of the delivery error callback.
ErrorCallback = Callable[[BaseException], None]

#: Structured-logging keys recognized by the Cloud Logging agent.
TRACE_KEY = "logging.googleapis.com/trace"
LABELS_KEY = "logging.googleapis.com/labels"

#: Log name used by ``ping()``.
PING_LOG_NAME = "ping"


@runtime_checkable
class StreamLogger(Protocol):  # pragma: no cover
    """Protocol for a single named log stream."""

    def log(self, entry: Entry) -> None:
        """Submit an entry for delivery. Must not raise or block on I/O."""
        ...

    def flush(self) -> None:
        """Block until entries submitted so far have been delivered."""
        ...


@runtime_checkable
class Backend(Protocol):  # pragma: no cover
    """Protocol for a logging backend connection.

    ``on_error`` is called with every delivery failure. It is configured
    once, before any stream logger is used.
    """

    on_error: ErrorCallback | None

    def logger(
        self, name: str, labels: Mapping[str, str] | None = None
    ) -> StreamLogger:
        """Return a stream logger writing to the log ``name``."""
        ...

    def ping(self) -> None:
        """Write a test entry synchronously. Raises on failure."""
        ...

    def close(self) -> None:
        """Deliver pending entries and release resources."""
        ...


def project_id(parent: str) -> str:
    """Extract the project id from a parent resource name.

    Accepts a bare project id or ``projects/<id>``.

    Example:
        >>> project_id("projects/my-app")
        'my-app'
        >>> project_id("my-app")
        'my-app'
    """
    if parent.startswith("projects/"):
        return parent.split("/", 2)[1]
    return parent


def structured_entry(
    entry: Entry,
    log_name: str,
    common_labels: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Build the structured-logging object for an entry.

    Payload fields come first so the reserved keys (severity, trace,
    labels, httpRequest...) always win a name collision.

    Args:
        entry: Entry to serialize. Not modified.
        log_name: Full ``projects/<id>/logs/<name>`` resource name.
        common_labels: Stream labels; entry labels override them.

    Returns:
        JSON-ready dict.
    """
    timestamp = entry.timestamp or datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)

    record: dict[str, Any] = entry.payload_fields()
    record["severity"] = Severity(entry.severity).name
    record["timestamp"] = timestamp.isoformat()
    record["logName"] = log_name

    labels = {**(common_labels or {}), **entry.labels}
    if labels:
        record[LABELS_KEY] = labels
    if entry.trace:
        record[TRACE_KEY] = entry.trace
    if entry.http_request is not None:
        record["httpRequest"] = entry.http_request.to_dict()
    return record


class _EntryHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler run by the listener thread.

    Records arrive with their JSON line already in ``msg``. Write failures
    are routed to the owning backend instead of being printed to stderr.
    """

    def __init__(self, stream: IO[str], backend: JSONStreamBackend) -> None:
        super().__init__(stream)
        self.setFormatter(logging.Formatter("%(message)s"))
        self._backend = backend

    def handleError(self, record: logging.LogRecord) -> None:
        err = sys.exc_info()[1]
        if err is None:  # pragma: no cover
            err = RuntimeError("log entry write failed")
        self._backend.report_error(err)


class JSONStreamLogger:
    """Stream logger bound to one log name of a JSONStreamBackend."""

    def __init__(
        self,
        backend: JSONStreamBackend,
        name: str,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        self.backend = backend
        self.name = name
        self.labels = dict(labels or {})
        self.log_name = f"projects/{backend.project}/logs/{quote(name, safe='')}"

    def log(self, entry: Entry) -> None:
        """Serialize ``entry`` and enqueue it for the writer thread.

        Serialization errors and writes after the backend closed are
        reported through the backend's error path; nothing is raised.
        """
        try:
            line = json.dumps(
                structured_entry(entry, self.log_name, self.labels), default=str
            )
        except (TypeError, ValueError) as err:
            self.backend.report_error(err)
            return
        self.backend.enqueue(line)

    def flush(self) -> None:
        self.backend.flush()

    def __repr__(self) -> str:
        return f"JSONStreamLogger(name={self.name!r}, labels={self.labels!r})"


class JSONStreamBackend:
    """Backend writing Cloud Logging structured JSON lines to a stream.

    Thread Safety:
        ``log`` may be called from any thread; lines are written whole and
        in submission order by a single listener thread.

    Example:
        >>> backend = JSONStreamBackend("projects/my-app")
        >>> web = backend.logger("web-app", {"service": "web"})
        >>> web.log(Entry(severity=Severity.INFO, payload="hello"))
        >>> backend.close()
    """

    def __init__(self, parent: str, stream: IO[str] | None = None) -> None:
        """Start a backend for ``parent``.

        Args:
            parent: ``projects/<id>`` or a bare project id. Must not be
                empty.
            stream: Text stream receiving the lines. Default ``sys.stdout``.

        Raises:
            ValueError: If parent is empty.
        """
        if not parent or not project_id(parent):
            raise ValueError("parent must name a project, e.g. 'projects/my-app'")

        self.parent = parent
        self.project = project_id(parent)
        self.stream = stream if stream is not None else sys.stdout
        self.on_error: ErrorCallback | None = None

        self._queue: queue.Queue[logging.LogRecord] = queue.Queue()
        self._queue_handler = QueueHandler(self._queue)
        self._handler = _EntryHandler(self.stream, self)
        self._listener = QueueListener(self._queue, self._handler)
        self._state_lock = threading.Lock()
        self._closed = False
        self._listener.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def logger(
        self, name: str, labels: Mapping[str, str] | None = None
    ) -> JSONStreamLogger:
        return JSONStreamLogger(self, name, labels)

    def enqueue(self, line: str) -> None:
        """Hand a serialized line to the writer thread."""
        with self._state_lock:
            closed = self._closed
            if not closed:
                record = logging.makeLogRecord({"msg": line, "levelno": logging.INFO})
                self._queue_handler.handle(record)
        # on_error may log through this backend again; the lock must be free.
        if closed:
            self.report_error(RuntimeError("backend is closed"))

    def flush(self) -> None:
        """Wait until every queued line has been written."""
        if self._closed:
            return
        self._queue.join()
        self._handler.flush()

    def ping(self) -> None:
        """Write a ``ping`` entry synchronously and flush the stream.

        Unlike ``log``, failures raise, which is what makes this usable as
        a configuration check.

        Raises:
            RuntimeError: If the backend is closed.
            OSError: If the stream cannot be written.
        """
        if self._closed:
            raise RuntimeError("backend is closed")
        line = json.dumps(
            structured_entry(
                Entry(payload="ping"), f"projects/{self.project}/logs/{PING_LOG_NAME}"
            )
        )
        self._handler.acquire()
        try:
            self.stream.write(line + "\n")
            self.stream.flush()
        finally:
            self._handler.release()

    def close(self) -> None:
        """Write pending entries and stop the writer thread.

        The stream itself is not closed. Calling close twice is harmless.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        self._listener.stop()
        self._handler.flush()

    def report_error(self, err: BaseException) -> None:
        """Deliver a failure to ``on_error``, or log it when unset."""
        callback = self.on_error
        if callback is None:
            logger.warning(
                "Log entry delivery failed",
                error=repr(err),
                parent=self.parent,
            )
            return
        try:
            callback(err)
        except Exception:
            logger.exception("on_error callback raised", parent=self.parent)
