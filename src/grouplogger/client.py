"""Client creating group loggers.

A Client holds one backend connection and can be reused across requests,
producing a GroupLogger for each without repeating setup. Every logical
log name gets two streams: ``<name>-request`` for outer entries and
``<name>-app`` for inner entries. The suffixes are what the console
expects, so they are fixed.

Example:
    client = Client("projects/my-app")
    client.set_on_error(lambda err: sentry_sdk.capture_exception(err))

    group = client.logger(request, "web", labels=with_hostname())
    group.info("Info log entry body.")
    group.error("Error log entry body.")
    group.close()

    client.close()
"""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

from grouplogger.backend import Backend, ErrorCallback, JSONStreamBackend
from grouplogger.config import ClientConfig
from grouplogger.group_id import IDFactory, new_unique_id, resolve_group_id
from grouplogger.group_logger import GroupLogger
from grouplogger.handler import GroupLogHandler
from grouplogger.hostname import with_hostname
from grouplogger.observability import get_logger

logger = get_logger(__name__)

#: Format of a group's outer log name.
OUTER_FORMAT = "{}-request"
#: Format of a group's inner log name.
INNER_FORMAT = "{}-app"


def outer_log_name(name: str) -> str:
    return OUTER_FORMAT.format(name)


def inner_log_name(name: str) -> str:
    return INNER_FORMAT.format(name)


class Client:
    """Factory for GroupLoggers sharing one backend.

    Thread Safety:
        ``logger()`` may be called concurrently. ``set_on_error`` should be
        called once, before the first ``logger()`` call.
    """

    def __init__(
        self,
        parent: str,
        backend: Backend | None = None,
        config: ClientConfig | None = None,
        id_factory: IDFactory = new_unique_id,
    ) -> None:
        """Create a client for ``parent``.

        Args:
            parent: ``projects/<id>`` or a bare project id.
            backend: Backend to write through. Defaults to a
                JSONStreamBackend on ``config.stream`` (stdout).
            config: Common labels, hostname labelling and output stream.
                Defaults to ``ClientConfig(parent)``.
            id_factory: Group id generator used when a request carries no
                trace header.

        Raises:
            ValueError: If parent is empty.
        """
        if not parent:
            raise ValueError("parent is required, e.g. 'projects/my-app'")
        self.parent = parent
        self.config = config or ClientConfig(parent=parent)
        self.backend: Backend = (
            backend
            if backend is not None
            else JSONStreamBackend(parent, stream=self.config.stream)
        )
        self.id_factory = id_factory
        self._closed = False
        logger.debug("Client opened", parent=parent)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> Client:
        return cls(config.parent, config=config, **kwargs)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **kwargs: Any
    ) -> Client:
        """Create a client from ``GROUPLOGGER_*`` environment variables."""
        return cls.from_config(ClientConfig.from_env(environ), **kwargs)

    @property
    def closed(self) -> bool:
        return self._closed

    def logger(
        self,
        request: Any,
        name: str,
        labels: Mapping[str, str] | None = None,
    ) -> GroupLogger:
        """Create a GroupLogger for a new group of entries about ``request``.

        The group id is the request's ``X-Cloud-Trace-Context`` header when
        present, otherwise a fresh id from the client's id factory.

        Args:
            request: Request object (anything with ``headers``), or None.
            name: Logical log name. Streams are ``<name>-request`` and
                ``<name>-app``.
            labels: Labels for both streams, merged over the config's
                common labels.

        Returns:
            A new GroupLogger.

        Raises:
            RuntimeError: If the client has been closed.
        """
        if self._closed:
            raise RuntimeError("client is closed")

        common = {**self.config.labels, **(labels or {})}
        if self.config.include_hostname:
            common = with_hostname(common)

        outer = self.backend.logger(outer_log_name(name), common)
        inner = self.backend.logger(inner_log_name(name), common)
        return GroupLogger(
            request, resolve_group_id(request, self.id_factory), outer, inner
        )

    def log_handler(self) -> GroupLogHandler:
        """Return a logging handler forwarding records to the current group.

        Records below ``config.handler_level`` are dropped.
        """
        return GroupLogHandler(min_severity=self.config.handler_level)

    def ping(self) -> None:
        """Check that the backend accepts writes.

        Writes a ``ping`` entry to the log named ``ping``.

        Raises:
            Whatever the backend raises on failure.
        """
        self.backend.ping()

    def set_on_error(self, callback: ErrorCallback | None) -> None:
        """Set the function called when delivering an entry fails.

        Logging calls never raise; this is the only place delivery errors
        surface. Call once, before any other method.
        """
        self.backend.on_error = callback

    def close(self) -> None:
        """Deliver pending entries and close the backend.

        Open group loggers are not closed: their outer entries are not
        written. Calling close twice is harmless.
        """
        if self._closed:
            return
        self._closed = True
        self.backend.close()
        logger.debug("Client closed", parent=self.parent)

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
