"""Grouped request logging for Google Cloud Logging.

Groups the log entries written while handling one request under a single
expandable entry in the logging console, the way App Engine standard
shows request logs.

Example:
    from grouplogger import Client, HTTPRequest, with_hostname

    client = Client("projects/my-app")

    group = client.logger(request, "web", labels=with_hostname())
    group.info("Info log entry body.")
    group.error("Error log entry body.")
    group.close_with(HTTPRequest(status=500))

    client.close()
"""

from grouplogger.backend import (
    Backend,
    JSONStreamBackend,
    JSONStreamLogger,
    StreamLogger,
)
from grouplogger.client import Client
from grouplogger.config import ClientConfig
from grouplogger.entry import Entry, HTTPRequest
from grouplogger.group_id import TRACE_HEADER, new_unique_id, resolve_group_id
from grouplogger.group_logger import GroupLogger
from grouplogger.handler import GroupLogHandler, bind_group, current_group
from grouplogger.hostname import (
    GCEMetadataProvider,
    MetadataProvider,
    detect_hostname,
    with_hostname,
)
from grouplogger.severity import Severity, from_logging_level, parse_severity

__all__ = [
    # Core
    "Client",
    "ClientConfig",
    "GroupLogger",
    "Entry",
    "HTTPRequest",
    "Severity",
    "parse_severity",
    "from_logging_level",
    # Group ids
    "TRACE_HEADER",
    "new_unique_id",
    "resolve_group_id",
    # Backends
    "Backend",
    "StreamLogger",
    "JSONStreamBackend",
    "JSONStreamLogger",
    # Hostname label
    "GCEMetadataProvider",
    "MetadataProvider",
    "detect_hostname",
    "with_hostname",
    # stdlib logging bridge
    "GroupLogHandler",
    "bind_group",
    "current_group",
]
