"""Log entry records.

:class:`Entry` is what a group logger hands to a stream. :class:`HTTPRequest`
holds the completion statistics attached to the outer entry of a group;
the logging console nests inner entries under an outer entry only when the
outer entry carries an ``httpRequest`` and both share a trace.

Both records serialize to the field names of the Cloud Logging structured
logging format (``httpRequest``, ``requestMethod``, ``latency`` as
``"<seconds>s"``...). Zero-valued fields are left out.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from grouplogger.group_id import header_value
from grouplogger.severity import Severity


def format_latency(latency: timedelta) -> str:
    """Format a duration the way the backend expects it.

    Example:
        >>> format_latency(timedelta(seconds=1, milliseconds=500))
        '1.5s'
    """
    seconds = f"{latency.total_seconds():.9f}".rstrip("0").rstrip(".")
    return f"{seconds}s"


@dataclass
class HTTPRequest:
    """Completion statistics for the request a group describes.

    Every field defaults to its zero value; ``HTTPRequest()`` is the
    "no statistics" object used by ``GroupLogger.close()``.

    Attributes:
        request: The originating request object (opaque). Set by
            ``GroupLogger.close_with`` to the group's request.
        request_method: HTTP method. Read from ``request`` when empty.
        request_url: Full URL. Read from ``request`` when empty.
        status: Response status code, 0 when unknown.
        request_size: Request size in bytes.
        response_size: Response size in bytes.
        latency: Time spent serving the request.
        remote_ip: Client address. Read from ``request`` when empty.
        user_agent: User-Agent header. Read from ``request`` when empty.
        referer: Referer header. Read from ``request`` when empty.
        local_ip: Address of the serving host.
        cache_hit: Whether the response came from a cache.
    """

    request: Any = None
    request_method: str = ""
    request_url: str = ""
    status: int = 0
    request_size: int = 0
    response_size: int = 0
    latency: timedelta | None = None
    remote_ip: str = ""
    user_agent: str = ""
    referer: str = ""
    local_ip: str = ""
    cache_hit: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to the backend's ``httpRequest`` object.

        Method, URL, client address, User-Agent and Referer fall back to
        what the bound request object exposes (``method``, ``url``,
        ``client.host`` and ``headers``, as on a Starlette request).

        Returns:
            Dict with camelCase keys; zero-valued fields are omitted.

        Example:
            >>> HTTPRequest(status=200, latency=timedelta(seconds=1)).to_dict()
            {'status': 200, 'latency': '1s'}
        """
        req = self.request
        headers = getattr(req, "headers", None)
        client = getattr(req, "client", None)

        fields: dict[str, Any] = {
            "requestMethod": self.request_method or getattr(req, "method", "") or "",
            "requestUrl": self.request_url or str(getattr(req, "url", "") or ""),
            "requestSize": str(self.request_size) if self.request_size else "",
            "status": self.status,
            "responseSize": str(self.response_size) if self.response_size else "",
            "userAgent": self.user_agent or header_value(headers, "User-Agent"),
            "remoteIp": self.remote_ip or getattr(client, "host", "") or "",
            "serverIp": self.local_ip,
            "referer": self.referer or header_value(headers, "Referer"),
            "latency": format_latency(self.latency) if self.latency else "",
            "cacheHit": self.cache_hit,
        }
        return {key: value for key, value in fields.items() if value}


@dataclass
class Entry:
    """A single log entry.

    Attributes:
        severity: Entry severity. Defaults to ``Severity.DEFAULT``.
        payload: Message string or JSON-serializable structure. Opaque to
            the group logger.
        trace: Trace / group identifier. Overwritten by group loggers.
        labels: Per-entry labels, merged over the stream's common labels.
        timestamp: Event time; the backend uses submission time when None.
        http_request: Completion statistics, set on outer entries.
    """

    severity: Severity = Severity.DEFAULT
    payload: Any = None
    trace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None
    http_request: HTTPRequest | None = None

    def payload_fields(self) -> dict[str, Any]:
        """Return the payload as top-level fields of a structured entry.

        Mappings and dataclasses contribute their own keys. Anything else,
        strings included, becomes the ``message`` field.
        """
        payload = self.payload
        if payload is None:
            return {}
        if isinstance(payload, Mapping):
            return dict(payload)
        if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
            return dataclasses.asdict(payload)
        return {"message": payload}
