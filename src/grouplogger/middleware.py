"""FastAPI / Starlette integration.

GroupLoggingMiddleware opens one group per HTTP request, binds it as the
current group (so GroupLogHandler and ``get_group_logger`` find it) and
closes it with the response status, size and latency once the response
is ready. An unhandled exception closes the group with status 500, and
a cancelled request (client disconnect) with status 499, before
re-raising.

Example:
    client = Client.from_env()
    app = FastAPI()
    app.add_middleware(GroupLoggingMiddleware, client=client, name="web")

    @app.get("/items/{item_id}")
    async def read_item(item_id: int, group: GroupLogger = Depends(get_group_logger)):
        group.info({"message": "Reading item", "item_id": item_id})
        ...
"""

from __future__ import annotations

import time
from datetime import timedelta

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from grouplogger.client import Client
from grouplogger.entry import HTTPRequest
from grouplogger.group_logger import GroupLogger
from grouplogger.handler import bind_group
from grouplogger.observability import LogContext

#: Attribute on ``request.state`` holding the request's GroupLogger.
STATE_ATTR = "group_logger"

#: Status recorded when the endpoint raises.
SERVER_ERROR_STATUS = 500
#: Status recorded when the request is cancelled (client disconnect).
CLIENT_CLOSED_STATUS = 499


def _content_length(value: str | None) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


class GroupLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware writing one log group per request.

    Args:
        app: The wrapped ASGI app.
        client: Client creating the group loggers.
        name: Logical log name; streams are ``<name>-request``/``<name>-app``.
        labels: Extra labels for every group.
    """

    def __init__(
        self,
        app: ASGIApp,
        client: Client,
        name: str,
        labels: dict[str, str] | None = None,
    ) -> None:
        super().__init__(app)
        self.client = client
        self.name = name
        self.labels = dict(labels or {})

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        group = self.client.logger(request, self.name, self.labels)
        setattr(request.state, STATE_ATTR, group)
        stats = HTTPRequest(
            request_size=_content_length(request.headers.get("content-length")),
        )
        started = time.monotonic()

        with LogContext(group_id=group.group_id), bind_group(group):
            try:
                response = await call_next(request)
            except BaseException as err:
                # Cancellation means the client went away before the response.
                stats.status = (
                    SERVER_ERROR_STATUS
                    if isinstance(err, Exception)
                    else CLIENT_CLOSED_STATUS
                )
                stats.latency = timedelta(seconds=time.monotonic() - started)
                group.close_with(stats)
                raise

        stats.status = response.status_code
        stats.response_size = _content_length(response.headers.get("content-length"))
        stats.latency = timedelta(seconds=time.monotonic() - started)
        group.close_with(stats)
        return response


def get_group_logger(request: Request) -> GroupLogger:
    """FastAPI dependency returning the request's GroupLogger.

    Raises:
        RuntimeError: If GroupLoggingMiddleware is not installed.
    """
    group = getattr(request.state, STATE_ATTR, None)
    if group is None:
        raise RuntimeError("GroupLoggingMiddleware is not installed")
    return group
