"""Group identifier selection.

The console groups entries that share a trace. Behind Google front ends
(App Engine, Cloud Run, the HTTP(S) load balancer) each request arrives
with an ``X-Cloud-Trace-Context`` header; using its value as the group id
puts the group next to the platform's own request log. Elsewhere a fresh
UUID keeps groups apart.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from typing import Any

#: Request header carrying the platform trace context.
TRACE_HEADER = "X-Cloud-Trace-Context"

#: Signature of a unique-id generator.
IDFactory = Callable[[], str]


def new_unique_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid.uuid4())


def header_value(headers: Any, name: str) -> str:
    """Look a header up case-insensitively, returning "" when absent.

    Starlette's ``Headers`` is already case-insensitive; a plain dict is
    tried exactly first and then scanned.
    """
    if headers is None:
        return ""
    value = headers.get(name)
    if value:
        return str(value)
    if isinstance(headers, Mapping):
        lowered = name.lower()
        for key, candidate in headers.items():
            if str(key).lower() == lowered and candidate:
                return str(candidate)
    return ""


def resolve_group_id(request: Any = None, id_factory: IDFactory = new_unique_id) -> str:
    """Select the id by which a group is grouped in the logging console.

    If ``request`` has a non-empty ``X-Cloud-Trace-Context`` header, its
    value is used as-is (no parsing of the ``TRACE_ID/SPAN_ID;o=1`` form).
    Otherwise ``id_factory`` is called; tests pass a stub to make the id
    deterministic.

    Args:
        request: Request-like object with a ``headers`` mapping, or None.
        id_factory: Zero-argument callable returning a new id.

    Returns:
        The group id. Never raises.

    Example:
        >>> resolve_group_id(None, lambda: "fake_uuid")
        'fake_uuid'
    """
    if request is not None:
        trace = header_value(getattr(request, "headers", None), TRACE_HEADER)
        if trace:
            return trace
    return id_factory()
