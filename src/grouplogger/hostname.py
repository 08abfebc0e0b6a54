"""Hostname label for common labels.

Entries from several instances of a service land in the same log. A
``hostname`` label tells them apart: on Compute Engine (and GKE nodes) it
is the instance name from the metadata server, elsewhere the local host
name.

The lookup costs a network round trip on GCE, so it runs at most once per
process. The result is cached behind a lock with a double-checked flag;
threads racing on first use block until the single lookup finishes and
all see the same value. Failures are not raised: the label is then the
empty string for the rest of the process.

Example:
    labels = with_hostname({"service": "web"})
    group = client.logger(request, "web", labels=labels)
"""

from __future__ import annotations

import os
import socket
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import httpx

from grouplogger.observability import get_logger

logger = get_logger(__name__)

#: Label key written by with_hostname().
HOSTNAME_LABEL = "hostname"

#: Environment variable overriding the metadata server address.
METADATA_HOST_ENV = "GCE_METADATA_HOST"

#: Link-local address of the metadata server, used to probe for GCE.
METADATA_IP = "169.254.169.254"

#: DNS name of the metadata server.
METADATA_HOST = "metadata.google.internal"

METADATA_FLAVOR_HEADER = "Metadata-Flavor"
METADATA_FLAVOR = "Google"

#: Seconds to wait on the metadata server before giving up.
DEFAULT_METADATA_TIMEOUT = 1.0


@runtime_checkable
class MetadataProvider(Protocol):  # pragma: no cover
    """Protocol for platform metadata queries."""

    def on_gce(self) -> bool:
        """Report whether the process runs on Google Compute Engine."""
        ...

    def instance_name(self) -> str:
        """Return the instance name. May raise on lookup failure."""
        ...


class GCEMetadataProvider:
    """Queries the Compute Engine metadata server over HTTP.

    Args:
        host: Metadata server host. Defaults to ``$GCE_METADATA_HOST``,
            then ``metadata.google.internal``.
        timeout: Per-request timeout in seconds.
        client: httpx client to use; one is created per call otherwise.
    """

    def __init__(
        self,
        host: str | None = None,
        timeout: float = DEFAULT_METADATA_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self.host = host or os.environ.get(METADATA_HOST_ENV) or METADATA_HOST
        self.timeout = timeout
        self._client = client

    def _get(self, url: str) -> httpx.Response:
        headers = {METADATA_FLAVOR_HEADER: METADATA_FLAVOR}
        if self._client is not None:
            return self._client.get(url, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(url, headers=headers)

    def on_gce(self) -> bool:
        """Detect GCE by environment override or by probing the server.

        The probe goes to the link-local IP so a missing DNS entry does not
        cost a resolver timeout off GCE.
        """
        if os.environ.get(METADATA_HOST_ENV):
            return True
        try:
            response = self._get(f"http://{METADATA_IP}")
        except httpx.HTTPError:
            return False
        return response.headers.get(METADATA_FLAVOR_HEADER) == METADATA_FLAVOR

    def instance_name(self) -> str:
        """Fetch ``instance/name`` from the metadata server.

        Raises:
            httpx.HTTPError: On connection failure or non-2xx status.
        """
        response = self._get(
            f"http://{self.host}/computeMetadata/v1/instance/name"
        )
        response.raise_for_status()
        return response.text.strip()


# =============================================================================
# Process-wide cache
# =============================================================================

_hostname = ""
_hostname_initialized = False
_hostname_lock = threading.Lock()


def _lookup_hostname(
    provider: MetadataProvider, gethostname: Callable[[], str]
) -> str:
    """Run the platform query once. Returns "" on any failure.

    Besides network errors this covers a malformed ``GCE_METADATA_HOST``
    (``httpx.InvalidURL``) and whatever a custom provider raises.
    """
    try:
        if provider.on_gce():
            return provider.instance_name()
        return gethostname()
    except Exception as err:
        logger.debug("Hostname lookup failed", error=repr(err))
        return ""


def detect_hostname(
    provider: MetadataProvider | None = None,
    gethostname: Callable[[], str] = socket.gethostname,
) -> str:
    """Return the cached hostname, computing it on first use.

    Args:
        provider: Metadata source for the first lookup. Defaults to
            GCEMetadataProvider(). Ignored once the cache is filled.
        gethostname: Local hostname function used off GCE.

    Returns:
        Instance name on GCE, local hostname elsewhere, "" if the lookup
        failed.
    """
    global _hostname, _hostname_initialized

    if not _hostname_initialized:
        with _hostname_lock:
            if not _hostname_initialized:
                _hostname = _lookup_hostname(
                    provider or GCEMetadataProvider(), gethostname
                )
                _hostname_initialized = True
    return _hostname


def with_hostname(
    labels: dict[str, str] | None = None,
    provider: MetadataProvider | None = None,
) -> dict[str, str]:
    """Add the ``hostname`` label to a labels dict.

    Mutates and returns ``labels``; a new dict is created when None.

    Example:
        >>> client.logger(request, "web", labels=with_hostname())
    """
    if labels is None:
        labels = {}
    labels[HOSTNAME_LABEL] = detect_hostname(provider)
    return labels


def reset_hostname_cache() -> None:
    """Forget the cached hostname (for tests)."""
    global _hostname, _hostname_initialized

    with _hostname_lock:
        _hostname = ""
        _hostname_initialized = False
