"""Pytest configuration and fixtures for grouplogger tests.

Provides recording stream loggers standing in for the logging backend,
request doubles carrying headers, and resets the process-wide caches
(hostname label, diagnostic logging) around every test.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from grouplogger.hostname import reset_hostname_cache
from grouplogger.observability import reset_logging

FAKE_UUID = "fake_uuid"


@pytest.fixture
def fake_uuid():
    """Deterministic id factory used in place of uuid4."""
    return lambda: FAKE_UUID


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Clear the hostname cache and diagnostic logging around each test.

    Yields:
        None.
    """
    reset_hostname_cache()
    yield
    reset_hostname_cache()
    reset_logging()


@pytest.fixture
def outer_logger():
    """Stream logger double recording outer entries in ``log.call_args_list``."""
    return MagicMock(spec=["log", "flush"])


@pytest.fixture
def inner_logger():
    """Stream logger double recording inner entries in ``log.call_args_list``."""
    return MagicMock(spec=["log", "flush"])


@pytest.fixture
def make_request():
    """Factory for minimal request-like objects.

    Returns:
        Callable(headers=None, url=...) -> SimpleNamespace with headers,
        method, url and client attributes, shaped like a Starlette request.
    """

    def _make(headers=None, url="https://www.vimeo.com", method="GET"):
        return SimpleNamespace(
            headers=dict(headers or {}),
            method=method,
            url=url,
            client=SimpleNamespace(host="203.0.113.7", port=51234),
        )

    return _make
