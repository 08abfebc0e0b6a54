"""Log entry severities.

Values match the LogSeverity enum of Google Cloud Logging, so the numeric
order is the order the console uses to rank entries and the value written
to the backend is just the upper-case member name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import IntEnum


class Severity(IntEnum):
    """Ordered severity of a log entry.

    ``DEFAULT`` is the lowest value and the lower bound used when a group
    closes without any inner entries.
    """

    DEFAULT = 0
    DEBUG = 100
    INFO = 200
    NOTICE = 300
    WARNING = 400
    ERROR = 500
    CRITICAL = 600
    ALERT = 700
    EMERGENCY = 800

    def __str__(self) -> str:
        return self.name.capitalize()


#: Standard library level thresholds, highest first.
_STDLIB_LEVELS: tuple[tuple[int, Severity], ...] = (
    (logging.CRITICAL, Severity.CRITICAL),
    (logging.ERROR, Severity.ERROR),
    (logging.WARNING, Severity.WARNING),
    (logging.INFO, Severity.INFO),
    (logging.DEBUG, Severity.DEBUG),
)


def parse_severity(name: str) -> Severity:
    """Return the Severity named by ``name``, ignoring case.

    Unknown names map to ``Severity.DEFAULT``.

    Example:
        >>> parse_severity("alert")
        <Severity.ALERT: 700>
        >>> parse_severity("verbose")
        <Severity.DEFAULT: 0>
    """
    try:
        return Severity[name.strip().upper()]
    except KeyError:
        return Severity.DEFAULT


def from_logging_level(level: int) -> Severity:
    """Map a standard library logging level onto a Severity.

    Levels between the named ones round down, so a custom level 25 is INFO.
    Anything below DEBUG (including NOTSET) is DEFAULT.

    Args:
        level: Numeric level from a ``logging.LogRecord``.

    Returns:
        The matching Severity.
    """
    for threshold, severity in _STDLIB_LEVELS:
        if level >= threshold:
            return severity
    return Severity.DEFAULT


def max_severity(severities: Iterable[Severity]) -> Severity:
    """Return the highest severity, or DEFAULT for an empty iterable."""
    return max(severities, default=Severity.DEFAULT)
