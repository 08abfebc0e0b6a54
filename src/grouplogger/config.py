"""Client configuration.

Settings can be built in code or read from the environment:

- ``GROUPLOGGER_PARENT``: ``projects/<id>`` or a project id. Falls back to
  ``GOOGLE_CLOUD_PROJECT``, which Google runtimes set.
- ``GROUPLOGGER_LABELS``: common labels, ``key=value,key2=value2``.
- ``GROUPLOGGER_HOSTNAME_LABEL``: ``1``/``true``/``yes``/``on`` to add the
  hostname label to every stream.
- ``GROUPLOGGER_HANDLER_LEVEL``: minimum severity name forwarded by
  GroupLogHandler (default ``DEBUG``).
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import IO

from grouplogger.severity import Severity

PARENT_ENV = "GROUPLOGGER_PARENT"
PROJECT_ENV = "GOOGLE_CLOUD_PROJECT"
LABELS_ENV = "GROUPLOGGER_LABELS"
HOSTNAME_ENV = "GROUPLOGGER_HOSTNAME_LABEL"
HANDLER_LEVEL_ENV = "GROUPLOGGER_HANDLER_LEVEL"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def _env_bool(value: str | None, name: str) -> bool:
    normalized = (value or "").strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def parse_labels(value: str) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` into a dict.

    Blank items are skipped. Whitespace around keys and values is removed.

    Raises:
        ValueError: If an item has no ``=`` or an empty key.

    Example:
        >>> parse_labels("service=web, env=prod")
        {'service': 'web', 'env': 'prod'}
    """
    labels: dict[str, str] = {}
    for item in value.split(","):
        if not item.strip():
            continue
        key, sep, label = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"invalid label {item.strip()!r}, expected key=value")
        labels[key.strip()] = label.strip()
    return labels


def _parse_level(name: str) -> Severity:
    try:
        return Severity[name.strip().upper()]
    except KeyError:
        raise ValueError(f"unknown severity {name!r}") from None


@dataclass
class ClientConfig:
    """Configuration for a Client.

    Attributes:
        parent: ``projects/<id>`` or bare project id. Required.
        labels: Common labels for every stream the client creates.
        include_hostname: Add the process-wide ``hostname`` label.
        stream: Output for the bundled JSON backend (default stdout).
        handler_level: Lowest severity GroupLogHandler forwards.
    """

    parent: str
    labels: dict[str, str] = field(default_factory=dict)
    include_hostname: bool = False
    stream: IO[str] = field(default_factory=lambda: sys.stdout)
    handler_level: Severity = Severity.DEBUG

    def __post_init__(self) -> None:
        if not self.parent:
            raise ValueError(
                f"parent is required (set {PARENT_ENV} or {PROJECT_ENV})"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Raises:
            ValueError: If no parent is set or a value does not parse.
        """
        env = os.environ if environ is None else environ
        parent = env.get(PARENT_ENV) or env.get(PROJECT_ENV) or ""
        return cls(
            parent=parent.strip(),
            labels=parse_labels(env.get(LABELS_ENV, "")),
            include_hostname=_env_bool(env.get(HOSTNAME_ENV), HOSTNAME_ENV),
            handler_level=_parse_level(env.get(HANDLER_LEVEL_ENV, "DEBUG")),
        )
