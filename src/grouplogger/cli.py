"""CLI entry point for grouplogger.

Provides the ``grouplogger`` console script with subcommands:

- ``ping``: Write a ``ping`` entry through the configured backend
- ``hostname``: Print the hostname label this process would use

Usage::

    GROUPLOGGER_PARENT=projects/my-app grouplogger ping
    grouplogger ping --parent projects/my-app
    grouplogger hostname
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from functools import lru_cache

from grouplogger.client import Client
from grouplogger.config import ClientConfig
from grouplogger.hostname import detect_hostname


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get the CLI output logger (message-only format, stderr)."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger(__name__)


def run_ping(parent: str | None) -> int:
    """Ping the backend for ``parent`` (or the environment's parent).

    Returns:
        0 on success, 1 when configuration is invalid or the write fails.
    """
    try:
        config = (
            ClientConfig(parent=parent) if parent else ClientConfig.from_env()
        )
    except ValueError as err:
        _get_logger().error(f"Invalid configuration: {err}")
        return 1

    with Client.from_config(config) as client:
        try:
            client.ping()
        except (OSError, RuntimeError) as err:
            _get_logger().error(f"Ping failed: {err}")
            return 1
    _get_logger().info(f"Ping written for {config.parent}")
    return 0


def run_hostname() -> int:
    hostname = detect_hostname()
    if not hostname:
        _get_logger().error("Hostname could not be determined")
        return 1
    print(hostname)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv.

    Returns:
        Process exit code.

    Raises:
        SystemExit: On --help or argument parsing errors.
    """
    parser = argparse.ArgumentParser(
        prog="grouplogger",
        description="Grouped request logging for Google Cloud Logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ping_parser = subparsers.add_parser(
        "ping",
        help="Write a ping entry to check the backend",
    )
    ping_parser.add_argument(
        "--parent",
        help="projects/<id> (default: $GROUPLOGGER_PARENT or $GOOGLE_CLOUD_PROJECT)",
    )

    subparsers.add_parser("hostname", help="Print the detected hostname label")

    args = parser.parse_args(argv)

    if args.command == "ping":
        return run_ping(args.parent)
    return run_hostname()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
