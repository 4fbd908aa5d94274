"""Logging setup for the teardown CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Chatty third-party loggers (HTTP wire logs, token acquisition)
NOISY_LOGGERS = ("azure", "urllib3", "msal")


def setup_logging(level: str = "INFO", verbose: bool = False, console: Console = None) -> None:
    """Configure root logging with a rich handler.

    Args:
        level: Root log level name
        verbose: Keep third-party loggers at the root level and show file paths
        console: Console to log to (default: stderr)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
