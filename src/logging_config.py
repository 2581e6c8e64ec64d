"""Logging configuration for the location engine."""

import logging
import os
import sys


def setup_logging(log_level: str | None = None) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Defaults to the LOG_LEVEL env var or INFO.
    """
    level = log_level or os.getenv("LOG_LEVEL", "INFO")

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # stderr keeps CLI output on stdout clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Avoid stacking handlers when called again (reloads, tests)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_flatlist_handler", False):
            root_logger.removeHandler(handler)
    console_handler._flatlist_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
