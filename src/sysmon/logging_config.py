"""
Logging configuration for sysmon.

Console output stays terse; the optional log file gets the detailed format.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "sysmon"


def setup_logging(
    level: int = logging.WARNING,
    log_file: Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level: Logging level for the console handler.
        log_file: Optional file path receiving DEBUG and above.
        console: Attach a stderr handler. Disabled while the terminal UI owns the screen.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
