"""
Logging configuration for atlinks.

Log records are printed to stdout with a bullet point that reflects their
level, so status messages are easy to tell apart from report output.
"""

import logging as _logging
import sys
from typing import Dict

_IS_VERBOSE = False


def set_verbose(is_verbose: bool) -> None:
    """
    Enable or disable verbose output (stack traces on errors).

    Args:
        is_verbose: Whether verbose output is enabled
    """
    global _IS_VERBOSE
    _IS_VERBOSE = is_verbose  # type: ignore


def is_verbose() -> bool:
    return _IS_VERBOSE


BULLET_POINTS: Dict[int, str] = {
    _logging.INFO: "[*]",
    _logging.DEBUG: "[+]",
    _logging.WARNING: "[!]",
    _logging.ERROR: "[-]",
    _logging.CRITICAL: "[-]",
}


class Formatter(_logging.Formatter):
    """
    Formatter that prefixes each message with a level bullet point.

    - INFO:    [*]
    - DEBUG:   [+]
    - WARNING: [!]
    - ERROR:   [-]
    """

    def __init__(self) -> None:
        super().__init__("%(bullet)s %(message)s")

    def format(self, record: _logging.LogRecord) -> str:
        record.bullet = BULLET_POINTS.get(record.levelno, "[-]")
        return super().format(record)


def init(
    level: int = _logging.INFO, logger_name: str = "atlinks", propagate: bool = False
) -> None:
    """
    Attach a stdout handler with the bullet-point formatter to the logger.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.

    Args:
        level: Log level to set (default: INFO)
        logger_name: Name of the logger to configure (default: "atlinks")
        propagate: Whether to propagate logs to parent loggers (default: False)
    """
    handler = _logging.StreamHandler(sys.stdout)
    handler.setFormatter(Formatter())

    logger = _logging.getLogger(logger_name)

    if logger.handlers:
        logger.handlers.clear()

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


logging = _logging.getLogger("atlinks")
