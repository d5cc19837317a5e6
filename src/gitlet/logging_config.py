"""Logging configuration for Gitlet.

Library modules log through loguru's shared ``logger``. The CLI calls
:func:`configure_logging` once at startup so that diagnostics go to stderr
and command output on stdout stays clean.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> - "
    "<cyan>{name}</cyan> - "
    "<level>{level}</level> - "
    "<level>{message}</level>"
)


def configure_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink.

    Args:
        verbose: Log at DEBUG instead of WARNING
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level="DEBUG" if verbose else "WARNING",
        colorize=None,
    )
