"""Logging configuration for the server and CLI."""

import logging

from rich.logging import RichHandler

_ROOT_LOGGER_NAME = "posterbot"


def configure_logging(level: str = "INFO") -> None:
    """Route ``posterbot.*`` log records to a rich console handler.

    Safe to call more than once; existing handlers on the package logger
    are replaced rather than duplicated.
    """
    package_logger = logging.getLogger(_ROOT_LOGGER_NAME)
    package_logger.setLevel(level.upper())

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.propagate = False
