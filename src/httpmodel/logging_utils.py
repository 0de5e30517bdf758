"""
Logging setup for the command-line tool.

The library itself only creates module loggers (``logging.getLogger(__name__)``)
and never installs handlers; applications decide where records go.
"""

import logging


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "WARNING") -> None:
    """Configure the root logger and the ``httpmodel`` logger tree."""
    numeric = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    logging.getLogger("httpmodel").setLevel(numeric)
