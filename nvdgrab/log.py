"""Logging setup shared by the CLI and library modules."""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"

_logging_configured = False


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the root logger once.

    Log records go to stderr so that progress output on stdout stays
    readable.

    Args:
        level: Root logging level.
    """
    global _logging_configured
    if _logging_configured:
        return

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (typically ``__name__``).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
