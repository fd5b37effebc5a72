"""Process-wide logging setup shared by the API and the queue worker."""

import logging
import sys
from functools import lru_cache

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Sets up console logging with timestamps and module names, applies the
    configured level to the jelly packages and quiets noisy third-party
    loggers. Runs once per process.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in ("jelly", "jelly_identity", "jelly_config"):
        logging.getLogger(name).setLevel(log_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
