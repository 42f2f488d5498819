"""
Process-wide logging setup.

One line per record on stdout. Broker passwords, bearer tokens and the
MetaAPI token are never handed to a logger: call sites log logins,
servers and remote account ids only.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# httpx logs every MetaAPI poll at INFO; a single connect makes dozens.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine", "slowapi")


def configure_logging(level: str = "INFO") -> int:
    """Configure the root logger and return the level that was applied.

    Unknown level names fall back to INFO. Loggers in QUIET_LOGGERS never
    go below WARNING.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    return resolved
