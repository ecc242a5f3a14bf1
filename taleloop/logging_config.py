"""Logging setup shared by the API server and the console.

``setup_logging()`` runs once at startup; modules log through
``logging.getLogger(__name__)``. Rough level guide:

  DEBUG    cache hits, dice rolls, grammar matches
  INFO     turns, room moves, world mutations
  WARNING  narrator fallbacks, repaired JSON, ignored signals
  ERROR    missing world state, failed provider calls
"""

import logging
import sys

_FORMAT = "[%(name)s] %(message)s"
_DEBUG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Chatty at INFO; their warnings still come through
_QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "uvicorn.access",
    "openai",
    "anthropic",
    "sqlalchemy.engine",
    "alembic",
)


def setup_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(
        level=numeric,
        format=_DEBUG_FORMAT if numeric <= logging.DEBUG else _FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
