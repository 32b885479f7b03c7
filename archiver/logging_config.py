"""Logging setup for command-line use.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are attached here, once, by the entry point.
"""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_HANDLER_NAME = "archiver-console"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Route the ``archiver`` logger to the current stderr at *level*.

    Safe to call repeatedly: the previous console handler is replaced, so
    there is only ever one.
    """
    logger = logging.getLogger("archiver")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for existing in [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]:
        logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
