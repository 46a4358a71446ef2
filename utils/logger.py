"""
utils/logger.py
---------------
Logging setup for the store.

Modules call `get_logger(__name__)`; the first call installs the store's
stdout handler on the root logger at LOG_LEVEL. `configure_logging()` can be
called again to change the level or target stream. It only ever replaces
its own handler, so handlers added by an embedding application (or by
pytest) stay in place.
"""

import logging
import sys
from typing import Optional, TextIO, Union

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_handler: Optional[logging.Handler] = None


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    # getLevelName() answers "Level X" for names it does not know
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    (Re)install the store's log handler on the root logger.

    Args:
        level: Level name or number. Defaults to LOG_LEVEL; unknown names
            fall back to INFO.
        stream: Where records go. Defaults to stdout.

    Returns:
        The handler now installed.
    """
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(_resolve_level(LOG_LEVEL if level is None else level))
    _handler = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures logging on first use."""
    if _handler is None:
        configure_logging()
    return logging.getLogger(name)
