"""Logging configuration for the threadhub namespace."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``threadhub`` logger.

    Calling this more than once only updates the level.
    """
    root = logging.getLogger("threadhub")
    root.setLevel(level.upper())
    if not any(getattr(handler, "_threadhub", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._threadhub = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
