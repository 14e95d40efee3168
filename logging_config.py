"""Console logging setup shared by the service and the daily check."""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Install a single console handler on the root logger.

    The level defaults to HABITS_LOG_LEVEL (INFO when unset or unrecognised).
    """
    if level is None:
        level = os.getenv("HABITS_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    return root
