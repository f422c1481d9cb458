"""Centralised logging configuration utilities."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL = logging.INFO


def configure_logging(level: int | str = DEFAULT_LEVEL) -> None:
    """Configure root logging if it has not been configured yet."""
    if logging.getLogger().handlers:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = DEFAULT_LEVEL
    logging.basicConfig(level=level, format=LOG_FORMAT)
