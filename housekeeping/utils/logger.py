"""Process-wide logging for the API, sync and notification layers."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from housekeeping.utils.config import Settings, get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_handler_installed = False


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Install the stdout handler once and apply the configured level.

    Module-level loggers are created at import time, before the application
    factory sees its settings, so later calls only adjust the root level.
    """
    global _handler_installed
    resolved = settings or get_settings()
    level = resolved.log_level.upper()

    if not _handler_installed:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
        _handler_installed = True
        return
    logging.getLogger().setLevel(level)


def get_logger(name: str) -> logging.Logger:
    if not _handler_installed:
        configure_logging()
    return logging.getLogger(name)
