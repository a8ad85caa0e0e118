"""
Logging setup for the ManPower backend.

Modules log through ``logging.getLogger(__name__)``; this only configures
the root handler and level once at application startup.
"""

from __future__ import annotations

import logging

from manpower.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger from ``settings.log_level``."""
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        format=_LOG_FORMAT,
        level=getattr(logging, level_name, logging.INFO),
    )
    # SQL echo is controlled by settings.sql_echo, keep the engine logger quiet
    if not settings.sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
