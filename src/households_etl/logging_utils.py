from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import PipelineConfig

LOG_LEVEL_ENV = "HOUSEHOLDS_ETL_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
SQL_LOGGER = "sqlalchemy.engine"


def _resolve_level(level_name: Optional[str]) -> int:
    """Map a level name or number to ``logging``'s value; unknown names mean INFO."""
    normalized = (level_name or "INFO").upper()
    if normalized.isdigit():
        return int(normalized)
    level = logging.getLevelName(normalized)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    """
    Configure logging for the inference and commit commands; returns the root level.

    Level precedence:

    1. ``HOUSEHOLDS_ETL_LOG_LEVEL`` environment variable (if set)
    2. ``level_override`` provided by the caller (e.g., CLI flag)
    3. ``config.logging.level`` from the YAML config
    4. Default ``WARNING`` level

    SQL statements from the commit step are logged at INFO only when
    ``logging.sql_echo`` is set. Python warnings (pandas parser warnings
    among them) are routed through the ``py.warnings`` logger.
    """
    effective_level_name = (
        os.getenv(LOG_LEVEL_ENV) or level_override or config.logging.level or "WARNING"
    )
    level_value = _resolve_level(effective_level_name)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value, format=LOG_FORMAT)

    logging.getLogger(SQL_LOGGER).setLevel(
        logging.INFO if config.logging.sql_echo else logging.WARNING
    )
    logging.captureWarnings(True)
    return level_value
