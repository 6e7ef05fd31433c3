"""Logging setup for applications embedding the engine."""

import logging

from riskcharts.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> int:
    """Configure root logging at the given or configured level.

    Returns:
        The numeric level applied to the ``riskcharts`` logger.
    """
    level_name = (level or ("DEBUG" if settings.debug else settings.log_level)).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger("riskcharts").setLevel(numeric_level)
    return numeric_level
