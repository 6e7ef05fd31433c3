"""Core configuration, logging and error types."""

from riskcharts.core.config import Settings, settings
from riskcharts.core.errors import CoefficientTableError, InvalidPredictorError
from riskcharts.core.logging_config import configure_logging

__all__ = [
    # Config
    "Settings",
    "settings",
    # Logging
    "configure_logging",
    # Errors
    "CoefficientTableError",
    "InvalidPredictorError",
]
