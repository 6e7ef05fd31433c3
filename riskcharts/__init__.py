"""Cardiovascular risk charts: SCORE2 and SCORE2-OP table scoring."""

from riskcharts.core.errors import CoefficientTableError, InvalidPredictorError
from riskcharts.schemas.base import ChartId, CholesterolUnit, Region, Sex
from riskcharts.services.risk_chart import (
    ChartScoreResult,
    RiskChartEngine,
    get_risk_chart_service,
    score2_op_table,
    score2_table,
)

__version__ = "0.1.0"

__all__ = [
    "ChartId",
    "ChartScoreResult",
    "CholesterolUnit",
    "CoefficientTableError",
    "InvalidPredictorError",
    "Region",
    "RiskChartEngine",
    "Sex",
    "get_risk_chart_service",
    "score2_op_table",
    "score2_table",
]
