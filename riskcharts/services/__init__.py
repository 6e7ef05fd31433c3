"""Services for the risk chart engine.

Services implement discretization, table lookup and scoring:
- Discretizer: predictors to per-axis bins
- CoefficientTable: region-by-cell risk tables loaded from fixtures
- RiskChartEngine / RiskChartService: scoring of predictor batches
"""

from riskcharts.services.coefficient_table import (
    ChartErratum,
    CoefficientTable,
    build_table,
    load_chart,
    parse_region,
)
from riskcharts.services.discretizer import (
    AXIS_ORDER,
    MGDL_TO_MMOL,
    CategoricalAxis,
    CellIndex,
    Discretizer,
    NumericAxis,
    non_hdl_cholesterol,
)
from riskcharts.services.risk_chart import (
    ChartScoreResult,
    RiskChartEngine,
    RiskChartService,
    get_risk_chart_service,
    parse_cholesterol_unit,
    preload_risk_charts,
    reset_risk_chart_service,
    score2_op_table,
    score2_table,
)

__all__ = [
    # Discretizer
    "AXIS_ORDER",
    "MGDL_TO_MMOL",
    "CategoricalAxis",
    "CellIndex",
    "Discretizer",
    "NumericAxis",
    "non_hdl_cholesterol",
    # Coefficient tables
    "ChartErratum",
    "CoefficientTable",
    "build_table",
    "load_chart",
    "parse_region",
    # Scoring
    "ChartScoreResult",
    "RiskChartEngine",
    "RiskChartService",
    "get_risk_chart_service",
    "parse_cholesterol_unit",
    "preload_risk_charts",
    "reset_risk_chart_service",
    "score2_op_table",
    "score2_table",
]
