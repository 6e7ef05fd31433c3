"""Pydantic schemas and enums for the risk chart engine."""

from riskcharts.schemas.base import ChartId, CholesterolUnit, Region, Sex
from riskcharts.schemas.predictors import (
    PredictorBatch,
    PredictorSet,
    invalid_predictor_from,
)

__all__ = [
    # Enums
    "ChartId",
    "CholesterolUnit",
    "Region",
    "Sex",
    # Predictors
    "PredictorBatch",
    "PredictorSet",
    "invalid_predictor_from",
]
