"""Risk Chart Scoring Service.

Scores individuals against the ESC SCORE2 family of risk charts: each
individual is discretized onto the chart's cells and the published
10-year cardiovascular risk (in percent) of that cell is returned for the
chosen risk region.

This module uses a singleton pattern so the chart tables are loaded only
once per process and shared read-only by all callers and threads.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, ClassVar

import numpy as np
from pydantic import ValidationError

from riskcharts.core.config import settings
from riskcharts.core.errors import CoefficientTableError, InvalidPredictorError
from riskcharts.schemas.base import ChartId, CholesterolUnit, Region
from riskcharts.schemas.predictors import PredictorBatch, PredictorSet, invalid_predictor_from
from riskcharts.services.coefficient_table import CoefficientTable, load_chart, parse_region
from riskcharts.services.discretizer import CellIndex

logger = logging.getLogger(__name__)

UNIT_MESSAGE = "cholesterol_unit must be either 'mmol/L' or 'mg/dL'"


@dataclass
class ChartScoreResult:
    """Scores of one batch against one chart and region."""

    chart_id: str
    region: Region
    cholesterol_unit: CholesterolUnit
    scores: np.ndarray
    cells: CellIndex
    reduced_accuracy: np.ndarray
    score_unit: str = "%"
    advisories: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.scores)

    def tolist(self) -> list[int]:
        return [int(s) for s in self.scores]


def parse_cholesterol_unit(unit: CholesterolUnit | str | None) -> CholesterolUnit:
    """Resolve a cholesterol unit, defaulting to the configured one."""
    if unit is None:
        unit = settings.default_cholesterol_unit
    try:
        return CholesterolUnit(unit)
    except ValueError as e:
        raise InvalidPredictorError("cholesterol_unit", UNIT_MESSAGE) from e


def _as_list(values: Any) -> list[Any]:
    """Turn a scalar, sequence or numpy array into a list of Python values."""
    if isinstance(values, np.ndarray):
        return np.atleast_1d(values).tolist()
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        values = [values]
    return [v.item() if isinstance(v, np.generic) else v for v in values]


class RiskChartEngine:
    """Scores predictor batches against one coefficient table.

    Usage:
        engine = RiskChartEngine(load_chart("score2_op_chart.json"))
        result = engine.score(
            sex=["female"], age=[72], total_cholesterol=[200], hdl_cholesterol=[50],
            systolic_bp=[130], smoker=[0], region="low", cholesterol_unit="mg/dL",
        )
        result.scores  # array([7])
    """

    def __init__(self, table: CoefficientTable) -> None:
        self.table = table

    @property
    def chart_id(self) -> str:
        return self.table.chart_id

    def build_batch(
        self,
        sex: Any,
        age: Any,
        total_cholesterol: Any,
        hdl_cholesterol: Any,
        systolic_bp: Any,
        smoker: Any,
    ) -> PredictorBatch:
        """Validate parallel predictor sequences into a batch.

        Raises:
            InvalidPredictorError: If any value of any record is invalid.
        """
        try:
            return PredictorBatch(
                sex=_as_list(sex),
                age=_as_list(age),
                total_cholesterol=_as_list(total_cholesterol),
                hdl_cholesterol=_as_list(hdl_cholesterol),
                systolic_bp=_as_list(systolic_bp),
                smoker=_as_list(smoker),
            )
        except ValidationError as e:
            raise invalid_predictor_from(e) from e

    def score(
        self,
        sex: Any,
        age: Any,
        total_cholesterol: Any,
        hdl_cholesterol: Any,
        systolic_bp: Any,
        smoker: Any,
        region: Region | str = Region.LOW,
        cholesterol_unit: CholesterolUnit | str | None = None,
    ) -> ChartScoreResult:
        """Score parallel predictor sequences.

        Args:
            sex: "female"/"male" per individual.
            age: Age in years.
            total_cholesterol: Total cholesterol.
            hdl_cholesterol: HDL cholesterol, same unit as total.
            systolic_bp: Systolic blood pressure in mmHg.
            smoker: 1 for current smokers, 0 otherwise.
            region: Risk region of the chart.
            cholesterol_unit: "mmol/L" or "mg/dL"; defaults to the configured unit.

        Returns:
            ChartScoreResult with one score per individual, in input order.

        Raises:
            InvalidPredictorError: If the region, unit or any predictor is invalid.
        """
        region = parse_region(region)
        unit = parse_cholesterol_unit(cholesterol_unit)
        batch = self.build_batch(sex, age, total_cholesterol, hdl_cholesterol, systolic_bp, smoker)
        return self.score_batch(batch, region, unit)

    def score_batch(
        self,
        batch: PredictorBatch,
        region: Region | str = Region.LOW,
        cholesterol_unit: CholesterolUnit | str | None = None,
    ) -> ChartScoreResult:
        """Score an already validated batch."""
        region = parse_region(region)
        self.table.region_index(region)
        unit = parse_cholesterol_unit(cholesterol_unit)

        cells = self.table.discretizer.discretize(batch, unit)
        scores = self.table.lookup(region, cells)
        reduced_accuracy = ~self.table.in_intended_age(batch.age)

        advisories = []
        outside = int(reduced_accuracy.sum())
        if outside:
            message = (
                f"{outside} of {len(batch)} ages are outside the intended range of "
                f"{self.table.name} ({self.table.describe_intended_age()}). "
                "Risk calculation can thus become less accurate."
            )
            logger.warning(message)
            advisories.append(message)

        return ChartScoreResult(
            chart_id=self.chart_id,
            region=region,
            cholesterol_unit=unit,
            scores=scores,
            cells=cells,
            reduced_accuracy=reduced_accuracy,
            advisories=advisories,
        )

    def score_one(
        self,
        predictors: PredictorSet,
        region: Region | str = Region.LOW,
        cholesterol_unit: CholesterolUnit | str | None = None,
    ) -> int:
        """Score a single individual."""
        result = self.score_batch(PredictorBatch.from_records([predictors]), region, cholesterol_unit)
        return int(result.scores[0])


# ============================================================================
# Service
# ============================================================================


class RiskChartService:
    """Service owning the loaded risk charts.

    Usage:
        service = get_risk_chart_service()
        result = service.score("score2_op", sex=[...], age=[...], ...)
    """

    CHARTS: ClassVar[dict[str, str]] = {
        ChartId.SCORE2_OP.value: "SCORE2-OP 10-year CVD risk (age 70 and over)",
        ChartId.SCORE2.value: "SCORE2 10-year CVD risk (age 40-69)",
    }

    FIXTURE_NAME: ClassVar[str] = "{chart_id}_chart.json"

    def __init__(self, fixtures_dir: str | Path | None = None) -> None:
        """Initialize the service.

        Args:
            fixtures_dir: Directory holding the chart fixtures. Defaults to
                the configured directory, then the bundled fixtures.
        """
        self._fixtures_dir = fixtures_dir
        self._engines: dict[str, RiskChartEngine] = {}
        self._lock = Lock()

    def _find_fixtures_dir(self) -> Path:
        """Find the fixtures directory."""
        current = Path(__file__).parent
        while current.parent != current:
            potential_path = current / "fixtures"
            if potential_path.exists():
                return potential_path
            current = current.parent
        return Path("fixtures")

    @property
    def fixtures_dir(self) -> Path:
        if self._fixtures_dir:
            return Path(self._fixtures_dir)
        if settings.fixtures_dir:
            return Path(settings.fixtures_dir)
        return self._find_fixtures_dir()

    def fixture_path(self, chart: ChartId | str) -> Path:
        return self.fixtures_dir / self.FIXTURE_NAME.format(chart_id=self._resolve_chart(chart))

    def _resolve_chart(self, chart: ChartId | str) -> str:
        chart_id = str(getattr(chart, "value", chart)).lower().replace("-", "_")
        if chart_id not in self.CHARTS:
            available = ", ".join(self.CHARTS.keys())
            raise ValueError(f"Unknown chart: {chart}. Available: {available}")
        return chart_id

    def get_available_charts(self) -> dict[str, str]:
        """Get the charts this service can score against."""
        return dict(self.CHARTS)

    def get_engine(self, chart: ChartId | str | None = None) -> RiskChartEngine:
        """Get the engine of a chart, loading its table on first use.

        Raises:
            ValueError: If the chart is unknown.
            CoefficientTableError: If the chart fixture is invalid.
        """
        chart_id = self._resolve_chart(chart or settings.default_chart)

        engine = self._engines.get(chart_id)
        if engine is None:
            with self._lock:
                engine = self._engines.get(chart_id)
                if engine is None:
                    table = load_chart(self.fixture_path(chart_id))
                    if table.chart_id != chart_id:
                        raise CoefficientTableError(
                            f"Fixture {self.fixture_path(chart_id)} holds chart {table.chart_id}, "
                            f"expected {chart_id}"
                        )
                    engine = RiskChartEngine(table)
                    self._engines[chart_id] = engine
        return engine

    def get_table(self, chart: ChartId | str | None = None) -> CoefficientTable:
        return self.get_engine(chart).table

    def load(self, charts: list[str] | None = None) -> None:
        """Load chart tables ahead of the first score call."""
        for chart in charts if charts is not None else list(self.CHARTS):
            self.get_engine(chart)

    def score(self, chart: ChartId | str | None = None, **kwargs: Any) -> ChartScoreResult:
        """Score a batch against a chart.

        Args:
            chart: Chart identifier; defaults to the configured chart.
            **kwargs: Arguments of RiskChartEngine.score.

        Returns:
            ChartScoreResult with one score per individual.

        Raises:
            ValueError: If the chart is unknown or arguments are missing.
            InvalidPredictorError: If any input is invalid.
        """
        engine = self.get_engine(chart)
        try:
            return engine.score(**kwargs)
        except TypeError as e:
            raise ValueError(f"Invalid parameters for {engine.chart_id}: {e}") from e

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about available and loaded charts.

        Returns:
            Dictionary with chart statistics.
        """
        return {
            "total_charts": len(self.CHARTS),
            "chart_list": list(self.CHARTS.keys()),
            "loaded_charts": {
                chart_id: engine.table.get_stats() for chart_id, engine in self._engines.items()
            },
        }


# Singleton instance and lock
_risk_chart_service: RiskChartService | None = None
_risk_chart_lock = Lock()


def get_risk_chart_service() -> RiskChartService:
    """Get the singleton RiskChartService instance.

    The configured charts are loaded when the instance is created.

    Returns:
        The singleton RiskChartService instance.
    """
    global _risk_chart_service

    if _risk_chart_service is None:
        with _risk_chart_lock:
            if _risk_chart_service is None:
                logger.info("Creating singleton RiskChartService instance")
                service = RiskChartService()
                service.load(settings.preload_charts)
                _risk_chart_service = service

    return _risk_chart_service


def preload_risk_charts() -> dict[str, Any]:
    """Load all configured charts at application startup.

    Returns:
        Dictionary with load statistics.
    """
    return get_risk_chart_service().get_stats()


def reset_risk_chart_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _risk_chart_service
    with _risk_chart_lock:
        _risk_chart_service = None


# ============================================================================
# Chart functions
# ============================================================================


def score2_op_table(
    sex: Any,
    age: Any,
    total_cholesterol: Any,
    hdl_cholesterol: Any,
    systolic_bp: Any,
    smoker: Any,
    region: Region | str = Region.LOW,
    cholesterol_unit: CholesterolUnit | str | None = None,
) -> np.ndarray:
    """Calculate SCORE2-OP chart risk for people aged 70 and over.

    Args:
        sex: "female"/"male" per individual.
        age: Age in years; ages below 70 are scored with an advisory.
        total_cholesterol: Total cholesterol.
        hdl_cholesterol: HDL cholesterol, same unit as total.
        systolic_bp: Systolic blood pressure in mmHg.
        smoker: 1 for current smokers, 0 otherwise.
        region: "low", "moderate", "high" or "very high".
        cholesterol_unit: "mmol/L" or "mg/dL"; defaults to the configured unit.

    Returns:
        Integer array of 10-year CVD risk in percent, in input order.
    """
    return get_risk_chart_service().score(
        ChartId.SCORE2_OP,
        sex=sex,
        age=age,
        total_cholesterol=total_cholesterol,
        hdl_cholesterol=hdl_cholesterol,
        systolic_bp=systolic_bp,
        smoker=smoker,
        region=region,
        cholesterol_unit=cholesterol_unit,
    ).scores


def score2_table(
    sex: Any,
    age: Any,
    total_cholesterol: Any,
    hdl_cholesterol: Any,
    systolic_bp: Any,
    smoker: Any,
    region: Region | str = Region.LOW,
    cholesterol_unit: CholesterolUnit | str | None = None,
) -> np.ndarray:
    """Calculate SCORE2 chart risk for people aged 40 to 69.

    Same arguments as score2_op_table; ages outside 40-69 are scored with
    an advisory.
    """
    return get_risk_chart_service().score(
        ChartId.SCORE2,
        sex=sex,
        age=age,
        total_cholesterol=total_cholesterol,
        hdl_cholesterol=hdl_cholesterol,
        systolic_bp=systolic_bp,
        smoker=smoker,
        region=region,
        cholesterol_unit=cholesterol_unit,
    ).scores
