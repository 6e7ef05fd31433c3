"""Pytest configuration and fixtures for risk chart tests."""

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from riskcharts.services.coefficient_table import CoefficientTable, load_chart
from riskcharts.services.risk_chart import RiskChartEngine

FIXTURES_DIR = Path(__file__).resolve().parent.parent / "riskcharts" / "fixtures"


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Directory holding the bundled chart fixtures."""
    return FIXTURES_DIR


@pytest.fixture(scope="session")
def score2_op_table(fixtures_dir: Path) -> CoefficientTable:
    """Loaded SCORE2-OP coefficient table (read-only, shared)."""
    return load_chart(fixtures_dir / "score2_op_chart.json")


@pytest.fixture(scope="session")
def score2_chart_table(fixtures_dir: Path) -> CoefficientTable:
    """Loaded SCORE2 coefficient table (read-only, shared)."""
    return load_chart(fixtures_dir / "score2_chart.json")


@pytest.fixture
def op_engine(score2_op_table: CoefficientTable) -> RiskChartEngine:
    """Engine scoring against the SCORE2-OP chart."""
    return RiskChartEngine(score2_op_table)


@pytest.fixture(scope="session")
def _score2_op_raw(fixtures_dir: Path) -> dict[str, Any]:
    with open(fixtures_dir / "score2_op_chart.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def score2_op_data(_score2_op_raw: dict[str, Any]) -> dict[str, Any]:
    """Mutable copy of the parsed SCORE2-OP fixture, for corruption tests."""
    return copy.deepcopy(_score2_op_raw)
