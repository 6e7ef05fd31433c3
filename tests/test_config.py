"""Tests for settings and logging setup."""

import logging

import pytest

from riskcharts.core.config import Settings, settings
from riskcharts.core.logging_config import configure_logging
from riskcharts.schemas.base import CholesterolUnit
from riskcharts.services.risk_chart import (
    RiskChartEngine,
    RiskChartService,
    get_risk_chart_service,
    parse_cholesterol_unit,
    reset_risk_chart_service,
)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        """Defaults score SCORE2-OP with mg/dL cholesterol."""
        s = Settings(_env_file=None)
        assert s.default_chart == "score2_op"
        assert s.default_cholesterol_unit == "mg/dL"
        assert s.preload_charts == ["score2_op", "score2"]
        assert s.fixtures_dir is None
        assert s.log_level == "INFO"

    def test_env_override(self, monkeypatch, tmp_path):
        """RISKCHARTS_* variables override defaults."""
        monkeypatch.setenv("RISKCHARTS_DEFAULT_CHOLESTEROL_UNIT", "mmol/L")
        monkeypatch.setenv("RISKCHARTS_FIXTURES_DIR", str(tmp_path))
        monkeypatch.setenv("RISKCHARTS_PRELOAD_CHARTS", '["score2"]')
        monkeypatch.setenv("riskcharts_debug", "true")
        s = Settings(_env_file=None)
        assert s.default_cholesterol_unit == "mmol/L"
        assert s.fixtures_dir == tmp_path
        assert s.preload_charts == ["score2"]
        assert s.debug is True


class TestSettingsInUse:
    """Tests for settings consumed by the engine and service."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_risk_chart_service()

    def teardown_method(self):
        reset_risk_chart_service()

    def test_default_unit_follows_settings(self, monkeypatch, score2_op_table):
        """The configured unit applies when a call passes none."""
        monkeypatch.setattr(settings, "default_cholesterol_unit", "mmol/L")
        assert parse_cholesterol_unit(None) is CholesterolUnit.MMOL_L
        result = RiskChartEngine(score2_op_table).score(
            sex=["male"], age=[73], total_cholesterol=[7], hdl_cholesterol=[1.2],
            systolic_bp=[165], smoker=[1], region="moderate",
        )
        assert result.tolist() == [34]

    def test_preload_follows_settings(self, monkeypatch):
        """Only the configured charts are loaded up front."""
        monkeypatch.setattr(settings, "preload_charts", ["score2"])
        stats = get_risk_chart_service().get_stats()
        assert list(stats["loaded_charts"]) == ["score2"]

    def test_fixtures_dir_follows_settings(self, monkeypatch, tmp_path):
        """A configured fixtures directory replaces the bundled one."""
        monkeypatch.setattr(settings, "fixtures_dir", tmp_path)
        assert RiskChartService().fixtures_dir == tmp_path

    def test_bundled_fixtures_found(self, fixtures_dir):
        """Without configuration the bundled fixtures are used."""
        path = RiskChartService().fixture_path("score2_op")
        assert path.resolve() == fixtures_dir / "score2_op_chart.json"


class TestConfigureLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def _restore_level(self):
        logger = logging.getLogger("riskcharts")
        level = logger.level
        yield
        logger.setLevel(level)

    def test_explicit_level(self):
        """An explicit level wins."""
        assert configure_logging("warning") == logging.WARNING
        assert logging.getLogger("riskcharts").level == logging.WARNING

    def test_debug_setting(self, monkeypatch):
        """debug=True selects DEBUG."""
        monkeypatch.setattr(settings, "debug", True)
        assert configure_logging() == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        """Unknown level names fall back to INFO."""
        monkeypatch.setattr(settings, "log_level", "LOUD")
        assert configure_logging() == logging.INFO
