"""Tests for chart fixture loading and coefficient tables."""

import json

import numpy as np
import pytest

from riskcharts.core.errors import CoefficientTableError, InvalidPredictorError
from riskcharts.schemas.base import Region
from riskcharts.services.coefficient_table import build_table, load_chart


class TestChartCompleteness:
    """Tests for table shape and coverage."""

    def test_score2_op_has_1024_entries(self, score2_op_table):
        """SCORE2-OP covers 4 regions x 256 cells."""
        assert score2_op_table.shape == (4, 2, 2, 4, 4, 4)
        assert score2_op_table.cell_count == 256
        assert score2_op_table.entry_count == 1024

    def test_score2_has_1536_entries(self, score2_chart_table):
        """SCORE2 covers 4 regions x 384 cells."""
        assert score2_chart_table.shape == (4, 2, 2, 6, 4, 4)
        assert score2_chart_table.entry_count == 1536

    def test_regions_in_order(self, score2_op_table):
        """Regions are listed from low to very high."""
        assert score2_op_table.regions == (Region.LOW, Region.MODERATE, Region.HIGH, Region.VERY_HIGH)

    def test_no_negative_entries(self, score2_op_table, score2_chart_table):
        """Every coefficient is a non-negative percentage."""
        assert (score2_op_table.values >= 0).all()
        assert (score2_chart_table.values >= 0).all()

    def test_values_are_read_only(self, score2_op_table):
        """The loaded table cannot be mutated."""
        with pytest.raises(ValueError):
            score2_op_table.values[0, 0, 0, 0, 0, 0] = 99

    def test_iter_cells_covers_every_cell(self, score2_op_table):
        """Enumerating cells yields each cell exactly once."""
        cells = list(score2_op_table.iter_cells())
        assert len(cells) == 256
        assert len(set(cells)) == 256


class TestChartValues:
    """Tests for published values."""

    def test_low_region_reference_cell(self, score2_op_table):
        """Female non-smoker, <75, SBP 120-139, non-HDL <4 in the low region is 7%."""
        assert score2_op_table.coefficient("low", 0, 0, 0, 1, 0) == 7

    def test_same_cell_across_regions(self, score2_op_table):
        """The same cell rises from the low to the very high region."""
        values = [score2_op_table.coefficient(region, 0, 0, 0, 1, 0) for region in Region]
        assert values == [7, 9, 14, 29]

    def test_smoker_cell_across_regions(self, score2_op_table):
        """Smoking raises the risk of the reference cell in every region."""
        values = [score2_op_table.coefficient(region, 0, 1, 0, 1, 0) for region in Region]
        assert values == [11, 15, 23, 39]

    def test_age_sbp_and_cholesterol_gradients(self, score2_op_table):
        """Male non-smoker risk rises along each numeric axis."""
        low = score2_op_table.region_table("low")[1, 0]
        assert low[:, 0, 0].tolist() == [8, 12, 17, 25]
        assert low[0, :, 0].tolist() == [8, 10, 12, 15]
        assert low[0, 0, :].tolist() == [8, 8, 9, 10]
        assert low[3, 3, :].tolist() == [29, 35, 42, 49]

    def test_score2_low_region_minimum(self, score2_chart_table):
        """The youngest male non-smoker cell of SCORE2 low is 1%."""
        assert score2_chart_table.coefficient(Region.LOW, 1, 0, 0, 0, 0) == 1

    def test_coefficient_rejects_out_of_range_bin(self, score2_op_table):
        """Bins beyond an axis raise IndexError."""
        with pytest.raises(IndexError):
            score2_op_table.coefficient("low", 0, 0, 4, 0, 0)

    def test_region_index_rejects_unknown_region(self, score2_op_table):
        """Unknown regions raise InvalidPredictorError."""
        with pytest.raises(InvalidPredictorError) as exc_info:
            score2_op_table.region_index("extreme")
        assert exc_info.value.field == "region"


class TestMonotonicity:
    """Risk never drops when one risk factor moves up."""

    @pytest.mark.parametrize("table_fixture", ["score2_op_table", "score2_chart_table"])
    def test_non_decreasing_along_each_axis(self, request, table_fixture):
        """Higher age, SBP or non-HDL never lowers risk."""
        values = request.getfixturevalue(table_fixture).values.astype(int)
        # axes: region, sex, smoking, age, sbp, non-HDL
        for axis in (3, 4, 5):
            steps = np.diff(values, axis=axis)
            assert (steps >= 0).all(), f"axis {axis} decreases"

    def test_high_region_erratum_applied(self, score2_op_table):
        """The corrected high-region value keeps its row in sequence."""
        row = score2_op_table.region_table("high")[0, 0, 0, 1, :]
        assert row.tolist() == [14, 15, 16, 17]
        assert len(score2_op_table.errata) == 1
        erratum = score2_op_table.errata[0]
        assert (erratum.transcribed, erratum.value) == (36, 16)


# ============================================================================
# Fixture validation
# ============================================================================


class TestFixtureValidation:
    """Tests for refusal of incomplete or corrupted fixtures."""

    def test_valid_fixture_builds(self, score2_op_data):
        """An untouched fixture builds a table."""
        assert build_table(score2_op_data).entry_count == 1024

    def test_missing_row(self, score2_op_data):
        """A missing cell is reported."""
        score2_op_data["rows"].pop(17)
        with pytest.raises(CoefficientTableError, match="1 cells have no coefficient"):
            build_table(score2_op_data)

    def test_duplicate_row(self, score2_op_data):
        """A cell listed twice is refused."""
        score2_op_data["rows"][1] = list(score2_op_data["rows"][0])
        with pytest.raises(CoefficientTableError, match="duplicates"):
            build_table(score2_op_data)

    def test_negative_risk(self, score2_op_data):
        """Negative coefficients are refused."""
        score2_op_data["rows"][0][-1] = -3
        with pytest.raises(CoefficientTableError, match="non-negative"):
            build_table(score2_op_data)

    def test_fractional_risk(self, score2_op_data):
        """Coefficients are whole percentages."""
        score2_op_data["rows"][0][-1] = 6.5
        with pytest.raises(CoefficientTableError, match="non-negative integer"):
            build_table(score2_op_data)

    def test_unknown_region_in_row(self, score2_op_data):
        """Rows must name one of the four regions."""
        score2_op_data["rows"][0][0] = "extreme"
        with pytest.raises(CoefficientTableError, match="row 1"):
            build_table(score2_op_data)

    def test_undeclared_region(self, score2_op_data):
        """Rows may only use regions listed in the header."""
        score2_op_data["regions"] = ["low", "moderate", "high"]
        with pytest.raises(CoefficientTableError, match="undeclared region"):
            build_table(score2_op_data)

    def test_bin_out_of_range(self, score2_op_data):
        """Bin indices must fit their axis."""
        score2_op_data["rows"][0][3] = 4
        with pytest.raises(CoefficientTableError, match="age_bin"):
            build_table(score2_op_data)

    def test_short_row(self, score2_op_data):
        """Rows must have one value per column."""
        score2_op_data["rows"][0] = score2_op_data["rows"][0][:-1]
        with pytest.raises(CoefficientTableError, match="invalid"):
            build_table(score2_op_data)

    def test_missing_header(self, score2_op_data):
        """Fixtures without axes are refused."""
        del score2_op_data["axes"]
        with pytest.raises(CoefficientTableError, match="invalid header"):
            build_table(score2_op_data)

    def test_bad_axis(self, score2_op_data):
        """Axes with descending cut points are refused."""
        score2_op_data["axes"]["age"]["cut_points"] = [85, 80, 75]
        with pytest.raises(CoefficientTableError, match="invalid axis 'age'"):
            build_table(score2_op_data)


class TestLoadChart:
    """Tests for reading fixture files."""

    def test_missing_file(self, tmp_path):
        """A missing fixture raises CoefficientTableError."""
        with pytest.raises(CoefficientTableError, match="Cannot read"):
            load_chart(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Unparseable JSON raises CoefficientTableError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CoefficientTableError):
            load_chart(path)

    def test_non_object(self, tmp_path):
        """A JSON array is not a chart."""
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(CoefficientTableError, match="JSON object"):
            load_chart(path)

    def test_round_trip_through_file(self, tmp_path, score2_op_data):
        """A fixture written to disk loads back with the same values."""
        path = tmp_path / "chart.json"
        path.write_text(json.dumps(score2_op_data), encoding="utf-8")
        table = load_chart(path)
        assert table.chart_id == "score2_op"
        assert table.coefficient("very high", 1, 1, 3, 3, 3) == 64

    def test_get_stats(self, score2_op_table):
        """Stats summarize the loaded table."""
        stats = score2_op_table.get_stats()
        assert stats["entries"] == 1024
        assert stats["cells_per_region"] == 256
        assert stats["axes"]["age"] == 4
        assert stats["errata"] == 1
