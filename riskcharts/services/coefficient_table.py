"""Coefficient tables of the risk charts.

A chart fixture is a JSON document holding the chart metadata, the cut
points of its numeric axes, and one row per ``(region, cell)`` with the
published risk in percent. Loading builds a dense, read-only numpy array
indexed by ``(region, sex, smoking, age, systolic_bp, non_hdl_cholesterol)``
and refuses any fixture that leaves a cell empty, lists a cell twice, or
carries a negative or non-integer risk.
"""

import itertools
import json
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from riskcharts.core.errors import CoefficientTableError, InvalidPredictorError
from riskcharts.schemas.base import Region
from riskcharts.services.discretizer import CellIndex, Discretizer, NumericAxis

logger = logging.getLogger(__name__)

ROW_COLUMNS = ("region", "sex", "smoker", "age_bin", "sbp_bin", "chol_bin", "risk")

REGION_MESSAGE = "region must be either 'low', 'moderate', 'high' or 'very high'"

_EMPTY = -1


def parse_region(region: Region | str) -> Region:
    """Resolve a region label, rejecting anything outside the four regions."""
    try:
        return Region(region)
    except ValueError as e:
        raise InvalidPredictorError("region", REGION_MESSAGE) from e


@dataclass(frozen=True)
class ChartErratum:
    """Correction applied to a published table value."""

    region: str
    cell: tuple[Any, ...]
    transcribed: int
    value: int
    note: str = ""


@dataclass
class CoefficientTable:
    """Region-by-cell risk table of one chart.

    Usage:
        table = load_chart(Path("riskcharts/fixtures/score2_op_chart.json"))
        risk = table.coefficient("low", 0, 0, 0, 1, 0)
    """

    chart_id: str
    name: str
    version: str
    discretizer: Discretizer
    regions: tuple[Region, ...]
    values: np.ndarray
    reference: str = ""
    outcome: str = ""
    intended_age: tuple[float | None, float | None] = (None, None)
    errata: list[ChartErratum] = field(default_factory=list)

    def __post_init__(self) -> None:
        expected = (len(self.regions), *self.discretizer.shape)
        if self.values.shape != expected:
            raise CoefficientTableError(
                f"Chart {self.chart_id}: table shape {self.values.shape} does not match axes {expected}"
            )
        if (self.values < 0).any():
            raise CoefficientTableError(f"Chart {self.chart_id}: table has empty or negative entries")
        self.values.flags.writeable = False

    @property
    def shape(self) -> tuple[int, ...]:
        return self.values.shape

    @property
    def cell_count(self) -> int:
        """Number of cells per region."""
        return int(np.prod(self.discretizer.shape))

    @property
    def entry_count(self) -> int:
        return len(self.regions) * self.cell_count

    def region_index(self, region: Region | str) -> int:
        resolved = parse_region(region)
        try:
            return self.regions.index(resolved)
        except ValueError as e:
            raise InvalidPredictorError(
                "region", f"Chart {self.chart_id} has no region '{resolved.value}'"
            ) from e

    def region_table(self, region: Region | str) -> np.ndarray:
        """Return the read-only sub-table of one region."""
        return self.values[self.region_index(region)]

    def coefficient(
        self,
        region: Region | str,
        sex_bin: int,
        smoking_bin: int,
        age_bin: int,
        sbp_bin: int,
        chol_bin: int,
    ) -> int:
        """Return the risk of a single cell."""
        cell = (sex_bin, smoking_bin, age_bin, sbp_bin, chol_bin)
        for axis, index in zip(self.discretizer.axes, cell):
            if not 0 <= index < axis.n_bins:
                raise IndexError(f"Axis {axis.name} has no bin {index}")
        return int(self.values[(self.region_index(region), *cell)])

    def lookup(self, region: Region | str, cells: CellIndex) -> np.ndarray:
        """Return the risk of every record of a discretized batch."""
        return self.values[(self.region_index(region), *cells.as_tuple())].astype(np.int64)

    def iter_cells(self) -> Iterator[tuple[int, ...]]:
        """Enumerate every cell in axis order."""
        return itertools.product(*(range(n) for n in self.discretizer.shape))

    def in_intended_age(self, ages: Any) -> np.ndarray:
        """Return a mask of ages inside the chart's intended age range."""
        ages = np.asarray(ages, dtype=float)
        low, high = self.intended_age
        mask = np.ones(ages.shape, dtype=bool)
        if low is not None:
            mask &= ages >= low
        if high is not None:
            mask &= ages <= high
        return mask

    def describe_intended_age(self) -> str:
        low, high = self.intended_age
        if low is not None and high is not None:
            return f"{low:g}-{high:g} years"
        if low is not None:
            return f">= {low:g} years"
        if high is not None:
            return f"<= {high:g} years"
        return "any age"

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the table.

        Returns:
            Dictionary with table statistics.
        """
        return {
            "chart_id": self.chart_id,
            "version": self.version,
            "regions": [r.value for r in self.regions],
            "axes": {axis.name: axis.n_bins for axis in self.discretizer.axes},
            "cells_per_region": self.cell_count,
            "entries": self.entry_count,
            "errata": len(self.errata),
        }


# ============================================================================
# Fixture loading
# ============================================================================


def _numeric_axis(chart_id: str, name: str, axes: dict[str, Any]) -> NumericAxis:
    try:
        axis_data = axes[name]
        return NumericAxis(name, tuple(axis_data["cut_points"]), tuple(axis_data.get("labels", ())))
    except (KeyError, TypeError, ValueError) as e:
        raise CoefficientTableError(f"Chart {chart_id}: invalid axis '{name}': {e}") from e


def _cell_position(discretizer: Discretizer, row: dict[str, Any]) -> tuple[int, ...]:
    """Convert a fixture row into cell coordinates."""
    sex = int(discretizer.sex.bin_index(row["sex"])[0])
    smoking = int(discretizer.smoking.bin_index(row["smoker"])[0])
    bins = []
    for axis, column in zip(discretizer.axes[2:], ("age_bin", "sbp_bin", "chol_bin")):
        index = row[column]
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < axis.n_bins:
            raise ValueError(f"{column} {index!r} is outside 0..{axis.n_bins - 1}")
        bins.append(index)
    return (sex, smoking, *bins)


def build_table(data: dict[str, Any]) -> CoefficientTable:
    """Build a coefficient table from a parsed chart fixture.

    Raises:
        CoefficientTableError: If the fixture is malformed or incomplete.
    """
    chart_id = str(data.get("chart_id", "<unnamed>"))

    try:
        regions = tuple(Region(r) for r in data["regions"])
        axes = data["axes"]
        columns = tuple(data.get("columns", ROW_COLUMNS))
        rows = data["rows"]
    except (KeyError, TypeError, ValueError) as e:
        raise CoefficientTableError(f"Chart {chart_id}: invalid header: {e}") from e

    if len(set(regions)) != len(regions):
        raise CoefficientTableError(f"Chart {chart_id}: duplicate region in {data['regions']}")
    if set(columns) != set(ROW_COLUMNS):
        raise CoefficientTableError(f"Chart {chart_id}: expected columns {ROW_COLUMNS}, got {columns}")

    discretizer = Discretizer(
        age=_numeric_axis(chart_id, "age", axes),
        systolic_bp=_numeric_axis(chart_id, "systolic_bp", axes),
        non_hdl_cholesterol=_numeric_axis(chart_id, "non_hdl_cholesterol", axes),
    )

    values = np.full((len(regions), *discretizer.shape), _EMPTY, dtype=np.int16)

    for line, raw in enumerate(rows, start=1):
        try:
            row = dict(zip(columns, raw, strict=True))
            region = Region(row["region"])
            cell = _cell_position(discretizer, row)
            risk = row["risk"]
        except (KeyError, TypeError, ValueError) as e:
            raise CoefficientTableError(f"Chart {chart_id}: row {line} {raw!r} is invalid: {e}") from e

        if region not in regions:
            raise CoefficientTableError(f"Chart {chart_id}: row {line} uses undeclared region '{region.value}'")
        if isinstance(risk, bool) or not isinstance(risk, int) or risk < 0:
            raise CoefficientTableError(
                f"Chart {chart_id}: row {line} risk {risk!r} is not a non-negative integer"
            )

        position = (regions.index(region), *cell)
        if values[position] != _EMPTY:
            raise CoefficientTableError(f"Chart {chart_id}: row {line} duplicates cell {region.value} {cell}")
        values[position] = risk

    missing = np.argwhere(values == _EMPTY)
    if len(missing):
        first = missing[0]
        raise CoefficientTableError(
            f"Chart {chart_id}: {len(missing)} cells have no coefficient, "
            f"first {regions[first[0]].value} {tuple(int(i) for i in first[1:])}"
        )

    intended = data.get("intended_age") or {}
    errata = [
        ChartErratum(
            region=e["region"],
            cell=tuple(e["cell"]),
            transcribed=e["transcribed"],
            value=e["value"],
            note=e.get("note", ""),
        )
        for e in data.get("errata", [])
    ]

    return CoefficientTable(
        chart_id=chart_id,
        name=str(data.get("name", chart_id)),
        version=str(data.get("version", "")),
        discretizer=discretizer,
        regions=regions,
        values=values,
        reference=str(data.get("reference", "")),
        outcome=str(data.get("outcome", "")),
        intended_age=(intended.get("min"), intended.get("max")),
        errata=errata,
    )


def load_chart(path: str | Path) -> CoefficientTable:
    """Load and validate a chart fixture file.

    Args:
        path: Path to the chart JSON fixture.

    Returns:
        The loaded, read-only CoefficientTable.

    Raises:
        CoefficientTableError: If the file is missing, unreadable or invalid.
    """
    path = Path(path)
    start_time = time.perf_counter()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CoefficientTableError(f"Cannot read chart fixture {path}: {e}") from e

    if not isinstance(data, dict):
        raise CoefficientTableError(f"Chart fixture {path} must contain a JSON object")

    table = build_table(data)
    load_time_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        f"Chart {table.chart_id} v{table.version} loaded: {table.entry_count} entries "
        f"({len(table.regions)} regions x {table.cell_count} cells) in {load_time_ms:.2f}ms"
    )
    for erratum in table.errata:
        logger.debug(
            f"Chart {table.chart_id}: {erratum.region} {erratum.cell} uses {erratum.value} "
            f"instead of transcribed {erratum.transcribed}"
        )
    return table
