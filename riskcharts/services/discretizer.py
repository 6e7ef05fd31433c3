"""Predictor discretization.

Maps each predictor of an individual onto exactly one bin per chart axis.
Numeric axes are partitioned by ascending cut points into half-open
intervals closed on the left, so a value equal to a cut point belongs to the
higher bin. The lowest bin is unbounded below and the highest unbounded
above, which makes every axis exhaustive.

Usage:
    discretizer = Discretizer(
        age=NumericAxis("age", (75, 80, 85)),
        systolic_bp=NumericAxis("systolic_bp", (120, 140, 160)),
        non_hdl_cholesterol=NumericAxis("non_hdl_cholesterol", (4, 5, 6)),
    )
    cells = discretizer.discretize(batch, CholesterolUnit.MG_DL)
"""

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from riskcharts.schemas.base import CholesterolUnit, Sex
from riskcharts.schemas.predictors import PredictorBatch

# mg/dL -> mmol/L for cholesterol
MGDL_TO_MMOL = 0.0259

AXIS_ORDER = ("sex", "smoking", "age", "systolic_bp", "non_hdl_cholesterol")


def _one_hot(index: np.ndarray, n_bins: int) -> np.ndarray:
    return np.eye(n_bins, dtype=np.int8)[index]


@dataclass(frozen=True)
class NumericAxis:
    """Continuous predictor partitioned by cut points.

    ``k`` cut points give ``k + 1`` bins; bin ``i`` covers
    ``[cut_points[i - 1], cut_points[i])``.
    """

    name: str
    cut_points: tuple[float, ...]
    labels: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        cuts = tuple(float(c) for c in self.cut_points)
        if not cuts:
            raise ValueError(f"Axis {self.name} needs at least one cut point")
        if not all(math.isfinite(c) for c in cuts):
            raise ValueError(f"Axis {self.name} has a non-finite cut point")
        if any(upper <= lower for lower, upper in zip(cuts, cuts[1:])):
            raise ValueError(f"Axis {self.name} cut points must be strictly ascending: {cuts}")
        object.__setattr__(self, "cut_points", cuts)

        if not self.labels:
            object.__setattr__(self, "labels", self._default_labels())
        elif len(self.labels) != len(cuts) + 1:
            raise ValueError(
                f"Axis {self.name} has {len(cuts) + 1} bins but {len(self.labels)} labels"
            )
        else:
            object.__setattr__(self, "labels", tuple(self.labels))

    def _default_labels(self) -> tuple[str, ...]:
        cuts = self.cut_points
        middle = [f"{lower:g}-<{upper:g}" for lower, upper in zip(cuts, cuts[1:])]
        return (f"<{cuts[0]:g}", *middle, f">={cuts[-1]:g}")

    @property
    def n_bins(self) -> int:
        return len(self.cut_points) + 1

    def bin_index(self, values: Any) -> np.ndarray:
        """Return the bin index of each value."""
        values = np.asarray(values, dtype=float)
        return np.searchsorted(self.cut_points, values, side="right").astype(np.intp)

    def indicators(self, values: Any) -> np.ndarray:
        """Return an (n, n_bins) 0/1 matrix with one active bin per row."""
        return _one_hot(np.atleast_1d(self.bin_index(values)), self.n_bins)

    def interval(self, index: int) -> tuple[float, float]:
        """Return the ``[lower, upper)`` bounds of a bin."""
        if not 0 <= index < self.n_bins:
            raise IndexError(f"Axis {self.name} has no bin {index}")
        bounds = (-math.inf, *self.cut_points, math.inf)
        return bounds[index], bounds[index + 1]


@dataclass(frozen=True)
class CategoricalAxis:
    """Enumerated predictor; bin ``i`` is ``categories[i]``."""

    name: str
    categories: tuple[Any, ...]

    @property
    def n_bins(self) -> int:
        return len(self.categories)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(str(c) for c in self.categories)

    def bin_index(self, values: Any) -> np.ndarray:
        """Return the bin index of each value.

        Raises:
            ValueError: If a value is not one of the categories.
        """
        positions = {category: i for i, category in enumerate(self.categories)}
        values = list(np.atleast_1d(np.asarray(values, dtype=object)))
        try:
            # str enums hash by member name, so compare on the raw value
            return np.array(
                [positions[getattr(v, "value", v)] for v in values], dtype=np.intp
            )
        except KeyError as e:
            raise ValueError(f"Axis {self.name} has no category {e.args[0]!r}") from e

    def indicators(self, values: Any) -> np.ndarray:
        """Return an (n, n_bins) 0/1 matrix with one active bin per row."""
        return _one_hot(self.bin_index(values), self.n_bins)


SEX_AXIS = CategoricalAxis("sex", (Sex.FEMALE.value, Sex.MALE.value))
SMOKING_AXIS = CategoricalAxis("smoking", (0, 1))


@dataclass(frozen=True, eq=False)
class CellIndex:
    """Bin indices of a batch, one integer array per axis."""

    sex: np.ndarray
    smoking: np.ndarray
    age: np.ndarray
    systolic_bp: np.ndarray
    non_hdl_cholesterol: np.ndarray

    def as_tuple(self) -> tuple[np.ndarray, ...]:
        return tuple(getattr(self, name) for name in AXIS_ORDER)

    def __len__(self) -> int:
        return len(self.sex)

    def cell(self, i: int) -> tuple[int, ...]:
        """Return the cell coordinates of record ``i``."""
        return tuple(int(axis[i]) for axis in self.as_tuple())

    def cells(self) -> list[tuple[int, ...]]:
        return [self.cell(i) for i in range(len(self))]


def non_hdl_cholesterol(
    total_cholesterol: Any,
    hdl_cholesterol: Any,
    unit: CholesterolUnit | str = CholesterolUnit.MMOL_L,
) -> np.ndarray:
    """Compute non-HDL cholesterol in mmol/L.

    Args:
        total_cholesterol: Total cholesterol values.
        hdl_cholesterol: HDL cholesterol values, same unit.
        unit: Unit of both inputs. mg/dL values are converted with
            ``MGDL_TO_MMOL`` after the subtraction.

    Returns:
        Float array of non-HDL cholesterol in mmol/L.
    """
    non_hdl = np.asarray(total_cholesterol, dtype=float) - np.asarray(hdl_cholesterol, dtype=float)
    if CholesterolUnit(unit) is CholesterolUnit.MG_DL:
        non_hdl = non_hdl * MGDL_TO_MMOL
    return non_hdl


class Discretizer:
    """Maps predictor batches onto the cells of one chart."""

    def __init__(
        self,
        age: NumericAxis,
        systolic_bp: NumericAxis,
        non_hdl_cholesterol: NumericAxis,
    ) -> None:
        self.sex = SEX_AXIS
        self.smoking = SMOKING_AXIS
        self.age = age
        self.systolic_bp = systolic_bp
        self.non_hdl_cholesterol = non_hdl_cholesterol

    @property
    def axes(self) -> tuple[NumericAxis | CategoricalAxis, ...]:
        return tuple(getattr(self, name) for name in AXIS_ORDER)

    @property
    def shape(self) -> tuple[int, ...]:
        """Number of bins per axis, in axis order."""
        return tuple(axis.n_bins for axis in self.axes)

    def __iter__(self) -> Iterator[NumericAxis | CategoricalAxis]:
        return iter(self.axes)

    def _axis_values(self, batch: PredictorBatch, unit: CholesterolUnit | str) -> dict[str, Sequence[Any]]:
        return {
            "sex": batch.sex,
            "smoking": batch.smoker,
            "age": batch.age,
            "systolic_bp": batch.systolic_bp,
            "non_hdl_cholesterol": non_hdl_cholesterol(
                batch.total_cholesterol, batch.hdl_cholesterol, unit
            ),
        }

    def discretize(self, batch: PredictorBatch, unit: CholesterolUnit | str) -> CellIndex:
        """Return the bin index of every record on every axis."""
        values = self._axis_values(batch, unit)
        return CellIndex(
            **{name: getattr(self, name).bin_index(values[name]) for name in AXIS_ORDER}
        )

    def indicators(self, batch: PredictorBatch, unit: CholesterolUnit | str) -> dict[str, np.ndarray]:
        """Return the one-hot indicator matrix of every axis."""
        values = self._axis_values(batch, unit)
        return {name: getattr(self, name).indicators(values[name]) for name in AXIS_ORDER}
