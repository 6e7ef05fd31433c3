"""PredictorSet and PredictorBatch schemas."""

import math
from collections.abc import Iterable
from typing import Any

from pydantic import (
    BaseModel,
    Field,
    StrictFloat,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from riskcharts.core.errors import InvalidPredictorError
from riskcharts.schemas.base import Sex

NUMERIC_FIELDS = ("age", "total_cholesterol", "hdl_cholesterol", "systolic_bp")

FIELD_MESSAGES: dict[str, str] = {
    "sex": "sex must be either 'male' or 'female'",
    "age": "age must be a valid numeric value",
    "total_cholesterol": "total_cholesterol must be a valid numeric value",
    "hdl_cholesterol": "hdl_cholesterol must be a valid numeric value",
    "systolic_bp": "systolic_bp must be a valid numeric value",
    "smoker": "smoker must be either 0 (no) or 1 (yes)",
}


def _check_smoker(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value not in (0, 1):
        raise ValueError(FIELD_MESSAGES["smoker"])
    return int(value)


def _check_finite(field_name: str, value: float) -> float:
    if not math.isfinite(value):
        raise ValueError(FIELD_MESSAGES[field_name])
    return value


class PredictorSet(BaseModel):
    """Risk factors of one individual."""

    sex: Sex = Field(..., description="Sex (female/male)")
    age: StrictFloat = Field(..., description="Age in years")
    total_cholesterol: StrictFloat = Field(..., description="Total cholesterol (mmol/L or mg/dL)")
    hdl_cholesterol: StrictFloat = Field(..., description="HDL cholesterol, same unit as total")
    systolic_bp: StrictFloat = Field(..., description="Systolic blood pressure in mmHg")
    smoker: int = Field(..., description="Current smoker (1) or not (0)")

    @field_validator(*NUMERIC_FIELDS)
    @classmethod
    def must_be_finite(cls, v: float, info: ValidationInfo) -> float:
        """Reject NaN and infinite measurements."""
        return _check_finite(info.field_name, v)

    @field_validator("smoker", mode="before")
    @classmethod
    def smoker_is_binary(cls, v: Any) -> int:
        """Validate that smoker is 0 or 1."""
        return _check_smoker(v)


class PredictorBatch(BaseModel):
    """Risk factors of many individuals as parallel sequences.

    Position ``i`` of every field belongs to individual ``i``. Validation
    covers the whole batch: one bad value rejects all records.
    """

    sex: list[Sex] = Field(..., description="Sex per individual")
    age: list[StrictFloat] = Field(..., description="Age in years")
    total_cholesterol: list[StrictFloat] = Field(..., description="Total cholesterol")
    hdl_cholesterol: list[StrictFloat] = Field(..., description="HDL cholesterol")
    systolic_bp: list[StrictFloat] = Field(..., description="Systolic blood pressure in mmHg")
    smoker: list[int] = Field(..., description="Current smoker (1) or not (0)")

    @field_validator(*NUMERIC_FIELDS)
    @classmethod
    def must_be_finite(cls, v: list[float], info: ValidationInfo) -> list[float]:
        """Reject NaN and infinite measurements."""
        return [_check_finite(info.field_name, x) for x in v]

    @field_validator("smoker", mode="before")
    @classmethod
    def smoker_is_binary(cls, v: Any) -> list[int]:
        """Validate that every smoker value is 0 or 1."""
        if isinstance(v, (str, bytes)) or not isinstance(v, Iterable):
            raise ValueError(FIELD_MESSAGES["smoker"])
        return [_check_smoker(x) for x in v]

    @model_validator(mode="after")
    def same_length(self) -> "PredictorBatch":
        """Validate that all predictor sequences have the same length."""
        lengths = {name: len(getattr(self, name)) for name in FIELD_MESSAGES}
        if len(set(lengths.values())) > 1:
            detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
            raise ValueError(f"all predictors must have the same length ({detail})")
        return self

    def __len__(self) -> int:
        return len(self.sex)

    @classmethod
    def from_records(cls, records: Iterable[PredictorSet]) -> "PredictorBatch":
        """Build a batch from individual predictor sets."""
        records = list(records)
        return cls(
            sex=[r.sex for r in records],
            age=[r.age for r in records],
            total_cholesterol=[r.total_cholesterol for r in records],
            hdl_cholesterol=[r.hdl_cholesterol for r in records],
            systolic_bp=[r.systolic_bp for r in records],
            smoker=[r.smoker for r in records],
        )

    def records(self) -> list[PredictorSet]:
        """Split the batch into individual predictor sets."""
        return [
            PredictorSet(
                sex=self.sex[i],
                age=self.age[i],
                total_cholesterol=self.total_cholesterol[i],
                hdl_cholesterol=self.hdl_cholesterol[i],
                systolic_bp=self.systolic_bp[i],
                smoker=self.smoker[i],
            )
            for i in range(len(self))
        ]


def invalid_predictor_from(exc: ValidationError) -> InvalidPredictorError:
    """Translate the first pydantic validation error into an InvalidPredictorError."""
    error = exc.errors()[0]
    loc = error.get("loc") or ()
    field_name = str(loc[0]) if loc else "batch"
    if field_name in FIELD_MESSAGES:
        return InvalidPredictorError(field_name, FIELD_MESSAGES[field_name])
    cause = (error.get("ctx") or {}).get("error")
    return InvalidPredictorError(field_name, str(cause) if cause else error["msg"])
