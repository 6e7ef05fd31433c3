"""Base enums for the risk chart engine."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Sex(str, Enum):
    """Sex category of an individual (bin order of the sex axis)."""

    FEMALE = "female"
    MALE = "male"


class Region(str, Enum):
    """Geographical risk region selecting the coefficient sub-table."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very high"

    @classmethod
    def _missing_(cls, value: object) -> "Region | None":
        # "very_high" never matches the canonical label; accept it but report it
        if isinstance(value, str) and value.strip().lower() == "very_high":
            logger.warning(
                "Region label 'very_high' is not canonical; treating it as 'very high'"
            )
            return cls.VERY_HIGH
        return None


class CholesterolUnit(str, Enum):
    """Unit of total and HDL cholesterol inputs."""

    MMOL_L = "mmol/L"
    MG_DL = "mg/dL"

    @classmethod
    def _missing_(cls, value: object) -> "CholesterolUnit | None":
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class ChartId(str, Enum):
    """Identifiers of the bundled risk charts."""

    SCORE2_OP = "score2_op"  # Older persons, 70+
    SCORE2 = "score2"  # 40-69 years
