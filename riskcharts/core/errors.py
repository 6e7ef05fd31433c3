"""Error types raised by the risk chart engine."""


class InvalidPredictorError(ValueError):
    """A predictor, region or unit is outside its valid domain.

    Raised for the whole batch before any score is computed.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class CoefficientTableError(RuntimeError):
    """A chart fixture is missing, malformed or incomplete."""
