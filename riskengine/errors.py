"""
Risk Engine Errors
"""

from pydantic import ValidationError


class RiskEngineError(Exception):
    """Base class for risk engine errors."""


class InvalidFeatureVectorError(RiskEngineError):
    """A feature vector is missing sub-records or has wrongly typed fields."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid feature vector: " + "; ".join(errors))

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidFeatureVectorError":
        return cls([
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        ])
