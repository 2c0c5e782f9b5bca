"""
Score Schemas

Per-call outputs of the scoring pipeline. Neither model is persisted;
both are plain values returned to the caller.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .signals import RiskSignal


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class RiskLevel(str, Enum):
    """
    Risk classification, ordered from least to most severe.

    Also used as alert and pattern severity.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DimensionScores(BaseModel):
    """The five independent anomaly contributions."""
    temporal: float = Field(default=0.0, ge=0.0, le=1.0)
    behavioral: float = Field(default=0.0, ge=0.0, le=1.0)
    geographical: float = Field(default=0.0, ge=0.0, le=1.0)
    financial: float = Field(default=0.0, ge=0.0, le=1.0)
    network: float = Field(default=0.0, ge=0.0, le=1.0)

    def as_dict(self) -> dict[str, float]:
        """Scores keyed by dimension name, in aggregation order."""
        return {
            "temporal": self.temporal,
            "behavioral": self.behavioral,
            "geographical": self.geographical,
            "financial": self.financial,
            "network": self.network,
        }


class AnomalyScore(BaseModel):
    """
    Multi-dimensional anomaly score.

    The explanation always holds at least one line.
    """
    overall: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Weighted combination of the dimension scores",
    )
    dimensions: DimensionScores = Field(
        default_factory=DimensionScores,
        description="Per-dimension anomaly contributions",
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Confidence derived from inter-dimension consistency",
    )
    explanation: list[str] = Field(
        default_factory=list,
        description="Human-readable explanation, in rule order",
    )
    signals: list[RiskSignal] = Field(
        default_factory=list,
        description="Structured tags emitted by the dimension scorers",
    )


class SubScores(BaseModel):
    """Specialized sub-model outputs blended into the fraud score."""
    ensemble: float = Field(default=0.0, ge=0.0, le=1.0)
    gps_spoofing: float = Field(default=0.0, ge=0.0, le=1.0)
    multi_account: float = Field(default=0.0, ge=0.0, le=1.0)
    incentive: float = Field(default=0.0, ge=0.0, le=1.0)


class FeatureContribution(BaseModel):
    """One attributed feature."""
    feature: str
    importance: float = Field(..., ge=0.0)
    label: str = Field(
        default="Contributing factor",
        description="Human-readable feature label",
    )


class FeatureImportance(BaseModel):
    """Top contributors pushing the score up (positive) or down (negative)."""
    top_positive: list[FeatureContribution] = Field(default_factory=list, max_length=5)
    top_negative: list[FeatureContribution] = Field(default_factory=list, max_length=3)


class FraudPrediction(BaseModel):
    """
    Ensemble fraud prediction.

    Pattern matching consumes batches of these, so the structured
    signals travel with the prediction.
    """
    fraud_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Blended fraud probability",
    )
    risk_level: RiskLevel = Field(
        ...,
        description="Step function of fraud_score",
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Confidence in the prediction",
    )
    reasons: list[str] = Field(
        default_factory=list,
        max_length=5,
        description="Top reasons in fixed priority order",
    )
    model_version: str = Field(
        default="ensemble_v2.1",
        description="Model version that produced the prediction",
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the prediction was made",
    )
    feature_importance: FeatureImportance = Field(
        default_factory=FeatureImportance,
        description="Top positive/negative feature contributors",
    )
    sub_scores: SubScores = Field(
        default_factory=SubScores,
        description="Individual sub-model scores",
    )
    signals: list[RiskSignal] = Field(
        default_factory=list,
        description="All structured tags fired for this prediction",
    )
    subject_id: Optional[str] = Field(
        default=None,
        description="Subject the prediction is about",
    )
