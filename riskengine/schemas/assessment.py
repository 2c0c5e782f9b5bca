"""
Assessment Schemas

The result of scoring one FeatureVector: the anomaly score and the
fraud prediction, plus the engine-level combined risk used for triage.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .alerts import AnomalyAlert
from .scores import AnomalyScore, FraudPrediction, RiskLevel


class RiskAssessment(BaseModel):
    """
    Complete scoring result.

    The combined score is the strongest of the fraud score, the overall
    anomaly score and the weighted dimension scores, so a single
    saturated dimension escalates triage even when the blended
    probabilities stay moderate.
    """
    anomaly: AnomalyScore
    prediction: FraudPrediction
    combined_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Strongest risk signal across both scorers",
    )
    risk_level: RiskLevel = Field(
        ...,
        description="Risk level of the combined score",
    )
    flagged_for_review: bool = Field(
        default=False,
        description="Combined score at or above the review threshold",
    )
    alert: Optional[AnomalyAlert] = Field(
        default=None,
        description="Alert generated for this call, if any",
    )
    cluster_id: Optional[str] = Field(
        default=None,
        description="Published cluster the subject fell into, if any",
    )


class ScoreResponse(BaseModel):
    """REST response for /score."""
    assessment: RiskAssessment
    processing_time_ms: float = Field(
        default=0.0,
        description="Scoring time in milliseconds",
    )


class ActivityRecord(BaseModel):
    """A completed trip reported for temporal history."""
    subject_id: str = Field(..., min_length=1)
    timestamp: datetime
    is_weekend: Optional[bool] = None
