"""
Alert Schemas

Anomaly alerts are generated when the overall anomaly score crosses
the alert threshold. They live in the AlertStore and are the only
scoring output with a lifecycle (resolve / false-positive marking).
"""

from datetime import datetime, UTC
from enum import Enum

from pydantic import BaseModel, Field

from .scores import RiskLevel


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class AlertType(str, Enum):
    """
    Alert categories, derived from the strongest anomaly dimension:
    - STATISTICAL: behavioral or other deviations from baselines
    - CLUSTERING: membership of a high-risk cluster
    - SEQUENTIAL: timing/sequence anomalies
    - CONTEXTUAL: location/context anomalies
    """
    STATISTICAL = "statistical"
    CLUSTERING = "clustering"
    SEQUENTIAL = "sequential"
    CONTEXTUAL = "contextual"


class AnomalyAlert(BaseModel):
    """An anomaly alert awaiting investigation."""
    id: str = Field(
        ...,
        description="Unique alert identifier",
    )
    type: AlertType = Field(
        default=AlertType.STATISTICAL,
        description="Alert category",
    )
    severity: RiskLevel = Field(
        ...,
        description="Severity derived from the overall anomaly score",
    )
    subject_id: str = Field(
        default="unknown",
        description="User the alert is about",
    )
    description: str = Field(
        ...,
        description="Primary explanation line",
    )
    features: list[str] = Field(
        default_factory=list,
        description="Dimensions that were elevated",
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Confidence of the underlying anomaly score",
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the alert was generated",
    )
    resolved: bool = Field(
        default=False,
        description="Whether an analyst resolved the alert",
    )
    false_positive: bool = Field(
        default=False,
        description="Whether the alert was marked a false positive",
    )


class AlertStats(BaseModel):
    """Aggregate counts over the alerts currently held."""
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
    false_positive_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class ResolveAlertRequest(BaseModel):
    """Body of the resolve endpoint."""
    false_positive: bool = Field(
        default=False,
        description="Mark the alert as a false positive",
    )
