# Data schemas for the Ride Risk Engine
from .features import (
    FeatureVector,
    UserFeatures,
    TripFeatures,
    LocationFeatures,
    PaymentFeatures,
    DeviceFeatures,
    NetworkFeatures,
)
from .signals import RiskSignal
from .scores import (
    RiskLevel,
    DimensionScores,
    AnomalyScore,
    SubScores,
    FeatureContribution,
    FeatureImportance,
    FraudPrediction,
)
from .alerts import AlertType, AnomalyAlert, AlertStats, ResolveAlertRequest
from .patterns import FraudPattern, PatternCatalog, PatternCharacteristics, RiskFactor
from .clusters import ClusterAnalysis, ClusterCharacteristics, ClusterOutlier, ClusteringRequest
from .assessment import RiskAssessment, ScoreResponse, ActivityRecord

__all__ = [
    # Features
    "FeatureVector",
    "UserFeatures",
    "TripFeatures",
    "LocationFeatures",
    "PaymentFeatures",
    "DeviceFeatures",
    "NetworkFeatures",
    # Signals
    "RiskSignal",
    # Scores
    "RiskLevel",
    "DimensionScores",
    "AnomalyScore",
    "SubScores",
    "FeatureContribution",
    "FeatureImportance",
    "FraudPrediction",
    # Alerts
    "AlertType",
    "AnomalyAlert",
    "AlertStats",
    "ResolveAlertRequest",
    # Patterns
    "FraudPattern",
    "PatternCatalog",
    "PatternCharacteristics",
    "RiskFactor",
    # Clusters
    "ClusterAnalysis",
    "ClusterCharacteristics",
    "ClusterOutlier",
    "ClusteringRequest",
    # Assessment
    "RiskAssessment",
    "ScoreResponse",
    "ActivityRecord",
]
