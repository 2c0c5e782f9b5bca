"""
Ensemble Fraud Scoring

Four specialized sub-models read the same normalized feature map:

- General ensemble: broad location/device/payment/route/network signals,
  reduced by protective factors (good rating, consistent locations)
- GPS spoofing: jumps, impossible speeds, GPS accuracy, speed anomaly
- Multi-account: shared devices, card failures, device/network churn
- Incentive fraud: route padding, unusual amounts, risky pickup/dropoff

    fraud_score = 0.40*general + 0.25*gps + 0.20*multi_account + 0.15*incentive

The general ensemble can be replaced by a trained model through the
GeneralModel interface without touching the specialized sub-models.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from ..features import clamp
from ..schemas import RiskLevel, SubScores
from .uncertainty import GeneralModel, NeutralUncertainty, UncertaintySource

logger = logging.getLogger("riskengine.scoring")

GENERAL_WEIGHTS: Mapping[str, float] = MappingProxyType({
    # High-risk indicators
    "location_jumps": 0.15,
    "location_impossible_speeds": 0.12,
    "device_is_emulator": 0.10,
    "device_multiple_accounts": 0.08,
    "payment_card_failures": 0.06,
    "trip_route_deviation": 0.07,
    "network_is_vpn": 0.05,
    # Protective factors
    "user_rating": -0.03,
    "user_location_consistency": -0.04,
})

GPS_SPOOFING_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "location_jumps": 0.25,
    "location_impossible_speeds": 0.30,
    "location_gps_accuracy": 0.15,  # Poor accuracy is suspicious
    "trip_speed_anomaly": 0.20,
    "device_is_rooted": 0.10,
})

MULTI_ACCOUNT_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "device_multiple_accounts": 0.35,
    "payment_card_failures": 0.20,
    "user_device_changes": 0.15,
    "network_changes": 0.15,
    "device_is_emulator": 0.15,
})

INCENTIVE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "trip_route_deviation": 0.25,
    "payment_unusual_amounts": 0.20,
    "trip_is_weekend": 0.10,  # Weekend bonuses
    "user_cancelation_rate": 0.15,
    "location_pickup_risk": 0.15,
    "location_dropoff_risk": 0.15,
})

BLEND_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "ensemble": 0.40,
    "gps_spoofing": 0.25,
    "multi_account": 0.20,
    "incentive": 0.15,
})

JITTER_SCALE = 0.1
MAX_CONFIDENCE = 0.98

# (feature, threshold, boost) for extreme individual indicators
CONFIDENCE_BOOSTS: tuple[tuple[str, float, float], ...] = (
    ("location_impossible_speeds", 0.8, 0.10),
    ("device_is_emulator", 0.8, 0.10),
    ("device_multiple_accounts", 0.7, 0.08),
)


def weighted_sum(features: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Clamped weighted sum over the named features (missing features count 0)."""
    return clamp(sum(features.get(name, 0.0) * weight for name, weight in weights.items()))


def score_to_risk_level(score: float) -> RiskLevel:
    """Map a [0,1] score to a risk level."""
    if score >= 0.8:
        return RiskLevel.CRITICAL
    if score >= 0.6:
        return RiskLevel.HIGH
    if score >= 0.3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(frozen=True)
class EnsembleResult:
    """Output of the ensemble scorer before explanations are attached."""
    sub_scores: SubScores
    fraud_score: float
    risk_level: RiskLevel
    confidence: float


class EnsembleFraudScorer:
    """
    Blends the four sub-models into a fraud probability.

    Stateless: safe to share across concurrent scoring calls.
    """

    def __init__(
        self,
        uncertainty: Optional[UncertaintySource] = None,
        general_model: Optional[GeneralModel] = None,
    ):
        """
        Initialize scorer.

        Args:
            uncertainty: Source of jitter draws (neutral by default)
            general_model: Optional trained model for the general ensemble
        """
        self.uncertainty = uncertainty or NeutralUncertainty()
        self.general_model = general_model

    def general_score(self, features: Mapping[str, float]) -> float:
        """General ensemble score, from the model if one is plugged in."""
        if self.general_model is not None:
            prediction = self.general_model.predict(features)
            if prediction is not None and math.isfinite(prediction):
                return round(clamp(prediction), 4)
            if prediction is not None:
                logger.warning("General model returned non-finite score, using rules")

        score = sum(features.get(name, 0.0) * weight for name, weight in GENERAL_WEIGHTS.items())
        score += (self.uncertainty.draw("ensemble.jitter") - 0.5) * JITTER_SCALE
        return round(clamp(score), 4)

    @staticmethod
    def gps_spoofing_score(features: Mapping[str, float]) -> float:
        return round(weighted_sum(features, GPS_SPOOFING_WEIGHTS), 4)

    @staticmethod
    def multi_account_score(features: Mapping[str, float]) -> float:
        return round(weighted_sum(features, MULTI_ACCOUNT_WEIGHTS), 4)

    @staticmethod
    def incentive_score(features: Mapping[str, float]) -> float:
        return round(weighted_sum(features, INCENTIVE_WEIGHTS), 4)

    @staticmethod
    def confidence(fraud_score: float, features: Mapping[str, float]) -> float:
        """
        Prediction confidence.

        Higher scores backed by more non-trivial (>0.1) features give
        higher confidence; extreme individual indicators add fixed boosts.
        """
        if not features:
            return 0.0

        non_trivial = sum(1 for value in features.values() if value > 0.1)
        base_confidence = fraud_score * (non_trivial / len(features))

        boost = sum(
            amount
            for name, threshold, amount in CONFIDENCE_BOOSTS
            if features.get(name, 0.0) > threshold
        )

        return round(clamp(min(base_confidence + boost, MAX_CONFIDENCE)), 4)

    def score(self, features: Mapping[str, float]) -> EnsembleResult:
        """
        Score a normalized feature map.

        Args:
            features: Normalized [0,1] feature map

        Returns:
            EnsembleResult with sub-scores, blended score and risk level
        """
        sub_scores = SubScores(
            ensemble=self.general_score(features),
            gps_spoofing=self.gps_spoofing_score(features),
            multi_account=self.multi_account_score(features),
            incentive=self.incentive_score(features),
        )

        blended = sum(
            getattr(sub_scores, name) * weight
            for name, weight in BLEND_WEIGHTS.items()
        )
        fraud_score = round(clamp(blended), 4)

        return EnsembleResult(
            sub_scores=sub_scores,
            fraud_score=fraud_score,
            risk_level=score_to_risk_level(fraud_score),
            confidence=self.confidence(fraud_score, features),
        )
