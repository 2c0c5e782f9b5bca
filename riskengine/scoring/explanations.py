"""
Explanation Engine

Turns scorer outputs into human-auditable text:
- Anomaly explanation: one line per elevated dimension, plus lines for
  jointly elevated dimension pairs, with a generic fallback
- Fraud reasons: fixed-priority rules over the normalized features and
  sub-model scores, each tagged with a RiskSignal; capped at 5 lines
- Feature importance: top contributing and top protective features

Rule order is part of the output contract: analysts compare reasons
across predictions, so the same inputs always produce the same list.
"""

from types import MappingProxyType
from typing import Callable, Mapping, NamedTuple

from ..schemas import (
    DimensionScores,
    FeatureContribution,
    FeatureImportance,
    RiskSignal,
    SubScores,
)

MAX_REASONS = 5
MAX_POSITIVE = 5
MAX_NEGATIVE = 3

FALLBACK_EXPLANATION = "Minor statistical deviation from normal patterns"

# (dimension, threshold, text) in output order
DIMENSION_RULES: tuple[tuple[str, float, str], ...] = (
    ("temporal", 0.5, "Unusual timing pattern detected - activity outside normal schedule"),
    ("behavioral", 0.6, "Behavioral anomaly detected - patterns deviate from user history"),
    ("geographical", 0.7, "Location anomaly detected - impossible movements or high-risk areas"),
    ("financial", 0.5, "Financial anomaly detected - unusual payment patterns or amounts"),
    ("network", 0.6, "Network anomaly detected - suspicious IP or connection patterns"),
)

# (dimension_a, dimension_b, text): both above 0.5
COMBINATION_RULES: tuple[tuple[str, str, str], ...] = (
    ("geographical", "temporal", "Coordinated location and timing anomalies suggest possible fraud"),
    ("behavioral", "financial", "Combined behavioral and financial anomalies indicate systematic abuse"),
)
COMBINATION_THRESHOLD = 0.5


class ReasonRule(NamedTuple):
    signal: RiskSignal
    text: str
    fires: Callable[[Mapping[str, float], SubScores], bool]


def _feature(name: str, threshold: float) -> Callable[[Mapping[str, float], SubScores], bool]:
    return lambda features, _scores: features.get(name, 0.0) > threshold


REASON_RULES: tuple[ReasonRule, ...] = (
    # GPS spoofing indicators
    ReasonRule(
        RiskSignal.GEO_LOCATION_JUMPS,
        "Multiple impossible location jumps detected",
        _feature("location_jumps", 0.7),
    ),
    ReasonRule(
        RiskSignal.GEO_IMPOSSIBLE_SPEED,
        "Movement speeds exceed physical limits",
        _feature("location_impossible_speeds", 0.6),
    ),
    # Multi-account indicators
    ReasonRule(
        RiskSignal.DEVICE_MULTIPLE_ACCOUNTS,
        "Device associated with multiple accounts",
        _feature("device_multiple_accounts", 0.5),
    ),
    ReasonRule(
        RiskSignal.DEVICE_EMULATOR,
        "Device appears to be an emulator",
        _feature("device_is_emulator", 0.5),
    ),
    # Payment fraud indicators
    ReasonRule(
        RiskSignal.PAYMENT_CARD_FAILURES,
        "High rate of payment failures",
        _feature("payment_card_failures", 0.6),
    ),
    ReasonRule(
        RiskSignal.PAYMENT_UNUSUAL_AMOUNTS,
        "Unusual payment amounts detected",
        _feature("payment_unusual_amounts", 0.5),
    ),
    # Route and behavior indicators
    ReasonRule(
        RiskSignal.BEHAVIOR_ROUTE_DEVIATION,
        "Significant route deviations from optimal path",
        _feature("trip_route_deviation", 0.7),
    ),
    ReasonRule(
        RiskSignal.BEHAVIOR_HIGH_CANCELATION,
        "Unusually high trip cancellation rate",
        _feature("user_cancelation_rate", 0.8),
    ),
    # Network security indicators
    ReasonRule(
        RiskSignal.NETWORK_VPN_PROXY,
        "Connection through VPN or proxy detected",
        lambda f, _s: f.get("network_is_vpn", 0.0) > 0.5 or f.get("network_is_proxy", 0.0) > 0.5,
    ),
    # Sub-model scores
    ReasonRule(
        RiskSignal.MODEL_GPS_SPOOFING,
        "GPS spoofing model indicates high risk",
        lambda _f, scores: scores.gps_spoofing > 0.7,
    ),
    ReasonRule(
        RiskSignal.MODEL_MULTI_ACCOUNT,
        "Multi-account fraud model indicates high risk",
        lambda _f, scores: scores.multi_account > 0.7,
    ),
)

# Features whose high values lower fraud risk
PROTECTIVE_FEATURES = frozenset({
    "user_rating",
    "user_location_consistency",
    "user_account_age",
    "user_total_rides",
    "device_age",
})

FEATURE_LABELS: Mapping[str, str] = MappingProxyType({
    "location_jumps": "Location inconsistencies",
    "location_impossible_speeds": "Physically impossible movement",
    "location_gps_accuracy": "GPS signal quality",
    "location_pickup_risk": "Pickup area risk",
    "location_dropoff_risk": "Dropoff area risk",
    "device_multiple_accounts": "Device sharing patterns",
    "device_is_emulator": "Emulated device",
    "device_is_rooted": "Rooted device",
    "device_age": "Device history",
    "payment_card_failures": "Payment reliability issues",
    "payment_unusual_amounts": "Unusual payment amounts",
    "payment_velocity": "Payment frequency",
    "trip_route_deviation": "Route optimization concerns",
    "trip_speed_anomaly": "Trip speed irregularities",
    "user_rating": "User reputation factor",
    "user_location_consistency": "Behavioral consistency",
    "user_account_age": "Account tenure",
    "user_total_rides": "Ride history",
    "user_cancelation_rate": "Cancellation behavior",
    "network_ip_risk": "IP reputation",
    "network_is_vpn": "VPN usage",
    "network_is_proxy": "Proxy usage",
    "network_is_tor": "Tor usage",
})
DEFAULT_LABEL = "Contributing factor"


class ExplanationEngine:
    """Deterministic explanation rules. Stateless."""

    @staticmethod
    def explain_anomaly(dimensions: DimensionScores) -> list[str]:
        """
        Explanation lines for an anomaly score.

        Returns:
            Non-empty list, in rule order
        """
        scores = dimensions.as_dict()
        explanations = [
            text for name, threshold, text in DIMENSION_RULES
            if scores[name] > threshold
        ]

        for first, second, text in COMBINATION_RULES:
            if scores[first] > COMBINATION_THRESHOLD and scores[second] > COMBINATION_THRESHOLD:
                explanations.append(text)

        return explanations or [FALLBACK_EXPLANATION]

    @staticmethod
    def fraud_reasons(
        features: Mapping[str, float],
        sub_scores: SubScores,
    ) -> tuple[list[str], list[RiskSignal]]:
        """
        Reasons for a fraud prediction.

        Returns:
            Tuple of (first MAX_REASONS reason lines, every fired signal)
        """
        fired = [rule for rule in REASON_RULES if rule.fires(features, sub_scores)]
        reasons = [rule.text for rule in fired[:MAX_REASONS]]
        signals = [rule.signal for rule in fired]
        return reasons, signals

    @staticmethod
    def feature_importance(features: Mapping[str, float]) -> FeatureImportance:
        """
        Top positive and negative contributors.

        Protective features contribute negatively. Contributors are
        ranked by magnitude; importances are reported as magnitudes.
        """
        signed = [
            (name, -value if name in PROTECTIVE_FEATURES else value)
            for name, value in features.items()
        ]
        ranked = sorted(signed, key=lambda item: abs(item[1]), reverse=True)

        def contribution(name: str, value: float) -> FeatureContribution:
            return FeatureContribution(
                feature=name,
                importance=round(abs(value), 4),
                label=FEATURE_LABELS.get(name, DEFAULT_LABEL),
            )

        return FeatureImportance(
            top_positive=[contribution(n, v) for n, v in ranked if v > 0][:MAX_POSITIVE],
            top_negative=[contribution(n, v) for n, v in ranked if v < 0][:MAX_NEGATIVE],
        )
