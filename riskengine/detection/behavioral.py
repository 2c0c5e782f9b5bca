"""
Behavioral Anomaly Detection

Detects trip and account behavior that deviates from normal usage:
1. Route deviation from the optimal path
2. Speed anomalies during the trip
3. High cancellation rate and inconsistent locations
4. Repeated card failures
5. Automation indicators (emulators, rooted devices)
6. Membership of a risky behavioral or device-sharing cluster
"""

from ..schemas import RiskSignal
from .base import (
    CLUSTER_BOOST,
    BaseDimensionScorer,
    DimensionResult,
    ScoringContext,
    below,
    exceeds,
)


class BehavioralScorer(BaseDimensionScorer):
    """Scores behavioral anomalies."""

    dimension = "behavioral"

    def score(self, context: ScoringContext) -> DimensionResult:
        result = DimensionResult()
        features = context.features
        trip = features.trip
        user = features.user

        # Route deviation
        if exceeds(trip.route_deviation, 0.6):
            result.add(0.4, RiskSignal.BEHAVIOR_ROUTE_DEVIATION, "Large deviation from optimal route")
        elif exceeds(trip.route_deviation, 0.4):
            result.add(0.2, RiskSignal.BEHAVIOR_ROUTE_DEVIATION, "Moderate deviation from optimal route")

        # Speed anomalies
        if exceeds(trip.speed_anomaly, 0.8):
            result.add(0.5, RiskSignal.BEHAVIOR_SPEED_ANOMALY, "Very high speed anomaly")
        elif exceeds(trip.speed_anomaly, 0.5):
            result.add(0.3, RiskSignal.BEHAVIOR_SPEED_ANOMALY, "Elevated speed anomaly")

        if exceeds(user.cancelation_rate, 0.4):
            result.add(0.3, RiskSignal.BEHAVIOR_HIGH_CANCELATION, "High cancellation rate")

        if below(user.location_consistency, 0.3) and user.location_consistency >= 0:
            result.add(0.4, RiskSignal.BEHAVIOR_INCONSISTENT_LOCATION, "Very inconsistent location patterns")

        # Payment behavior
        failures = features.payment.card_failures
        if failures > 5:
            result.add(0.3, RiskSignal.PAYMENT_CARD_FAILURES, f"{failures} card failures")
        elif failures > 2:
            result.add(0.1, RiskSignal.PAYMENT_CARD_FAILURES, f"{failures} card failures")

        # Automation indicators
        if features.device.is_emulator:
            result.add(0.7, RiskSignal.DEVICE_EMULATOR, "Device is an emulator")
        if features.device.is_rooted:
            result.add(0.3, RiskSignal.DEVICE_ROOTED, "Device is rooted")

        if context.cluster_flags("behavioral_anomaly", "device_sharing"):
            result.add(
                CLUSTER_BOOST,
                RiskSignal.BEHAVIOR_CLUSTER_MEMBERSHIP,
                f"Member of high-risk cluster {context.cluster.cluster_id}",
            )

        return result.clamped()
