"""
Geographical Anomaly Detection

Detects location evidence of GPS spoofing and risky areas:
1. Location jumps and physically impossible speeds
2. Poor GPS accuracy
3. High-risk pickup or dropoff areas
4. Cross-region trips
5. Membership of a location-anomaly cluster

Region and risk lookups happen upstream; this scorer only reads the
already-assembled location record.
"""

from ..schemas import RiskSignal
from .base import (
    CLUSTER_BOOST,
    BaseDimensionScorer,
    DimensionResult,
    ScoringContext,
    exceeds,
)

INTER_REGIONAL_RATE = 0.05  # Share of trips that legitimately cross regions


class GeographicalScorer(BaseDimensionScorer):
    """Scores location anomalies."""

    dimension = "geographical"

    def __init__(self, inter_regional_rate: float = INTER_REGIONAL_RATE):
        self.inter_regional_rate = inter_regional_rate

    def score(self, context: ScoringContext) -> DimensionResult:
        result = DimensionResult()
        location = context.features.location

        # =======================================================================
        # Check 1: Impossible movement
        # =======================================================================
        if location.location_jumps > 3:
            result.add(0.8, RiskSignal.GEO_LOCATION_JUMPS, f"{location.location_jumps} location jumps")
        elif location.location_jumps > 1:
            result.add(0.4, RiskSignal.GEO_LOCATION_JUMPS, f"{location.location_jumps} location jumps")

        if location.impossible_speeds > 2:
            result.add(0.9, RiskSignal.GEO_IMPOSSIBLE_SPEED, f"{location.impossible_speeds} impossible speeds")
        elif location.impossible_speeds > 0:
            result.add(0.6, RiskSignal.GEO_IMPOSSIBLE_SPEED, f"{location.impossible_speeds} impossible speeds")

        # =======================================================================
        # Check 2: GPS accuracy (meters)
        # =======================================================================
        if exceeds(location.gps_accuracy, 50):
            result.add(0.3, RiskSignal.GEO_POOR_GPS_ACCURACY, "Very poor GPS accuracy")
        elif exceeds(location.gps_accuracy, 20):
            result.add(0.1, RiskSignal.GEO_POOR_GPS_ACCURACY, "Poor GPS accuracy")

        # =======================================================================
        # Check 3: High-risk areas
        # =======================================================================
        pickup_risky = exceeds(location.pickup_risk_score, 0.8) and location.pickup_risk_score <= 1
        dropoff_risky = exceeds(location.dropoff_risk_score, 0.8) and location.dropoff_risk_score <= 1
        if pickup_risky or dropoff_risky:
            result.add(0.4, RiskSignal.GEO_HIGH_RISK_AREA, "Pickup or dropoff in a high-risk area")

        # =======================================================================
        # Check 4: Cross-region trip
        # =======================================================================
        if location.pickup_region.strip().casefold() != location.dropoff_region.strip().casefold():
            draw = context.uncertainty.draw("geographical.cross_region")
            if draw > self.inter_regional_rate:
                result.add(
                    0.2,
                    RiskSignal.GEO_CROSS_REGION,
                    f"Cross-region trip {location.pickup_region} -> {location.dropoff_region}",
                )

        if context.cluster_flags("location_anomaly"):
            result.add(
                CLUSTER_BOOST,
                RiskSignal.GEO_CLUSTER_MEMBERSHIP,
                f"Member of location-anomaly cluster {context.cluster.cluster_id}",
            )

        return result.clamped()
