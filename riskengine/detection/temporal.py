"""
Temporal Anomaly Detection

Detects timing patterns that deviate from the subject's own history or
from the population:
1. Trips at hours the subject rarely travels
2. Weekend activity beyond the expected weekend share
3. Holiday trips
4. Unusually many trips in the last 24 hours

Hour frequency needs more than MIN_HISTORY_POINTS recorded trips; with
less history only the population rules apply.
"""

from datetime import timedelta

from ..schemas import RiskSignal
from .base import BaseDimensionScorer, DimensionResult, ScoringContext

MIN_HISTORY_POINTS = 10
EXPECTED_WEEKEND_RATIO = 0.28  # Typical weekend trip share


def hour_distance(a: int, b: int) -> int:
    """Distance between two hours on a 24h clock (23 and 0 are adjacent)."""
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


class TemporalScorer(BaseDimensionScorer):
    """Scores timing anomalies."""

    dimension = "temporal"

    def __init__(
        self,
        min_history_points: int = MIN_HISTORY_POINTS,
        expected_weekend_ratio: float = EXPECTED_WEEKEND_RATIO,
    ):
        self.min_history_points = min_history_points
        self.expected_weekend_ratio = expected_weekend_ratio

    def score(self, context: ScoringContext) -> DimensionResult:
        result = DimensionResult()
        trip = context.features.trip
        history = context.history

        # =======================================================================
        # Check 1: Unusual hour for this subject
        # =======================================================================
        hour = trip.time_of_day
        if len(history) > self.min_history_points and 0 <= hour <= 23:
            matching = sum(
                1 for point in history
                if hour_distance(point.timestamp.hour, hour) <= 1
            )
            frequency = matching / len(history)

            if frequency < 0.05:
                result.add(
                    0.6,
                    RiskSignal.TEMPORAL_UNUSUAL_HOUR,
                    f"Trip at {hour:02d}:00 matches {frequency:.0%} of past trips",
                )
            elif frequency < 0.15:
                result.add(
                    0.3,
                    RiskSignal.TEMPORAL_UNUSUAL_HOUR,
                    f"Trip at {hour:02d}:00 matches {frequency:.0%} of past trips",
                )

        # =======================================================================
        # Check 2: Weekend deviation
        # =======================================================================
        if trip.is_weekend:
            draw = context.uncertainty.draw("temporal.weekend")
            if draw > self.expected_weekend_ratio:
                result.add(
                    0.2,
                    RiskSignal.TEMPORAL_WEEKEND_DEVIATION,
                    "Weekend activity beyond expected share",
                )

        # =======================================================================
        # Check 3: Holiday
        # =======================================================================
        if trip.is_holiday:
            result.add(0.4, RiskSignal.TEMPORAL_HOLIDAY, "Trip on a holiday")

        # =======================================================================
        # Check 4: Daily trip frequency
        # =======================================================================
        baseline = context.baselines.get("daily_trips")
        if baseline is not None and history:
            day_ago = context.now - timedelta(hours=24)
            recent = sum(1 for point in history if day_ago < point.timestamp <= context.now)
            limit = baseline.mean + 2 * baseline.std
            if recent > limit:
                result.add(
                    0.5,
                    RiskSignal.TEMPORAL_HIGH_TRIP_FREQUENCY,
                    f"{recent} trips in the last 24h (limit {limit:.0f})",
                )

        return result.clamped()
