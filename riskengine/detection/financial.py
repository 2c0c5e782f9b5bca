"""
Financial Anomaly Detection

Detects payment patterns associated with fraud:
1. Unusual payment amounts
2. High payment velocity
3. Chargeback history
4. Fare that does not match trip distance
"""

import math

from ..schemas import RiskSignal
from .base import BaseDimensionScorer, DimensionResult, ScoringContext, below, exceeds

EXPECTED_PRICE_PER_KM = 16.0  # Average fare per km in PHP
MIN_DISTANCE_KM = 0.1


def measurable(value: float) -> bool:
    return math.isfinite(value) and value >= 0


class FinancialScorer(BaseDimensionScorer):
    """Scores payment anomalies."""

    dimension = "financial"

    def __init__(self, expected_price_per_km: float = EXPECTED_PRICE_PER_KM):
        """
        Initialize scorer.

        Args:
            expected_price_per_km: Typical fare per km in local currency
        """
        self.expected_price_per_km = expected_price_per_km

    def score(self, context: ScoringContext) -> DimensionResult:
        result = DimensionResult()
        payment = context.features.payment
        trip = context.features.trip

        if payment.unusual_amounts:
            result.add(0.4, RiskSignal.PAYMENT_UNUSUAL_AMOUNTS, "Unusual payment amounts")

        # Payments per hour
        if exceeds(payment.payment_velocity, 10):
            result.add(0.5, RiskSignal.PAYMENT_HIGH_VELOCITY, "Very high payment velocity")
        elif exceeds(payment.payment_velocity, 5):
            result.add(0.2, RiskSignal.PAYMENT_HIGH_VELOCITY, "Elevated payment velocity")

        if payment.chargeback_history > 3:
            result.add(0.6, RiskSignal.PAYMENT_CHARGEBACK_HISTORY, f"{payment.chargeback_history} chargebacks")
        elif payment.chargeback_history > 1:
            result.add(0.3, RiskSignal.PAYMENT_CHARGEBACK_HISTORY, f"{payment.chargeback_history} chargebacks")

        # Fare vs distance (negative or non-finite measurements are ignored)
        if measurable(trip.price) and measurable(trip.distance):
            price_per_km = trip.price / max(trip.distance, MIN_DISTANCE_KM)
            if exceeds(price_per_km, self.expected_price_per_km * 3):
                result.add(
                    0.5,
                    RiskSignal.PAYMENT_FARE_MISMATCH,
                    f"Fare of {price_per_km:.1f}/km far above expected",
                )
            elif below(price_per_km, self.expected_price_per_km * 0.3):
                result.add(
                    0.4,
                    RiskSignal.PAYMENT_FARE_MISMATCH,
                    f"Fare of {price_per_km:.1f}/km far below expected",
                )

        return result.clamped()
