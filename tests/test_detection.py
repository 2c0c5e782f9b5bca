"""
Dimension Scorer Tests

Tests for the five anomaly dimension scorers and the DimensionEngine.
"""

import math
from datetime import timedelta

import pytest

from riskengine.clustering import REFERENCE_CLUSTERS
from riskengine.detection import (
    BaseDimensionScorer,
    BehavioralScorer,
    DimensionEngine,
    DimensionResult,
    FinancialScorer,
    GeographicalScorer,
    NetworkScorer,
    ScoringContext,
    TemporalScorer,
    default_scorers,
)
from riskengine.detection.temporal import hour_distance
from riskengine.features import DEFAULT_FEATURE_STATS, FeatureNormalizer, TripPoint
from riskengine.schemas import RiskSignal

NORMAL_USERS, GPS_SPOOFERS, MULTI_ACCOUNT_OPERATORS = REFERENCE_CLUSTERS


class FixedUncertainty:
    def __init__(self, value: float):
        self.value = value

    def draw(self, key: str) -> float:
        return self.value


@pytest.fixture
def context_for(now):
    normalizer = FeatureNormalizer()

    def _context(vector, **kwargs) -> ScoringContext:
        return ScoringContext(
            features=vector,
            normalized=normalizer.normalize_vector(vector),
            now=now,
            baselines=DEFAULT_FEATURE_STATS,
            **kwargs,
        )
    return _context


class TestTemporalScorer:
    """Tests for temporal anomaly detection."""

    @pytest.fixture
    def scorer(self):
        return TemporalScorer()

    def test_nominal_trip(self, scorer, context_for, nominal_vector):
        result = scorer.score(context_for(nominal_vector))

        assert result.score == 0.0
        assert result.signals == []

    def test_holiday(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(trip={"is_holiday": True})))

        assert result.score == pytest.approx(0.4)
        assert RiskSignal.TEMPORAL_HOLIDAY in result.signals

    def test_weekend_uses_uncertainty(self, scorer, context_for, make_vector):
        vector = make_vector(trip={"is_weekend": True})

        flagged = scorer.score(context_for(vector))
        quiet = scorer.score(context_for(vector, uncertainty=FixedUncertainty(0.1)))

        assert flagged.score == pytest.approx(0.2)
        assert RiskSignal.TEMPORAL_WEEKEND_DEVIATION in flagged.signals
        assert quiet.score == 0.0

    def test_unusual_hour(self, scorer, context_for, make_vector, now):
        history = tuple(
            TripPoint(timestamp=now.replace(hour=14) - timedelta(days=day), is_weekend=False)
            for day in range(1, 21)
        )
        vector = make_vector(trip={"time_of_day": 3})

        result = scorer.score(context_for(vector, history=history))

        assert result.score == pytest.approx(0.6)
        assert RiskSignal.TEMPORAL_UNUSUAL_HOUR in result.signals

    def test_usual_hour(self, scorer, context_for, nominal_vector, now):
        history = tuple(
            TripPoint(timestamp=now.replace(hour=14) - timedelta(days=day), is_weekend=False)
            for day in range(1, 21)
        )

        result = scorer.score(context_for(nominal_vector, history=history))

        assert RiskSignal.TEMPORAL_UNUSUAL_HOUR not in result.signals

    def test_hour_check_needs_history(self, scorer, context_for, make_vector, now):
        history = tuple(
            TripPoint(timestamp=now.replace(hour=14) - timedelta(days=day), is_weekend=False)
            for day in range(1, 6)
        )
        vector = make_vector(trip={"time_of_day": 3})

        result = scorer.score(context_for(vector, history=history))

        assert result.score == 0.0

    def test_high_trip_frequency(self, scorer, context_for, nominal_vector, now):
        history = tuple(
            TripPoint(timestamp=now - timedelta(minutes=30 * i), is_weekend=False)
            for i in range(1, 21)
        )

        result = scorer.score(context_for(nominal_vector, history=history))

        assert RiskSignal.TEMPORAL_HIGH_TRIP_FREQUENCY in result.signals
        assert result.score >= 0.5

    def test_hour_distance_wraps(self):
        assert hour_distance(23, 0) == 1
        assert hour_distance(0, 12) == 12
        assert hour_distance(5, 3) == 2


class TestBehavioralScorer:
    """Tests for behavioral anomaly detection."""

    @pytest.fixture
    def scorer(self):
        return BehavioralScorer()

    def test_nominal_trip(self, scorer, context_for, nominal_vector):
        assert scorer.score(context_for(nominal_vector)).score == 0.0

    def test_emulator(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(device={"is_emulator": True})))

        assert result.score == pytest.approx(0.7)
        assert RiskSignal.DEVICE_EMULATOR in result.signals

    def test_route_and_speed(self, scorer, context_for, make_vector):
        moderate = scorer.score(context_for(make_vector(trip={"route_deviation": 0.5})))
        severe = scorer.score(context_for(make_vector(trip={"route_deviation": 0.7, "speed_anomaly": 0.9})))

        assert moderate.score == pytest.approx(0.2)
        assert severe.score == pytest.approx(0.9)

    def test_score_is_clamped(self, scorer, context_for, extreme_vector):
        assert scorer.score(context_for(extreme_vector)).score == 1.0

    def test_non_finite_measurement_is_ignored(self, scorer, context_for, make_vector):
        vector = make_vector(trip={"route_deviation": math.nan, "speed_anomaly": math.inf})

        assert scorer.score(context_for(vector)).score == 0.0

    def test_risky_cluster_boost(self, scorer, context_for, nominal_vector):
        result = scorer.score(context_for(nominal_vector, cluster=MULTI_ACCOUNT_OPERATORS))

        assert result.score == pytest.approx(0.2)
        assert RiskSignal.BEHAVIOR_CLUSTER_MEMBERSHIP in result.signals

    def test_low_risk_cluster_no_boost(self, scorer, context_for, nominal_vector):
        assert scorer.score(context_for(nominal_vector, cluster=NORMAL_USERS)).score == 0.0


class TestGeographicalScorer:
    """Tests for geographical anomaly detection."""

    @pytest.fixture
    def scorer(self):
        return GeographicalScorer()

    def test_gps_spoofing(self, scorer, context_for, gps_spoofing_vector):
        result = scorer.score(context_for(gps_spoofing_vector))

        assert result.score >= 0.8
        assert RiskSignal.GEO_LOCATION_JUMPS in result.signals
        assert RiskSignal.GEO_IMPOSSIBLE_SPEED in result.signals

    def test_few_jumps(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(location={"location_jumps": 2})))

        assert result.score == pytest.approx(0.4)

    def test_poor_gps_accuracy(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(location={"gps_accuracy": 80})))

        assert result.score == pytest.approx(0.3)
        assert RiskSignal.GEO_POOR_GPS_ACCURACY in result.signals

    def test_cross_region(self, scorer, context_for, make_vector):
        vector = make_vector(location={"dropoff_region": "cebu"})

        flagged = scorer.score(context_for(vector))
        legitimate = scorer.score(context_for(vector, uncertainty=FixedUncertainty(0.01)))

        assert flagged.score == pytest.approx(0.2)
        assert RiskSignal.GEO_CROSS_REGION in flagged.signals
        assert legitimate.score == 0.0

    def test_region_compare_ignores_case(self, scorer, context_for, make_vector):
        vector = make_vector(location={"pickup_region": "Manila", "dropoff_region": "manila "})

        assert scorer.score(context_for(vector)).score == 0.0

    def test_location_cluster_boost(self, scorer, context_for, nominal_vector):
        result = scorer.score(context_for(nominal_vector, cluster=GPS_SPOOFERS))

        assert RiskSignal.GEO_CLUSTER_MEMBERSHIP in result.signals


class TestFinancialScorer:
    """Tests for financial anomaly detection."""

    @pytest.fixture
    def scorer(self):
        return FinancialScorer(expected_price_per_km=16)

    def test_nominal_fare(self, scorer, context_for, nominal_vector):
        assert scorer.score(context_for(nominal_vector)).score == 0.0

    def test_fare_far_above_expected(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(trip={"price": 2000, "distance": 10})))

        assert result.score == pytest.approx(0.5)
        assert RiskSignal.PAYMENT_FARE_MISMATCH in result.signals

    def test_fare_far_below_expected(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(trip={"price": 10, "distance": 10})))

        assert result.score == pytest.approx(0.4)

    def test_zero_distance_uses_floor(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(trip={"distance": 0})))

        assert RiskSignal.PAYMENT_FARE_MISMATCH in result.signals

    def test_negative_price_is_ignored(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(trip={"price": -50})))

        assert result.score == 0.0

    @pytest.mark.parametrize(
        "trip",
        [
            {"distance": math.inf},
            {"distance": math.nan},
            {"price": math.inf},
            {"price": math.nan},
        ],
    )
    def test_non_finite_fare_inputs_are_ignored(self, scorer, context_for, make_vector, trip):
        result = scorer.score(context_for(make_vector(trip=trip)))

        assert result.score == 0.0
        assert RiskSignal.PAYMENT_FARE_MISMATCH not in result.signals

    def test_chargebacks_and_velocity(self, scorer, context_for, make_vector):
        vector = make_vector(payment={"chargeback_history": 5, "payment_velocity": 7})

        result = scorer.score(context_for(vector))

        assert result.score == pytest.approx(0.8)
        assert RiskSignal.PAYMENT_CHARGEBACK_HISTORY in result.signals
        assert RiskSignal.PAYMENT_HIGH_VELOCITY in result.signals


class TestNetworkScorer:
    """Tests for network anomaly detection."""

    @pytest.fixture
    def scorer(self):
        return NetworkScorer(home_country="PH")

    def test_nominal_network(self, scorer, context_for, nominal_vector):
        assert scorer.score(context_for(nominal_vector)).score == 0.0

    def test_foreign_country(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(network={"country_code": "us"})))

        assert result.score == pytest.approx(0.7)
        assert RiskSignal.NETWORK_FOREIGN_COUNTRY in result.signals

    def test_tor_and_vpn_clamped(self, scorer, context_for, make_vector):
        result = scorer.score(context_for(make_vector(network={"is_tor": True, "is_vpn": True})))

        assert result.score == 1.0

    def test_ip_risk_out_of_range_ignored(self, scorer, context_for, make_vector):
        high = scorer.score(context_for(make_vector(network={"ip_risk_score": 0.9})))
        invalid = scorer.score(context_for(make_vector(network={"ip_risk_score": 1.5})))

        assert high.score == pytest.approx(0.6)
        assert invalid.score == 0.0


class TestDimensionEngine:
    """Tests for DimensionEngine orchestration."""

    def test_scores_every_dimension(self, context_for, extreme_vector):
        scores, results = DimensionEngine(default_scorers()).run(context_for(extreme_vector))

        assert set(results) == {"temporal", "behavioral", "geographical", "financial", "network"}
        assert scores.behavioral == 1.0
        assert scores.geographical == 1.0
        assert scores.financial == 1.0
        assert scores.network == 1.0
        assert scores.temporal == pytest.approx(0.6)

    def test_failing_scorer_is_neutral(self, context_for, make_vector):
        class BrokenScorer(BaseDimensionScorer):
            dimension = "network"

            def score(self, context):
                raise RuntimeError("lookup failed")

        scorers = [s for s in default_scorers() if s.dimension != "network"] + [BrokenScorer()]
        vector = make_vector(device={"is_emulator": True}, network={"is_tor": True})

        scores, results = DimensionEngine(scorers).run(context_for(vector))

        assert scores.network == 0.0
        assert scores.behavioral == pytest.approx(0.7)
        assert results["network"].signals == []

    def test_result_add_deduplicates_signals(self):
        result = DimensionResult()
        result.add(0.6, RiskSignal.GEO_LOCATION_JUMPS, "a")
        result.add(0.6, RiskSignal.GEO_LOCATION_JUMPS, "b")

        assert result.signals == [RiskSignal.GEO_LOCATION_JUMPS]
        assert result.reasons == ["a", "b"]
        assert result.clamped().score == 1.0
