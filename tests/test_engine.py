"""
Risk Engine Tests

End-to-end scoring scenarios and engine-level state handling.
"""

import math
import threading
from datetime import timedelta

import pytest

from riskengine.clustering import ClusteringCancelled
from riskengine.config import Settings
from riskengine.engine import RiskEngine, build_engine
from riskengine.errors import InvalidFeatureVectorError
from riskengine.schemas import (
    AnomalyScore,
    DimensionScores,
    FraudPrediction,
    RiskLevel,
    RiskSignal,
)


class TestScoringScenarios:
    """Reference trip scenarios."""

    def test_gps_spoofing_trip(self, engine, gps_spoofing_vector, now):
        assessment = engine.score(gps_spoofing_vector, now=now)

        assert assessment.anomaly.dimensions.geographical >= 0.8
        assert assessment.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)
        assert assessment.flagged_for_review
        assert RiskSignal.GEO_LOCATION_JUMPS in assessment.anomaly.signals

    def test_device_farm_trip(self, engine, device_farm_vector, now):
        assessment = engine.score(device_farm_vector, now=now)
        prediction = assessment.prediction

        assert prediction.sub_scores.multi_account >= 0.5
        assert any("emulator" in reason for reason in prediction.reasons)
        assert any("multiple accounts" in reason for reason in prediction.reasons)
        assert RiskSignal.DEVICE_EMULATOR in prediction.signals

    def test_nominal_trip(self, engine, nominal_vector, now):
        assessment = engine.score(nominal_vector, now=now)

        assert assessment.anomaly.overall < 0.3
        assert assessment.prediction.fraud_score < 0.3
        assert assessment.risk_level == RiskLevel.LOW
        assert assessment.alert is None
        assert not assessment.flagged_for_review
        assert assessment.cluster_id == "normal_users"
        assert len(engine.alerts) == 0

    def test_extreme_trip_raises_alert(self, engine, extreme_vector, now):
        assessment = engine.score(extreme_vector, now=now)

        assert assessment.anomaly.overall > 0.7
        assert assessment.alert is not None
        assert assessment.alert.severity == RiskLevel.CRITICAL
        assert assessment.alert.subject_id == "user_extreme"
        assert assessment.risk_level == RiskLevel.CRITICAL
        assert [a.id for a in engine.recent_alerts(10)] == [assessment.alert.id]

    def test_scores_are_bounded(self, engine, extreme_vector, now):
        assessment = engine.score(extreme_vector, now=now)

        for value in assessment.anomaly.dimensions.as_dict().values():
            assert 0.0 <= value <= 1.0
        assert 0.0 <= assessment.combined_score <= 1.0
        assert len(assessment.prediction.reasons) <= 5
        assert assessment.anomaly.explanation

    def test_deterministic_scoring(self, engine, device_farm_vector, now):
        first = engine.score(device_farm_vector, now=now)
        second = engine.score(device_farm_vector, now=now)

        assert first.anomaly == second.anomaly
        assert first.prediction.fraud_score == second.prediction.fraud_score
        assert first.combined_score == second.combined_score


class TestEngineInputs:
    """Tests for input handling."""

    def test_accepts_mapping(self, engine, nominal_payload, now):
        assessment = engine.score(nominal_payload, now=now)

        assert assessment.risk_level == RiskLevel.LOW

    def test_missing_sub_record(self, engine, nominal_payload):
        del nominal_payload["device"]

        with pytest.raises(InvalidFeatureVectorError) as excinfo:
            engine.score(nominal_payload)

        assert any(error.startswith("device") for error in excinfo.value.errors)

    def test_missing_measurement(self, engine, nominal_payload):
        for section, field in [
            ("location", "location_jumps"),
            ("location", "impossible_speeds"),
            ("payment", "card_failures"),
            ("payment", "payment_velocity"),
            ("device", "multiple_accounts"),
            ("network", "network_changes"),
        ]:
            del nominal_payload[section][field]

        with pytest.raises(InvalidFeatureVectorError) as excinfo:
            engine.score(nominal_payload)

        assert "location.location_jumps: Field required" in excinfo.value.errors
        assert len(excinfo.value.errors) == 6

    def test_infinite_distance_scores_nominal(self, engine, make_vector, now):
        assessment = engine.score(make_vector(trip={"distance": math.inf}), now=now)

        assert assessment.anomaly.dimensions.financial == 0.0
        assert RiskSignal.PAYMENT_FARE_MISMATCH not in assessment.anomaly.signals
        assert assessment.risk_level == RiskLevel.LOW

    def test_unknown_subject_has_no_history(self, engine, make_vector, now):
        for day in range(1, 21):
            engine.record_activity("unknown", now.replace(hour=14) - timedelta(days=day))

        vector = make_vector(user={"user_id": None}, trip={"time_of_day": 3})
        assessment = engine.score(vector, now=now)

        assert assessment.anomaly.dimensions.temporal == 0.0


class TestEngineState:
    """Tests for shared engine state."""

    def test_activity_history_feeds_temporal_score(self, engine, make_vector, now):
        for day in range(1, 21):
            engine.record_activity("user_nominal", now.replace(hour=14) - timedelta(days=day))

        unusual = engine.score(make_vector(trip={"time_of_day": 3}), now=now)
        usual = engine.score(make_vector(trip={"time_of_day": 14}), now=now)

        assert unusual.anomaly.dimensions.temporal == pytest.approx(0.6)
        assert RiskSignal.TEMPORAL_UNUSUAL_HOUR in unusual.anomaly.signals
        assert usual.anomaly.dimensions.temporal == 0.0

    def test_scoring_fills_vector_buffer(self, engine, nominal_vector, now):
        engine.score(nominal_vector, now=now)
        engine.score(nominal_vector, now=now)

        assert len(engine.buffer) == 2

    def test_clustering_buffer_publishes(self, engine, nominal_vector, extreme_vector, now):
        engine.score(nominal_vector, now=now)
        engine.score(extreme_vector, now=now)

        clusters = engine.run_clustering()

        assert len(clusters) == 2
        assert engine.active_clusters() == clusters
        assert engine.registry.version == 1

    def test_empty_clustering_keeps_previous(self, engine):
        before = engine.active_clusters()

        assert engine.run_clustering([]) == []
        assert engine.active_clusters() == before
        assert engine.registry.version == 0

    def test_cancelled_clustering_keeps_previous(self, engine):
        before = engine.active_clusters()
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(ClusteringCancelled):
            engine.run_clustering([[0.1] * 6, [0.9] * 6], cancel_event=cancel)

        assert engine.active_clusters() == before

    def test_cancel_after_clustering_skips_publish(self, engine, monkeypatch):
        before = engine.active_clusters()
        cancel = threading.Event()
        run = engine.cluster_engine.run

        def run_then_cancel(data, cancel_event=None):
            clusters = run(data, cancel_event=cancel_event)
            cancel.set()
            return clusters

        monkeypatch.setattr(engine.cluster_engine, "run", run_then_cancel)

        with pytest.raises(ClusteringCancelled):
            engine.run_clustering([[0.1] * 6, [0.9] * 6], cancel_event=cancel)

        assert engine.active_clusters() == before
        assert engine.registry.version == 0

    def test_invalid_clustering_input(self, engine):
        with pytest.raises(ValueError):
            engine.run_clustering([[0.1] * 6, [0.1] * 3])

    def test_published_cluster_boosts_scores(self, engine, make_vector, now):
        engine.run_clustering([[0.9, 0.9, 0.1, 0.1, 0.1, 0.0]] * 3)
        vector = make_vector(
            location={"pickup_risk_score": 0.9, "dropoff_risk_score": 0.9, "location_jumps": 9},
            trip={"time_of_day": 2, "route_deviation": 0.1},
            network={"ip_risk_score": 0.9},
            device={"multiple_accounts": 0},
        )

        assessment = engine.score(vector, now=now)

        assert assessment.cluster_id == "cluster_1"
        assert RiskSignal.GEO_CLUSTER_MEMBERSHIP in assessment.anomaly.signals

    def test_detect_patterns(self, engine, now):
        prediction = FraudPrediction(
            fraud_score=0.9,
            risk_level=RiskLevel.CRITICAL,
            signals=[RiskSignal.DEVICE_MULTIPLE_ACCOUNTS],
            subject_id="user_1",
            timestamp=now,
        )

        active = engine.detect_patterns([prediction], now=now)

        assert [p.id for p in active] == ["device_farm_operation"]
        assert len(engine.list_patterns()) == 3

    def test_resolve_alert(self, engine, extreme_vector, now):
        alert = engine.score(extreme_vector, now=now).alert

        assert engine.resolve_alert(alert.id, false_positive=True)
        assert not engine.resolve_alert("anomaly_missing")
        assert engine.alert_stats().false_positive_rate == 1.0

    def test_returned_alert_is_a_copy(self, engine, extreme_vector, now):
        alert = engine.score(extreme_vector, now=now).alert
        alert.resolved = True

        assert not engine.recent_alerts(1)[0].resolved

    def test_alert_capacity_from_settings(self, extreme_vector, now):
        engine = build_engine(Settings(_env_file=None, alert_capacity=2))
        for _ in range(3):
            engine.score(extreme_vector, now=now)

        assert len(engine.recent_alerts(10)) == 2


class TestCombinedScore:
    """Tests for the triage combination."""

    def test_weighted_dimension_max(self):
        anomaly = AnomalyScore(overall=0.25, dimensions=DimensionScores(geographical=1.0))
        prediction = FraudPrediction(fraud_score=0.2, risk_level=RiskLevel.LOW)

        assert RiskEngine.combined_score(anomaly, prediction) == pytest.approx(0.7)

    def test_fraud_score_dominates(self):
        anomaly = AnomalyScore(overall=0.1, dimensions=DimensionScores(network=0.2))
        prediction = FraudPrediction(fraud_score=0.85, risk_level=RiskLevel.CRITICAL)

        assert RiskEngine.combined_score(anomaly, prediction) == pytest.approx(0.85)
