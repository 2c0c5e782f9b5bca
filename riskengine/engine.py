"""
Risk Engine

Explicitly constructed service object that wires the scoring pipeline
to the shared state it reads and writes:

    FeatureVector -> FeatureNormalizer -> DimensionEngine -> ScoreAggregator
                                       -> EnsembleFraudScorer
                  -> ExplanationEngine (both outputs) -> RiskAssessment

Shared state (each component owns its own lock):
- AlertStore: alerts for anomalies above the alert threshold
- PatternMatcher: archetype statistics from prediction batches
- ActivityHistory: per-subject trips read by the temporal scorer
- VectorBuffer: cluster-space vectors accumulated for clustering
- ClusterRegistry: published clusters, replaced atomically

Build one engine at process start with build_engine() and pass it by
reference; there is no module-level instance.
"""

import logging
import threading
import time
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta, UTC
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, Union

from pydantic import ValidationError

from .alerts import AlertStore, build_alert
from .clustering import (
    ClusterEngine,
    ClusteringCancelled,
    ClusterRegistry,
    VectorBuffer,
    cluster_vector,
    nearest_cluster,
)
from .config import Settings, get_settings
from .detection import DimensionEngine, ScoringContext, default_scorers, history_snapshot
from .errors import InvalidFeatureVectorError
from .features import ActivityHistory, FeatureNormalizer, clamp
from .metrics import metrics
from .patterns import PatternMatcher, load_catalog
from .schemas import (
    AlertStats,
    AnomalyAlert,
    AnomalyScore,
    ClusterAnalysis,
    FeatureVector,
    FraudPattern,
    FraudPrediction,
    RiskAssessment,
    RiskSignal,
)
from .scoring import (
    EnsembleFraudScorer,
    ExplanationEngine,
    GeneralModel,
    NeutralUncertainty,
    ScoreAggregator,
    SeededUncertainty,
    UncertaintySource,
    score_to_risk_level,
)

logger = logging.getLogger("riskengine.engine")

# Weighted max across dimensions for triage
COMBINED_DIMENSION_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "temporal": 0.5,
    "behavioral": 0.9,
    "geographical": 0.7,  # Geo can have false positives
    "financial": 0.8,
    "network": 0.6,
})


def _merge_signals(*groups: Iterable[RiskSignal]) -> list[RiskSignal]:
    """Union of signal groups, first occurrence order."""
    merged: list[RiskSignal] = []
    for group in groups:
        for signal in group:
            if signal not in merged:
                merged.append(signal)
    return merged


class RiskEngine:
    """
    Main risk engine.

    Scoring is safe to call from many threads at once: scorers only
    read immutable tables and per-call snapshots.
    """

    def __init__(
        self,
        normalizer: FeatureNormalizer,
        dimensions: DimensionEngine,
        aggregator: ScoreAggregator,
        ensemble: EnsembleFraudScorer,
        explainer: ExplanationEngine,
        patterns: PatternMatcher,
        cluster_engine: ClusterEngine,
        registry: ClusterRegistry,
        buffer: VectorBuffer,
        alerts: AlertStore,
        history: ActivityHistory,
        uncertainty: Optional[UncertaintySource] = None,
        alert_threshold: float = 0.7,
        review_threshold: float = 0.6,
        cluster_radius: float = 0.5,
        model_version: str = "ensemble_v2.1",
    ):
        self.normalizer = normalizer
        self.dimensions = dimensions
        self.aggregator = aggregator
        self.ensemble = ensemble
        self.explainer = explainer
        self.patterns = patterns
        self.cluster_engine = cluster_engine
        self.registry = registry
        self.buffer = buffer
        self.alerts = alerts
        self.history = history
        self.uncertainty = uncertainty or NeutralUncertainty()
        self.alert_threshold = alert_threshold
        self.review_threshold = review_threshold
        self.cluster_radius = cluster_radius
        self.model_version = model_version

    # =========================================================================
    # Scoring
    # =========================================================================

    @staticmethod
    def _coerce(features: Union[FeatureVector, Mapping[str, Any]]) -> FeatureVector:
        if isinstance(features, FeatureVector):
            return features
        try:
            return FeatureVector.model_validate(features)
        except ValidationError as e:
            raise InvalidFeatureVectorError.from_validation_error(e) from e

    def score(
        self,
        features: Union[FeatureVector, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        """
        Score one feature vector.

        Args:
            features: FeatureVector (or a mapping validated into one)
            now: Scoring time (defaults to current UTC time)

        Returns:
            RiskAssessment with anomaly score, fraud prediction and triage

        Raises:
            InvalidFeatureVectorError: Missing sub-records or wrong types
        """
        vector = self._coerce(features)
        now = now or datetime.now(UTC)
        subject_id = vector.subject_id

        normalized = self.normalizer.normalize_vector(vector)
        projected = cluster_vector(normalized)
        cluster = nearest_cluster(projected, self.registry.snapshot(), self.cluster_radius)

        context = ScoringContext(
            features=vector,
            normalized=MappingProxyType(normalized),
            now=now,
            history=history_snapshot(self.history, subject_id, now) if vector.user.user_id else (),
            cluster=cluster,
            baselines=self.normalizer.stats,
            uncertainty=self.uncertainty,
        )

        # Anomaly score
        dimension_scores, results = self.dimensions.run(context)
        dimension_signals = _merge_signals(*(result.signals for result in results.values()))
        anomaly = self.aggregator.aggregate(
            dimension_scores,
            explanation=self.explainer.explain_anomaly(dimension_scores),
            signals=dimension_signals,
        )

        # Fraud prediction
        prediction = self._predict(normalized, dimension_signals, vector.user.user_id, now)

        combined = self.combined_score(anomaly, prediction)

        alert = None
        if anomaly.overall > self.alert_threshold:
            alert = self._raise_alert(anomaly, subject_id)

        self.buffer.append(projected)

        return RiskAssessment(
            anomaly=anomaly,
            prediction=prediction,
            combined_score=combined,
            risk_level=score_to_risk_level(combined),
            flagged_for_review=combined >= self.review_threshold,
            alert=alert,
            cluster_id=cluster.cluster_id if cluster else None,
        )

    def _predict(
        self,
        normalized: Mapping[str, float],
        dimension_signals: list[RiskSignal],
        subject_id: Optional[str],
        now: datetime,
    ) -> FraudPrediction:
        result = self.ensemble.score(normalized)
        reasons, reason_signals = self.explainer.fraud_reasons(normalized, result.sub_scores)

        return FraudPrediction(
            fraud_score=result.fraud_score,
            risk_level=result.risk_level,
            confidence=result.confidence,
            reasons=reasons,
            model_version=self.model_version,
            timestamp=now,
            feature_importance=self.explainer.feature_importance(normalized),
            sub_scores=result.sub_scores,
            signals=_merge_signals(reason_signals, dimension_signals),
            subject_id=subject_id,
        )

    @staticmethod
    def combined_score(anomaly: AnomalyScore, prediction: FraudPrediction) -> float:
        """
        Strongest risk signal across both scorers.

        Uses a weighted max so a single saturated dimension escalates
        triage even when the blended scores stay moderate.
        """
        dimensions = anomaly.dimensions.as_dict()
        weighted_max = max(
            dimensions[name] * weight
            for name, weight in COMBINED_DIMENSION_WEIGHTS.items()
        )
        return round(clamp(max(prediction.fraud_score, anomaly.overall, weighted_max)), 4)

    def _raise_alert(self, anomaly: AnomalyScore, subject_id: str) -> AnomalyAlert:
        alert = build_alert(anomaly, subject_id)
        evicted = self.alerts.append(alert)

        metrics.alerts_total.labels(type=alert.type.value, severity=alert.severity.value).inc()
        metrics.alert_store_size.set(len(self.alerts))

        logger.info(
            "Alert %s raised for %s (severity=%s, overall=%.3f)",
            alert.id, subject_id, alert.severity.value, anomaly.overall,
        )
        if evicted is not None:
            logger.debug("Alert %s evicted", evicted.id)

        return alert.model_copy()

    # =========================================================================
    # Patterns
    # =========================================================================

    def detect_patterns(
        self,
        predictions: Iterable[FraudPrediction],
        now: Optional[datetime] = None,
    ) -> list[FraudPattern]:
        """Record predictions and return the active fraud archetypes."""
        matched = self.patterns.observe(predictions)
        for pattern_id, count in matched.items():
            metrics.pattern_matches_total.labels(pattern=pattern_id).inc(count)
        return self.patterns.active(now=now)

    def list_patterns(self, active_only: bool = False) -> list[FraudPattern]:
        if active_only:
            return self.patterns.active()
        return self.patterns.all_patterns()

    # =========================================================================
    # Clustering
    # =========================================================================

    def run_clustering(
        self,
        vectors: Optional[Sequence[Sequence[float]]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[ClusterAnalysis]:
        """
        Cluster vectors and publish the result.

        Args:
            vectors: Cluster-space vectors (None = accumulated buffer)
            cancel_event: Cooperative cancellation between clusters

        Returns:
            New clusters. Empty input publishes nothing and returns [].

        Raises:
            ValueError: Vectors of different lengths
            ClusteringCancelled: Run was cancelled; nothing is published
        """
        data = self.buffer.snapshot() if vectors is None else [list(v) for v in vectors]

        start = time.perf_counter()
        try:
            clusters = self.cluster_engine.run(data, cancel_event=cancel_event)
        except ClusteringCancelled:
            metrics.clustering_runs_total.labels(outcome="cancelled").inc()
            raise
        except ValueError:
            metrics.clustering_runs_total.labels(outcome="invalid").inc()
            raise
        metrics.clustering_duration.observe((time.perf_counter() - start) * 1000)

        if not clusters:
            metrics.clustering_runs_total.labels(outcome="empty").inc()
            return []

        # Cancellation may arrive after the last check inside the cluster engine
        if cancel_event is not None and cancel_event.is_set():
            metrics.clustering_runs_total.labels(outcome="cancelled").inc()
            raise ClusteringCancelled("clustering cancelled before publish")

        self.registry.publish(clusters)
        metrics.clustering_runs_total.labels(outcome="published").inc()
        return clusters

    def active_clusters(self) -> list[ClusterAnalysis]:
        return list(self.registry.snapshot())

    # =========================================================================
    # Alerts
    # =========================================================================

    def recent_alerts(self, limit: int = 50) -> list[AnomalyAlert]:
        return self.alerts.recent(limit)

    def resolve_alert(self, alert_id: str, false_positive: bool = False) -> bool:
        resolved = self.alerts.resolve(alert_id, false_positive)
        if not resolved:
            logger.info("Resolve requested for unknown alert %s", alert_id)
        return resolved

    def alert_stats(self) -> AlertStats:
        return self.alerts.stats()

    # =========================================================================
    # Activity History
    # =========================================================================

    def record_activity(
        self,
        subject_id: str,
        timestamp: datetime,
        is_weekend: Optional[bool] = None,
    ) -> None:
        """Record a completed trip for temporal scoring."""
        self.history.record(subject_id, timestamp, is_weekend=is_weekend)


def build_engine(
    settings: Optional[Settings] = None,
    general_model: Optional[GeneralModel] = None,
) -> RiskEngine:
    """
    Construct a RiskEngine from settings.

    Args:
        settings: Engine configuration (defaults to get_settings())
        general_model: Optional trained model for the general ensemble

    Returns:
        Fully wired RiskEngine
    """
    settings = settings or get_settings()

    if settings.uncertainty_seed is not None:
        uncertainty: UncertaintySource = SeededUncertainty(settings.uncertainty_seed)
    else:
        uncertainty = NeutralUncertainty()

    patterns_path = Path(settings.patterns_path) if settings.patterns_path else None

    engine = RiskEngine(
        normalizer=FeatureNormalizer(),
        dimensions=DimensionEngine(
            default_scorers(
                home_country=settings.home_country,
                expected_price_per_km=settings.expected_price_per_km,
            )
        ),
        aggregator=ScoreAggregator(),
        ensemble=EnsembleFraudScorer(uncertainty=uncertainty, general_model=general_model),
        explainer=ExplanationEngine(),
        patterns=PatternMatcher(
            load_catalog(patterns_path),
            match_threshold=settings.pattern_match_threshold,
            active_window=timedelta(hours=settings.pattern_active_window_hours),
        ),
        cluster_engine=ClusterEngine(
            k=settings.cluster_k,
            radius=settings.cluster_radius,
            outlier_distance=settings.cluster_outlier_distance,
            seed=settings.cluster_seed,
        ),
        registry=ClusterRegistry(),
        buffer=VectorBuffer(maxlen=settings.vector_buffer_size),
        alerts=AlertStore(capacity=settings.alert_capacity),
        history=ActivityHistory(
            max_subjects=settings.history_max_subjects,
            max_points=settings.history_max_points,
            window=timedelta(days=settings.history_window_days),
        ),
        uncertainty=uncertainty,
        alert_threshold=settings.alert_threshold,
        review_threshold=settings.review_threshold,
        cluster_radius=settings.cluster_radius,
        model_version=settings.model_version,
    )

    logger.info(
        "Risk engine built (patterns=%d, alert_capacity=%d, uncertainty=%s)",
        len(engine.patterns.all_patterns()),
        settings.alert_capacity,
        type(uncertainty).__name__,
    )
    return engine
