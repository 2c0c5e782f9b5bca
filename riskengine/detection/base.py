"""
Dimension Scoring

Orchestrates the five anomaly dimension scorers. Each scorer applies an
additive rule list to the raw feature vector and returns a clamped
[0,1] contribution together with the structured signals it fired.

Design goals:
- Scorers are pure: they only read the ScoringContext
- A scorer that raises never fails the whole score
- Every fired rule is explainable (signal + description)
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from ..features import ActivityHistory, FeatureStats, TripPoint, clamp
from ..schemas import ClusterAnalysis, DimensionScores, FeatureVector, RiskSignal
from ..scoring.uncertainty import NeutralUncertainty, UncertaintySource

logger = logging.getLogger("riskengine.detection")

# Published clusters below this average risk never modify scores
CLUSTER_RISK_FLOOR = 0.5
CLUSTER_BOOST = 0.2


def exceeds(value: float, threshold: float) -> bool:
    """value > threshold, False for non-finite values."""
    return math.isfinite(value) and value > threshold


def below(value: float, threshold: float) -> bool:
    """value < threshold, False for non-finite values."""
    return math.isfinite(value) and value < threshold


@dataclass
class DimensionResult:
    """
    Result from a dimension scorer.

    Contains the score and the signals/reasons that produced it.
    """
    score: float = 0.0  # 0.0 to 1.0
    signals: list[RiskSignal] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)

    def add(self, weight: float, signal: RiskSignal, description: str) -> None:
        """Apply a fired rule."""
        self.score += weight
        if signal not in self.signals:
            self.signals.append(signal)
        self.reasons.append(description)

    def clamped(self) -> "DimensionResult":
        self.score = clamp(self.score)
        return self


@dataclass(frozen=True)
class ScoringContext:
    """
    Read-only inputs for one scoring call.

    history and cluster are snapshots taken before scoring starts, so
    concurrent writers never change what a scorer sees.
    """
    features: FeatureVector
    normalized: Mapping[str, float]
    now: datetime
    history: tuple[TripPoint, ...] = ()
    cluster: Optional[ClusterAnalysis] = None
    baselines: Mapping[str, FeatureStats] = field(default_factory=dict)
    uncertainty: UncertaintySource = field(default_factory=NeutralUncertainty)

    def cluster_flags(self, *labels: str) -> bool:
        """True when the matched cluster is risky and shows any of the labels."""
        if self.cluster is None:
            return False
        characteristics = self.cluster.characteristics
        if characteristics.avg_risk_score < CLUSTER_RISK_FLOOR:
            return False
        return any(label in characteristics.common_features for label in labels)


class BaseDimensionScorer(ABC):
    """
    Base class for anomaly dimension scorers.

    - TemporalScorer: unusual hours, holidays, trip frequency
    - BehavioralScorer: route/speed deviations, automation indicators
    - GeographicalScorer: location jumps, impossible speeds, risky areas
    - FinancialScorer: payment velocity, chargebacks, fare mismatch
    - NetworkScorer: risky IPs, VPN/Tor, foreign country
    """

    dimension: str = ""

    @abstractmethod
    def score(self, context: ScoringContext) -> DimensionResult:
        """
        Run the dimension rules.

        Args:
            context: Per-call scoring inputs

        Returns:
            DimensionResult with clamped score and fired signals
        """
        pass


class DimensionEngine:
    """Runs every dimension scorer and collects their results."""

    def __init__(self, scorers: list[BaseDimensionScorer]):
        """
        Initialize dimension engine.

        Args:
            scorers: One scorer per dimension
        """
        self.scorers = scorers

    def run(self, context: ScoringContext) -> tuple[DimensionScores, dict[str, DimensionResult]]:
        """
        Score all dimensions.

        Returns:
            Tuple of (dimension_scores, results_by_dimension)
        """
        results: dict[str, DimensionResult] = {}

        for scorer in self.scorers:
            try:
                result = scorer.score(context).clamped()
            except Exception:
                # Scorer failed - log and continue with neutral result
                logger.exception("Dimension scorer %s failed", scorer.__class__.__name__)
                result = DimensionResult(score=0.0)
            results[scorer.dimension] = result

        scores = DimensionScores(**{name: r.score for name, r in results.items()})
        return scores, results


def history_snapshot(
    history: Optional[ActivityHistory],
    subject_id: str,
    now: datetime,
) -> tuple[TripPoint, ...]:
    """Snapshot a subject's trips, or nothing when history is disabled."""
    if history is None:
        return ()
    return history.snapshot(subject_id, now=now)
