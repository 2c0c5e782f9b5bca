"""
Anomaly Score Aggregation

Combines the five dimension scores into the overall anomaly score:

    overall = 0.15*temporal + 0.30*behavioral + 0.25*geographical
              + 0.20*financial + 0.10*network

Confidence reflects how consistent the dimensions are with each other:
agreeing dimensions give high confidence, one spiking dimension among
quiet ones gives low confidence.
"""

import statistics
from types import MappingProxyType
from typing import Mapping, Optional

from ..features import clamp
from ..schemas import AnomalyScore, DimensionScores, RiskSignal

DIMENSION_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "temporal": 0.15,
    "behavioral": 0.30,
    "geographical": 0.25,
    "financial": 0.20,
    "network": 0.10,
})

MAX_CONFIDENCE = 0.98


class ScoreAggregator:
    """Weighted combination of dimension scores."""

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        self.weights = MappingProxyType(dict(weights or DIMENSION_WEIGHTS))

    def overall(self, dimensions: DimensionScores) -> float:
        scores = dimensions.as_dict()
        total = sum(scores[name] * weight for name, weight in self.weights.items())
        return round(clamp(total), 4)

    @staticmethod
    def confidence(dimensions: DimensionScores) -> float:
        """
        Confidence from inter-dimension consistency.

        consistency = 1 - min(std, 0.5) / 0.5 over the population std of
        the five scores; scaled by 0.9/0.7/0.5 for mean >0.7/>0.4/else.
        """
        scores = list(dimensions.as_dict().values())
        mean = statistics.fmean(scores)
        std = statistics.pstdev(scores)

        consistency = 1 - min(std, 0.5) / 0.5

        if mean > 0.7:
            base_confidence = 0.9
        elif mean > 0.4:
            base_confidence = 0.7
        else:
            base_confidence = 0.5

        return round(clamp(min(base_confidence * consistency, MAX_CONFIDENCE)), 4)

    def aggregate(
        self,
        dimensions: DimensionScores,
        explanation: list[str],
        signals: Optional[list[RiskSignal]] = None,
    ) -> AnomalyScore:
        """Build the AnomalyScore for a set of dimension scores."""
        return AnomalyScore(
            overall=self.overall(dimensions),
            dimensions=dimensions,
            confidence=self.confidence(dimensions),
            explanation=explanation,
            signals=signals or [],
        )
