# Scoring Module
from .uncertainty import GeneralModel, NeutralUncertainty, SeededUncertainty, UncertaintySource
from .aggregator import DIMENSION_WEIGHTS, ScoreAggregator
from .ensemble import EnsembleFraudScorer, EnsembleResult, score_to_risk_level
from .explanations import ExplanationEngine

__all__ = [
    "GeneralModel",
    "NeutralUncertainty",
    "SeededUncertainty",
    "UncertaintySource",
    "DIMENSION_WEIGHTS",
    "ScoreAggregator",
    "EnsembleFraudScorer",
    "EnsembleResult",
    "score_to_risk_level",
    "ExplanationEngine",
]
