# Dimension Scorers
from .base import (
    BaseDimensionScorer,
    DimensionEngine,
    DimensionResult,
    ScoringContext,
    history_snapshot,
)
from .temporal import TemporalScorer
from .behavioral import BehavioralScorer
from .geographical import GeographicalScorer
from .financial import FinancialScorer
from .network import NetworkScorer


def default_scorers(
    home_country: str = "PH",
    expected_price_per_km: float = 16.0,
) -> list[BaseDimensionScorer]:
    """One scorer per dimension, in aggregation order."""
    return [
        TemporalScorer(),
        BehavioralScorer(),
        GeographicalScorer(),
        FinancialScorer(expected_price_per_km=expected_price_per_km),
        NetworkScorer(home_country=home_country),
    ]


__all__ = [
    "BaseDimensionScorer",
    "DimensionEngine",
    "DimensionResult",
    "ScoringContext",
    "history_snapshot",
    "TemporalScorer",
    "BehavioralScorer",
    "GeographicalScorer",
    "FinancialScorer",
    "NetworkScorer",
    "default_scorers",
]
