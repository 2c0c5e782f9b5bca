# Feature Module
from .normalizer import (
    DEFAULT_FEATURE_STATS,
    FEATURE_COLUMNS,
    NEUTRAL,
    FeatureNormalizer,
    FeatureStats,
    clamp,
    sigmoid,
)
from .history import ActivityHistory, TripPoint

__all__ = [
    "DEFAULT_FEATURE_STATS",
    "FEATURE_COLUMNS",
    "NEUTRAL",
    "FeatureNormalizer",
    "FeatureStats",
    "clamp",
    "sigmoid",
    "ActivityHistory",
    "TripPoint",
]
