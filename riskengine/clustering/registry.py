"""
Published Clusters and Vector Buffer

ClusterRegistry holds the most recent clustering result as an immutable
tuple. publish() swaps the reference in one assignment, so readers on
the scoring path take snapshot() without locking and never observe a
partially updated result.

VectorBuffer accumulates recent cluster-space vectors for the next run.
"""

import threading
from collections import deque
from collections.abc import Iterable, Sequence
from datetime import datetime, UTC
from typing import Deque, Optional

from ..schemas import ClusterAnalysis, ClusterCharacteristics

# Reference clusters published until the first clustering run completes
REFERENCE_CLUSTERS: tuple[ClusterAnalysis, ...] = (
    ClusterAnalysis(
        cluster_id="normal_users",
        center=[0.15, 0.0, 0.1, 0.55, 0.27, 0.0],
        size=15000,
        cohesion=0.85,
        characteristics=ClusterCharacteristics(
            avg_risk_score=0.12,
            common_features=["consistent_routes", "regular_timing", "low_cancelation"],
            geographic_concentration="distributed",
            temporal_patterns=["peak_hour_usage", "weekend_moderate"],
        ),
    ),
    ClusterAnalysis(
        cluster_id="gps_spoofers",
        center=[0.85, 0.8, 0.7, 0.2, 0.3, 0.0],
        size=245,
        cohesion=0.92,
        characteristics=ClusterCharacteristics(
            avg_risk_score=0.87,
            common_features=["location_anomaly", "location_jumps", "impossible_speeds", "poor_gps_accuracy"],
            geographic_concentration="manila_cbd",
            temporal_patterns=["bonus_period_alignment", "late_night_activity"],
        ),
    ),
    ClusterAnalysis(
        cluster_id="multi_account_operators",
        center=[0.6, 0.2, 0.3, 0.5, 0.9, 0.5],
        size=156,
        cohesion=0.89,
        characteristics=ClusterCharacteristics(
            avg_risk_score=0.91,
            common_features=["device_sharing", "identical_patterns", "rapid_switching"],
            geographic_concentration="cebu_it_park",
            temporal_patterns=["24_7_activity", "synchronized_actions"],
        ),
    ),
)


class ClusterRegistry:
    """Atomically replaced set of published clusters."""

    def __init__(self, initial: Iterable[ClusterAnalysis] = REFERENCE_CLUSTERS):
        self._clusters: tuple[ClusterAnalysis, ...] = tuple(initial)
        self._version = 0
        self._published_at: Optional[datetime] = None

    def snapshot(self) -> tuple[ClusterAnalysis, ...]:
        return self._clusters

    def publish(self, clusters: Iterable[ClusterAnalysis]) -> None:
        """Replace the published clusters wholesale."""
        self._clusters = tuple(clusters)
        self._version += 1
        self._published_at = datetime.now(UTC)

    @property
    def version(self) -> int:
        """Number of completed publications."""
        return self._version

    @property
    def published_at(self) -> Optional[datetime]:
        return self._published_at


class VectorBuffer:
    """Bounded FIFO of recent cluster-space vectors."""

    def __init__(self, maxlen: int = 5000):
        self._vectors: Deque[tuple[float, ...]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, vector: Sequence[float]) -> None:
        with self._lock:
            self._vectors.append(tuple(vector))

    def snapshot(self) -> list[list[float]]:
        with self._lock:
            return [list(vector) for vector in self._vectors]

    def clear(self) -> None:
        with self._lock:
            self._vectors.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._vectors)
