"""
Cluster Analysis

Batch clustering over accumulated cluster-space vectors. Runs out of
band (never on the scoring path); the complete result replaces the
previously published clusters.

Cluster space (one component per label, all in [0,1]):
    [risk, location, behavioral, timing, device_sharing, weekend]

Algorithm (per cluster, k = min(5, n)):
1. Pick a center from the input with a seeded generator (no repeats)
2. Members are vectors within the cluster radius of the center
3. Members far from the center are reported as outliers
4. Characteristics come from thresholding member component means
"""

import logging
import math
import threading
from collections.abc import Sequence
from typing import Mapping, Optional

import numpy as np

from ..schemas import ClusterAnalysis, ClusterCharacteristics, ClusterOutlier

logger = logging.getLogger("riskengine.clustering")

CLUSTER_FEATURES: tuple[str, ...] = (
    "high_risk",
    "location_anomaly",
    "behavioral_anomaly",
    "timing_anomaly",
    "device_sharing",
    "weekend_activity",
)
RISK_COMPONENT = 0
TIMING_COMPONENT = 3
WEEKEND_COMPONENT = 5

COMMON_FEATURE_THRESHOLD = 0.6
MAX_OUTLIERS = 10
CONCENTRATION_RADIUS = 0.25


class ClusteringCancelled(Exception):
    """Raised when a clustering run is cancelled between clusters."""


def cluster_vector(normalized: Mapping[str, float]) -> list[float]:
    """Project a normalized feature map into cluster space."""
    risk = (
        normalized.get("location_pickup_risk", 0.0)
        + normalized.get("location_dropoff_risk", 0.0)
        + normalized.get("network_ip_risk", 0.0)
    ) / 3
    return [
        round(risk, 4),
        round(normalized.get("location_jumps", 0.0), 4),
        round(normalized.get("trip_route_deviation", 0.0), 4),
        round(normalized.get("trip_time_of_day", 0.0), 4),
        round(normalized.get("device_multiple_accounts", 0.0), 4),
        round(normalized.get("trip_is_weekend", 0.0), 4),
    ]


def feature_label(index: int) -> str:
    if index < len(CLUSTER_FEATURES):
        return CLUSTER_FEATURES[index]
    return f"feature_{index}"


def nearest_cluster(
    vector: Sequence[float],
    clusters: Sequence[ClusterAnalysis],
    radius: float,
) -> Optional[ClusterAnalysis]:
    """Closest cluster whose center lies within radius of the vector."""
    best: Optional[ClusterAnalysis] = None
    best_distance = radius
    point = np.asarray(vector, dtype=float)

    for cluster in clusters:
        if len(cluster.center) != len(point):
            continue
        distance = float(np.linalg.norm(point - np.asarray(cluster.center, dtype=float)))
        if distance < best_distance:
            best, best_distance = cluster, distance

    return best


def _temporal_patterns(members: np.ndarray) -> list[str]:
    """Timing labels from the hour and weekend components."""
    patterns: list[str] = []
    if members.shape[1] > TIMING_COMPONENT:
        hours = members[:, TIMING_COMPONENT] * 24
        late_night = (hours >= 22) | (hours < 5)
        peak = ((hours >= 7) & (hours < 10)) | ((hours >= 17) & (hours < 20))
        if late_night.mean() > 0.5:
            patterns.append("late_night")
        if peak.mean() > 0.5:
            patterns.append("peak_hours")
    if members.shape[1] > WEEKEND_COMPONENT and members[:, WEEKEND_COMPONENT].mean() > 0.5:
        patterns.append("weekend_heavy")
    return patterns


class ClusterEngine:
    """Seeded, cancellable batch clustering."""

    def __init__(
        self,
        k: int = 5,
        radius: float = 0.5,
        outlier_distance: float = 0.3,
        seed: Optional[int] = 42,
    ):
        """
        Initialize cluster engine.

        Args:
            k: Maximum number of clusters per run
            radius: Euclidean distance within which a vector joins a cluster
            outlier_distance: Member distance beyond which a vector is an outlier
            seed: Seed for center selection
        """
        if k < 1:
            raise ValueError("k must be at least 1")
        self.k = k
        self.radius = radius
        self.outlier_distance = outlier_distance
        self.seed = seed

    @staticmethod
    def _as_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
        widths = {len(vector) for vector in vectors}
        if len(widths) != 1:
            raise ValueError("All vectors must have the same number of components")

        points = np.asarray(vectors, dtype=float).reshape(len(vectors), widths.pop())
        # Non-finite components are treated as neutral
        return np.where(np.isfinite(points), points, 0.5)

    def run(
        self,
        vectors: Sequence[Sequence[float]],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[ClusterAnalysis]:
        """
        Cluster a batch of vectors.

        Args:
            vectors: Cluster-space vectors (equal length)
            cancel_event: Checked between clusters

        Returns:
            One ClusterAnalysis per center (empty for empty input)

        Raises:
            ValueError: Vectors of different lengths
            ClusteringCancelled: cancel_event was set during the run
        """
        if not vectors:
            return []

        points = self._as_matrix(vectors)
        n = len(points)
        k = min(self.k, n)

        rng = np.random.default_rng(self.seed)
        center_indices = rng.choice(n, size=k, replace=False)

        clusters: list[ClusterAnalysis] = []
        for i, center_index in enumerate(center_indices):
            if cancel_event is not None and cancel_event.is_set():
                raise ClusteringCancelled(f"Clustering cancelled after {i} of {k} clusters")

            clusters.append(self._analyze(f"cluster_{i + 1}", points, int(center_index)))

        logger.info("Clustered %d vectors into %d clusters", n, k)
        return clusters

    def _analyze(self, cluster_id: str, points: np.ndarray, center_index: int) -> ClusterAnalysis:
        center = points[center_index]
        distances = np.linalg.norm(points - center, axis=1)

        member_indices = np.flatnonzero(distances < self.radius)
        members = points[member_indices]
        member_distances = distances[member_indices]

        # Outliers: farthest members first, keyed by input position
        outlier_indices = [int(idx) for idx in member_indices if distances[idx] > self.outlier_distance]
        outlier_indices.sort(key=lambda idx: distances[idx], reverse=True)
        outliers = [
            ClusterOutlier(
                id=f"point_{idx}",
                distance=round(float(distances[idx]), 4),
                features=[round(float(v), 4) for v in points[idx]],
            )
            for idx in outlier_indices[:MAX_OUTLIERS]
        ]

        mean_distance = float(member_distances.mean())
        cohesion = max(0.0, 1.0 - mean_distance)

        width = members.shape[1]
        component_means = members.mean(axis=0) if width else np.zeros(0)
        characteristics = ClusterCharacteristics(
            avg_risk_score=round(float(component_means[RISK_COMPONENT]), 4) if width else 0.0,
            common_features=[
                feature_label(idx)
                for idx, value in enumerate(component_means)
                if value > COMMON_FEATURE_THRESHOLD
            ],
            geographic_concentration=(
                "concentrated"
                if bool(np.all(member_distances <= CONCENTRATION_RADIUS))
                else "distributed"
            ),
            temporal_patterns=_temporal_patterns(members),
        )

        return ClusterAnalysis(
            cluster_id=cluster_id,
            center=[round(float(v), 4) for v in center],
            size=len(member_indices),
            cohesion=round(min(cohesion, 1.0), 4) if math.isfinite(cohesion) else 0.0,
            outliers=outliers,
            characteristics=characteristics,
        )
