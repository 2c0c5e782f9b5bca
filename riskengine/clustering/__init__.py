# Clustering Module
from .engine import (
    CLUSTER_FEATURES,
    ClusterEngine,
    ClusteringCancelled,
    cluster_vector,
    nearest_cluster,
)
from .registry import REFERENCE_CLUSTERS, ClusterRegistry, VectorBuffer
from .job import ClusterJob

__all__ = [
    "CLUSTER_FEATURES",
    "ClusterEngine",
    "ClusteringCancelled",
    "cluster_vector",
    "nearest_cluster",
    "REFERENCE_CLUSTERS",
    "ClusterRegistry",
    "VectorBuffer",
    "ClusterJob",
]
