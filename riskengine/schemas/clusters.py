"""
Cluster Schemas

A clustering run produces a complete list of ClusterAnalysis values
that replaces the previous result wholesale.
"""

from pydantic import BaseModel, ConfigDict, Field


class ClusterOutlier(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    distance: float = Field(..., ge=0.0)
    features: list[float] = Field(default_factory=list)


class ClusterCharacteristics(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg_risk_score: float = 0.0
    common_features: list[str] = Field(default_factory=list)
    geographic_concentration: str = "distributed"
    temporal_patterns: list[str] = Field(default_factory=list)


class ClusterAnalysis(BaseModel):
    """One cluster from a clustering run."""
    model_config = ConfigDict(frozen=True)

    cluster_id: str
    center: list[float]
    size: int = Field(..., ge=0)
    cohesion: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="1 - mean distance to center, floored at 0",
    )
    outliers: list[ClusterOutlier] = Field(default_factory=list, max_length=10)
    characteristics: ClusterCharacteristics = Field(default_factory=ClusterCharacteristics)


class ClusteringRequest(BaseModel):
    """Body of the clustering endpoint. Omit vectors to cluster the accumulated buffer."""
    vectors: list[list[float]] | None = None
