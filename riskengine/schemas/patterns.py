"""
Fraud Pattern Schemas

Archetypes are seeded from a fixed catalog at startup. Only the
PatternMatcher mutates them (occurrences, first/last seen, affected
subjects); they are never deleted.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .scores import RiskLevel
from .signals import RiskSignal


class RiskFactor(BaseModel):
    """Weighted factor describing an archetype."""
    factor: str
    weight: float = Field(..., ge=0.0, le=1.0)
    description: str = ""


class PatternCharacteristics(BaseModel):
    """Analyst-facing description of how an archetype shows up."""
    behavioral: list[str] = Field(default_factory=list)
    temporal: list[str] = Field(default_factory=list)
    geographical: list[str] = Field(default_factory=list)
    financial: list[str] = Field(default_factory=list)


class FraudPattern(BaseModel):
    """A named fraud archetype and its running statistics."""
    id: str = Field(
        ...,
        description="Stable archetype identifier",
    )
    name: str = Field(
        ...,
        description="Display name",
    )
    description: str = Field(
        default="",
        description="What the archetype represents",
    )
    severity: RiskLevel = Field(
        default=RiskLevel.HIGH,
        description="Severity of the archetype",
    )
    confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Confidence that matches are real fraud",
    )
    occurrences: int = Field(
        default=0,
        ge=0,
        description="Matched predictions (monotonic)",
    )
    first_seen: Optional[datetime] = Field(
        default=None,
        description="First match time",
    )
    last_seen: Optional[datetime] = Field(
        default=None,
        description="Most recent match time",
    )
    characteristics: PatternCharacteristics = Field(
        default_factory=PatternCharacteristics,
    )
    risk_factors: list[RiskFactor] = Field(
        default_factory=list,
    )
    signature: set[RiskSignal] = Field(
        default_factory=set,
        description="Signals that indicate this archetype",
    )
    affected_subjects: list[str] = Field(
        default_factory=list,
        description="Most recently matched subjects (bounded)",
    )


class PatternCatalog(BaseModel):
    """Shape of the optional YAML catalog file."""
    patterns: list[FraudPattern] = Field(default_factory=list)
