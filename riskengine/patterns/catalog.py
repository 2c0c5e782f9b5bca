"""
Fraud Pattern Catalog

Named fraud archetypes seeded into the PatternMatcher at startup. Each
archetype carries a signature: the set of RiskSignals that indicate it.

The catalog can be overridden by a YAML file (PATTERNS_PATH). A missing
or invalid file falls back to DEFAULT_PATTERN_CATALOG.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from ..schemas import (
    FraudPattern,
    PatternCatalog,
    PatternCharacteristics,
    RiskFactor,
    RiskLevel,
    RiskSignal,
)

logger = logging.getLogger("riskengine.patterns")


DEFAULT_PATTERN_CATALOG = PatternCatalog(
    patterns=[
        FraudPattern(
            id="gps_teleportation",
            name="GPS Teleportation Pattern",
            description="Users making impossible location jumps indicating GPS spoofing",
            severity=RiskLevel.CRITICAL,
            confidence=0.95,
            characteristics=PatternCharacteristics(
                behavioral=["Sudden location jumps >50km in <1min", "Speed calculations >200km/h"],
                temporal=["Pattern occurs during peak hours", "Consistent timing with bonus periods"],
                geographical=["Concentrated in Manila CBD", "Airport to city center routes"],
                financial=["High-value trips", "Bonus eligibility patterns"],
            ),
            risk_factors=[
                RiskFactor(factor="Impossible speed", weight=0.9, description="Movement speed exceeds physical limits"),
                RiskFactor(factor="Low GPS accuracy", weight=0.7, description="Consistently poor GPS signal quality"),
                RiskFactor(factor="Bonus timing", weight=0.8, description="Aligned with incentive periods"),
            ],
            signature={
                RiskSignal.GEO_LOCATION_JUMPS,
                RiskSignal.GEO_IMPOSSIBLE_SPEED,
                RiskSignal.MODEL_GPS_SPOOFING,
            },
        ),
        FraudPattern(
            id="coordinated_fake_rides",
            name="Coordinated Fake Ride Network",
            description="Groups of users creating fake rides for bonus collection",
            severity=RiskLevel.HIGH,
            confidence=0.88,
            characteristics=PatternCharacteristics(
                behavioral=["Circular ride patterns", "Unrealistic trip durations", "Coordinated timing"],
                temporal=["Late night activity spikes", "Weekend concentration"],
                geographical=["Same pickup/dropoff locations", "Remote area concentration"],
                financial=["Low fare amounts", "Payment method clustering"],
            ),
            risk_factors=[
                RiskFactor(factor="Route circularity", weight=0.85, description="Routes that return to origin"),
                RiskFactor(factor="User coordination", weight=0.9, description="Synchronized behavior patterns"),
                RiskFactor(factor="Location clustering", weight=0.75, description="Concentrated geographic activity"),
            ],
            signature={
                RiskSignal.BEHAVIOR_ROUTE_DEVIATION,
                RiskSignal.PAYMENT_UNUSUAL_AMOUNTS,
            },
        ),
        FraudPattern(
            id="device_farm_operation",
            name="Device Farm Multi-Account Pattern",
            description="Single device managing multiple accounts for fraud",
            severity=RiskLevel.HIGH,
            confidence=0.92,
            characteristics=PatternCharacteristics(
                behavioral=["Rapid account switching", "Identical behavioral patterns", "Automated actions"],
                temporal=["24/7 activity patterns", "Precisely timed actions"],
                geographical=["Single location multiple accounts", "Limited geographical diversity"],
                financial=["Payment method reuse", "Systematic bonus claiming"],
            ),
            risk_factors=[
                RiskFactor(factor="Device fingerprint sharing", weight=0.95, description="Multiple accounts on same device"),
                RiskFactor(factor="Behavioral similarity", weight=0.8, description="Identical usage patterns"),
                RiskFactor(factor="Automation indicators", weight=0.85, description="Non-human interaction patterns"),
            ],
            signature={
                RiskSignal.DEVICE_MULTIPLE_ACCOUNTS,
                RiskSignal.DEVICE_EMULATOR,
                RiskSignal.MODEL_MULTI_ACCOUNT,
            },
        ),
    ]
)


def load_catalog(path: Optional[Path] = None) -> PatternCatalog:
    """
    Load the pattern catalog.

    Args:
        path: YAML catalog file (optional)

    Returns:
        Catalog from the file, or a copy of the default catalog when the
        file is missing or invalid
    """
    if path is None:
        return DEFAULT_PATTERN_CATALOG.model_copy(deep=True)

    if not path.exists():
        logger.warning("Pattern catalog %s not found, using default catalog", path)
        return DEFAULT_PATTERN_CATALOG.model_copy(deep=True)

    try:
        with open(path) as f:
            config = yaml.safe_load(f)

        catalog = PatternCatalog(**(config or {}))
        if not catalog.patterns:
            raise ValueError("catalog defines no patterns")

        ids = [pattern.id for pattern in catalog.patterns]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate pattern ids")

        logger.info("Loaded %d fraud patterns from %s", len(catalog.patterns), path)
        return catalog
    except Exception as e:
        # Log error and fall back to the built-in catalog
        logger.error("Pattern catalog load failed: %s", e)
        return DEFAULT_PATTERN_CATALOG.model_copy(deep=True)
