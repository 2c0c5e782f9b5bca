"""
Anomaly Alert Store

Bounded, shared log of anomaly alerts. Oldest alerts are evicted first
once capacity is reached. Every operation runs under one lock so
eviction and resolution stay atomic across concurrent scoring calls.
"""

import threading
import uuid
from collections import deque
from typing import Deque, Optional

from ..schemas import (
    AlertStats,
    AlertType,
    AnomalyAlert,
    AnomalyScore,
    RiskLevel,
    RiskSignal,
)

DEFAULT_CAPACITY = 1000
ELEVATED_DIMENSION = 0.5
FALLBACK_DESCRIPTION = "Statistical anomaly detected"

# Strongest dimension -> alert type (anything else is statistical)
DIMENSION_ALERT_TYPES: dict[str, AlertType] = {
    "temporal": AlertType.SEQUENTIAL,
    "geographical": AlertType.CONTEXTUAL,
    "behavioral": AlertType.STATISTICAL,
}

# Strongest dimension boosted by high-risk cluster membership -> clustering
CLUSTER_MEMBERSHIP_SIGNALS: dict[str, RiskSignal] = {
    "behavioral": RiskSignal.BEHAVIOR_CLUSTER_MEMBERSHIP,
    "geographical": RiskSignal.GEO_CLUSTER_MEMBERSHIP,
}


def alert_type_for(anomaly: AnomalyScore) -> AlertType:
    """
    Alert type from the strongest dimension (first wins on ties).

    When that dimension was boosted by membership of a high-risk cluster
    the alert is a clustering alert.
    """
    strongest, best = "", 0.0
    for name, value in anomaly.dimensions.as_dict().items():
        if value > best:
            strongest, best = name, value
    if CLUSTER_MEMBERSHIP_SIGNALS.get(strongest) in anomaly.signals:
        return AlertType.CLUSTERING
    return DIMENSION_ALERT_TYPES.get(strongest, AlertType.STATISTICAL)


def alert_severity_for(overall: float) -> RiskLevel:
    if overall >= 0.9:
        return RiskLevel.CRITICAL
    if overall >= 0.7:
        return RiskLevel.HIGH
    if overall >= 0.4:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def build_alert(anomaly: AnomalyScore, subject_id: str) -> AnomalyAlert:
    """Create an alert describing an anomaly score."""
    return AnomalyAlert(
        id=f"anomaly_{uuid.uuid4().hex}",
        type=alert_type_for(anomaly),
        severity=alert_severity_for(anomaly.overall),
        subject_id=subject_id,
        description=anomaly.explanation[0] if anomaly.explanation else FALLBACK_DESCRIPTION,
        features=[
            name for name, value in anomaly.dimensions.as_dict().items()
            if value > ELEVATED_DIMENSION
        ],
        confidence=anomaly.confidence,
    )


class AlertStore:
    """Thread-safe FIFO-bounded alert log."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize store.

        Args:
            capacity: Maximum alerts held before the oldest is evicted
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._alerts: Deque[AnomalyAlert] = deque()
        self._index: dict[str, AnomalyAlert] = {}
        self._lock = threading.Lock()

    def append(self, alert: AnomalyAlert) -> Optional[AnomalyAlert]:
        """
        Add an alert.

        Returns:
            The evicted alert, if capacity was exceeded
        """
        evicted = None
        with self._lock:
            self._alerts.append(alert)
            self._index[alert.id] = alert
            if len(self._alerts) > self.capacity:
                evicted = self._alerts.popleft()
                self._index.pop(evicted.id, None)
        return evicted

    def recent(self, limit: int = 50) -> list[AnomalyAlert]:
        """Newest alerts first (copies)."""
        if limit <= 0:
            return []
        with self._lock:
            newest = list(reversed(self._alerts))[:limit]
            return [alert.model_copy() for alert in newest]

    def get(self, alert_id: str) -> Optional[AnomalyAlert]:
        with self._lock:
            alert = self._index.get(alert_id)
            return alert.model_copy() if alert else None

    def resolve(self, alert_id: str, false_positive: bool = False) -> bool:
        """
        Mark an alert resolved.

        Idempotent: resolving again overwrites the false-positive flag.

        Returns:
            False if the alert is unknown (or already evicted)
        """
        with self._lock:
            alert = self._index.get(alert_id)
            if alert is None:
                return False
            alert.resolved = True
            alert.false_positive = false_positive
            return True

    def stats(self) -> AlertStats:
        """Counts by type and severity plus the false-positive rate."""
        with self._lock:
            total = len(self._alerts)
            by_type: dict[str, int] = {}
            by_severity: dict[str, int] = {}
            false_positives = 0

            for alert in self._alerts:
                by_type[alert.type.value] = by_type.get(alert.type.value, 0) + 1
                by_severity[alert.severity.value] = by_severity.get(alert.severity.value, 0) + 1
                if alert.false_positive:
                    false_positives += 1

        return AlertStats(
            total=total,
            by_type=by_type,
            by_severity=by_severity,
            false_positive_rate=round(false_positives / total, 4) if total else 0.0,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
