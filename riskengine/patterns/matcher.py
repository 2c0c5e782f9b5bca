"""
Fraud Pattern Matcher

Maintains the registry of fraud archetypes and updates their running
statistics from high-scoring predictions.

A prediction matches an archetype when its fraud score exceeds the
match threshold and its signals intersect the archetype signature.

Registry rules:
- occurrences only ever increase
- first_seen is set on the first match and never changes
- last_seen never moves backwards
- archetypes are never removed; "active" is a read-time filter
"""

import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timedelta, UTC
from typing import Optional

from ..schemas import FraudPattern, FraudPrediction, PatternCatalog

logger = logging.getLogger("riskengine.patterns")

MATCH_THRESHOLD = 0.6
ACTIVE_WINDOW = timedelta(hours=24)
MAX_AFFECTED_SUBJECTS = 100


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp


class PatternMatcher:
    """Thread-safe archetype registry."""

    def __init__(
        self,
        catalog: PatternCatalog,
        match_threshold: float = MATCH_THRESHOLD,
        active_window: timedelta = ACTIVE_WINDOW,
        max_affected_subjects: int = MAX_AFFECTED_SUBJECTS,
    ):
        """
        Initialize matcher.

        Args:
            catalog: Archetypes to seed the registry with
            match_threshold: Fraud score a prediction must exceed to match
            active_window: How recently an archetype must have matched
            max_affected_subjects: Recent subjects kept per archetype
        """
        self.match_threshold = match_threshold
        self.active_window = active_window
        self.max_affected_subjects = max_affected_subjects

        self._patterns: dict[str, FraudPattern] = {
            pattern.id: pattern.model_copy(deep=True)
            for pattern in catalog.patterns
        }
        self._lock = threading.Lock()

    def matches(self, prediction: FraudPrediction, pattern: FraudPattern) -> bool:
        if prediction.fraud_score <= self.match_threshold:
            return False
        return not pattern.signature.isdisjoint(prediction.signals)

    def observe(self, predictions: Iterable[FraudPrediction]) -> dict[str, int]:
        """
        Update archetype statistics from a batch of predictions.

        Returns:
            Matches per archetype id for this batch
        """
        matched: dict[str, int] = {}

        with self._lock:
            for prediction in predictions:
                if prediction.fraud_score <= self.match_threshold:
                    continue

                seen_at = _as_utc(prediction.timestamp)
                for pattern in self._patterns.values():
                    if not self.matches(prediction, pattern):
                        continue

                    pattern.occurrences += 1
                    if pattern.first_seen is None:
                        pattern.first_seen = seen_at
                    if pattern.last_seen is None or seen_at > pattern.last_seen:
                        pattern.last_seen = seen_at

                    subject = prediction.subject_id
                    if subject:
                        if subject in pattern.affected_subjects:
                            pattern.affected_subjects.remove(subject)
                        pattern.affected_subjects.append(subject)
                        del pattern.affected_subjects[:-self.max_affected_subjects]

                    matched[pattern.id] = matched.get(pattern.id, 0) + 1

        if matched:
            logger.debug("Pattern matches: %s", matched)
        return matched

    def active(self, now: Optional[datetime] = None) -> list[FraudPattern]:
        """Archetypes seen within the active window, by confidence descending."""
        now = _as_utc(now or datetime.now(UTC))
        with self._lock:
            active = [
                pattern.model_copy(deep=True)
                for pattern in self._patterns.values()
                if pattern.last_seen is not None and now - pattern.last_seen < self.active_window
            ]
        return sorted(active, key=lambda p: p.confidence, reverse=True)

    def detect_patterns(
        self,
        predictions: Iterable[FraudPrediction],
        now: Optional[datetime] = None,
    ) -> list[FraudPattern]:
        """
        Record a batch of predictions and return the active archetypes.

        Args:
            predictions: Recent predictions (may be empty)
            now: Reference time for the active window

        Returns:
            Deep copies of active archetypes, by confidence descending
        """
        self.observe(predictions)
        return self.active(now=now)

    def all_patterns(self) -> list[FraudPattern]:
        """Every archetype, active or not."""
        with self._lock:
            return [pattern.model_copy(deep=True) for pattern in self._patterns.values()]

    def get(self, pattern_id: str) -> Optional[FraudPattern]:
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            return pattern.model_copy(deep=True) if pattern else None
