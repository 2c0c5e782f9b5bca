"""
Activity History

Bounded in-memory record of recent trips per subject, read by the
temporal scorer (unusual hours, daily trip frequency).

Bounds:
- At most max_subjects subjects; the least recently written is evicted
- At most max_points trips per subject; oldest dropped first
- Trips older than the window are ignored on read and pruned on write
"""

import threading
from collections import OrderedDict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Deque, Optional


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


@dataclass(frozen=True)
class TripPoint:
    timestamp: datetime
    is_weekend: bool


class ActivityHistory:
    """Thread-safe, bounded per-subject trip history."""

    def __init__(
        self,
        max_subjects: int = 10000,
        max_points: int = 200,
        window: timedelta = timedelta(days=30),
    ):
        """
        Initialize history.

        Args:
            max_subjects: Subjects tracked before LRU eviction
            max_points: Trips kept per subject
            window: Age beyond which trips are discarded
        """
        self.max_subjects = max_subjects
        self.max_points = max_points
        self.window = window
        self._subjects: OrderedDict[str, Deque[TripPoint]] = OrderedDict()
        self._lock = threading.Lock()

    def record(
        self,
        subject_id: str,
        timestamp: datetime,
        is_weekend: Optional[bool] = None,
    ) -> None:
        """Record a completed trip for a subject."""
        ts = _as_utc(timestamp)
        if is_weekend is None:
            is_weekend = ts.weekday() >= 5
        point = TripPoint(timestamp=ts, is_weekend=is_weekend)
        cutoff = ts - self.window

        with self._lock:
            points = self._subjects.get(subject_id)
            if points is None:
                points = deque(maxlen=self.max_points)
                self._subjects[subject_id] = points
            else:
                self._subjects.move_to_end(subject_id)

            points.append(point)
            while points and points[0].timestamp < cutoff:
                points.popleft()

            while len(self._subjects) > self.max_subjects:
                self._subjects.popitem(last=False)

    def snapshot(self, subject_id: str, now: Optional[datetime] = None) -> tuple[TripPoint, ...]:
        """Immutable view of a subject's trips within the window."""
        cutoff = _as_utc(now or datetime.now(UTC)) - self.window
        with self._lock:
            points = self._subjects.get(subject_id)
            if not points:
                return ()
            return tuple(p for p in points if p.timestamp >= cutoff)

    def forget(self, subject_id: str) -> bool:
        """Drop a subject's history. Returns True if it existed."""
        with self._lock:
            return self._subjects.pop(subject_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._subjects)
