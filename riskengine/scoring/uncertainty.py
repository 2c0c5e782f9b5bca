"""
Uncertainty Sources and Model Overrides

Scoring never calls a random number generator directly. Rules that
model uncertainty (weekend deviation, cross-region trips, ensemble
jitter) ask an UncertaintySource for a draw in [0, 1).

- NeutralUncertainty: always 0.5, fully deterministic (production default)
- SeededUncertainty: reproducible numpy draws for simulations

A GeneralModel can replace the rule-based general ensemble with a real
trained model; returning None falls back to the rules.
"""

import threading
from typing import Mapping, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class UncertaintySource(Protocol):
    """Supplies uncertainty draws in [0, 1)."""

    def draw(self, key: str) -> float:
        """Return a draw for the named rule."""
        ...


class NeutralUncertainty:
    """Deterministic source: every draw is the midpoint."""

    def draw(self, key: str) -> float:
        return 0.5


class SeededUncertainty:
    """
    Reproducible random source.

    Two sources built with the same seed produce the same sequence of
    draws. The generator is shared by concurrent callers under a lock.
    """

    def __init__(self, seed: int = 42):
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._lock = threading.Lock()

    def draw(self, key: str) -> float:
        with self._lock:
            return float(self._rng.random())


@runtime_checkable
class GeneralModel(Protocol):
    """Pluggable replacement for the rule-based general ensemble score."""

    def predict(self, normalized: Mapping[str, float]) -> Optional[float]:
        """Return a fraud probability, or None to use the rules."""
        ...
