"""
Feature Normalization

Maps a FeatureVector into a flat, stable map of [0,1] features used by
the ensemble scorer, the explanation rules and the cluster projection.

Normalization strategies:
- Population z-score squashed through a logistic function for
  measurements with a known baseline (e.g. trip.distance 15.5 ± 12.3)
- Fixed-scale ratios for counts (location jumps / 10, ...)
- Pass-through for values already on a 0-1 scale
- 0/1 for flags

Non-finite or out-of-range measurements map to the neutral midpoint
(0.5) instead of failing the whole score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from ..schemas import FeatureVector

NEUTRAL = 0.5


@dataclass(frozen=True)
class FeatureStats:
    mean: float
    std: float


# Population baselines, keyed by raw measurement name
DEFAULT_FEATURE_STATS: Mapping[str, FeatureStats] = MappingProxyType({
    "user.accountAge": FeatureStats(mean=365, std=200),
    "user.totalRides": FeatureStats(mean=120, std=150),
    "user.cancelationRate": FeatureStats(mean=0.08, std=0.12),
    "trip.distance": FeatureStats(mean=15.5, std=12.3),
    "trip.duration": FeatureStats(mean=35, std=25),
    "trip.price": FeatureStats(mean=250, std=180),
    "location.gpsAccuracy": FeatureStats(mean=5.2, std=8.1),
    "payment.cardFailures": FeatureStats(mean=0.3, std=1.2),
    "device.deviceAge": FeatureStats(mean=180, std=120),
    "device.multipleAccounts": FeatureStats(mean=1.0, std=1.0),
    "daily_trips": FeatureStats(mean=8, std=5),
})

FEATURE_COLUMNS: list[str] = [
    # User
    "user_account_age",
    "user_total_rides",
    "user_cancelation_rate",
    "user_rating",
    "user_device_changes",
    "user_location_consistency",
    # Trip
    "trip_distance",
    "trip_duration",
    "trip_price",
    "trip_time_of_day",
    "trip_is_weekend",
    "trip_route_deviation",
    "trip_speed_anomaly",
    # Location
    "location_gps_accuracy",
    "location_jumps",
    "location_impossible_speeds",
    "location_pickup_risk",
    "location_dropoff_risk",
    # Payment
    "payment_card_failures",
    "payment_unusual_amounts",
    "payment_velocity",
    # Device
    "device_is_rooted",
    "device_is_emulator",
    "device_vpn_usage",
    "device_multiple_accounts",
    "device_age",
    # Network
    "network_ip_risk",
    "network_is_vpn",
    "network_is_proxy",
    "network_is_tor",
    "network_changes",
]


def sigmoid(z: float) -> float:
    """Logistic function, stable for large |z|."""
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _in_range(value: float, low: float, high: float) -> Optional[float]:
    """Return value as float if finite and within [low, high], else None."""
    value = float(value)
    if not math.isfinite(value) or value < low or value > high:
        return None
    return value


class FeatureNormalizer:
    """
    Converts raw measurements into [0,1] features.

    Stateless apart from the immutable baseline table, so one instance
    can be shared by any number of concurrent scoring calls.
    """

    def __init__(self, stats: Optional[Mapping[str, FeatureStats]] = None):
        """
        Initialize normalizer.

        Args:
            stats: Population baselines by measurement name (defaults to
                DEFAULT_FEATURE_STATS)
        """
        table = dict(stats if stats is not None else DEFAULT_FEATURE_STATS)
        for name, stat in table.items():
            if not stat.std > 0:
                raise ValueError(f"Standard deviation for {name} must be positive")
        self.stats: Mapping[str, FeatureStats] = MappingProxyType(table)

    def normalize(self, name: str, value: float) -> float:
        """
        Normalize one raw measurement.

        Known measurements use sigmoid(z-score); unknown names are
        clamped to [0,1]; non-finite input is neutral.
        """
        value = float(value)
        if not math.isfinite(value):
            return NEUTRAL

        stat = self.stats.get(name)
        if stat is None:
            return clamp(value)

        return sigmoid((value - stat.mean) / stat.std)

    def baseline(self, name: str) -> Optional[FeatureStats]:
        """Population baseline for a measurement, if known."""
        return self.stats.get(name)

    def _stat(self, name: str, value: float, low: float = 0.0, high: float = math.inf) -> float:
        checked = _in_range(value, low, high)
        if checked is None:
            return NEUTRAL
        return self.normalize(name, checked)

    @staticmethod
    def _ratio(value: float, scale: float, low: float = 0.0, high: float = math.inf) -> float:
        checked = _in_range(value, low, high)
        if checked is None:
            return NEUTRAL
        return clamp(checked / scale)

    @staticmethod
    def _unit(value: float) -> float:
        checked = _in_range(value, 0.0, 1.0)
        return NEUTRAL if checked is None else checked

    @staticmethod
    def _flag(value: bool) -> float:
        return 1.0 if value else 0.0

    def normalize_vector(self, features: FeatureVector) -> dict[str, float]:
        """Build the normalized feature map, ordered by FEATURE_COLUMNS."""
        user = features.user
        trip = features.trip
        location = features.location
        payment = features.payment
        device = features.device
        network = features.network

        values: dict[str, float] = {
            # User
            "user_account_age": self._stat("user.accountAge", user.account_age),
            "user_total_rides": self._stat("user.totalRides", user.total_rides),
            "user_cancelation_rate": self._unit(user.cancelation_rate),
            "user_rating": self._ratio(user.rating_average, 5.0, high=5.0),
            "user_device_changes": self._ratio(user.device_changes, 10),
            "user_location_consistency": self._unit(user.location_consistency),
            # Trip
            "trip_distance": self._stat("trip.distance", trip.distance),
            "trip_duration": self._stat("trip.duration", trip.duration),
            "trip_price": self._stat("trip.price", trip.price),
            "trip_time_of_day": self._ratio(trip.time_of_day, 24, high=23),
            "trip_is_weekend": self._flag(trip.is_weekend),
            "trip_route_deviation": self._unit(trip.route_deviation),
            "trip_speed_anomaly": self._unit(trip.speed_anomaly),
            # Location
            "location_gps_accuracy": self._stat("location.gpsAccuracy", location.gps_accuracy),
            "location_jumps": self._ratio(location.location_jumps, 10),
            "location_impossible_speeds": self._ratio(location.impossible_speeds, 5),
            "location_pickup_risk": self._unit(location.pickup_risk_score),
            "location_dropoff_risk": self._unit(location.dropoff_risk_score),
            # Payment
            "payment_card_failures": self._stat("payment.cardFailures", payment.card_failures),
            "payment_unusual_amounts": self._flag(payment.unusual_amounts),
            "payment_velocity": self._ratio(payment.payment_velocity, 20),
            # Device
            "device_is_rooted": self._flag(device.is_rooted),
            "device_is_emulator": self._flag(device.is_emulator),
            "device_vpn_usage": self._flag(device.vpn_usage),
            "device_multiple_accounts": self._stat("device.multipleAccounts", device.multiple_accounts),
            "device_age": self._stat("device.deviceAge", device.device_age),
            # Network
            "network_ip_risk": self._unit(network.ip_risk_score),
            "network_is_vpn": self._flag(network.is_vpn),
            "network_is_proxy": self._flag(network.is_proxy),
            "network_is_tor": self._flag(network.is_tor),
            "network_changes": self._ratio(network.network_changes, 10),
        }

        return {name: values[name] for name in FEATURE_COLUMNS}
