"""
Feature Schemas for Ride Risk Scoring

Defines the FeatureVector scored by the engine. A vector is assembled
upstream from trip, device, payment and location telemetry and is
immutable once constructed.

Every sub-record and measurement is required; only the user and trip
identifiers may be omitted. Measurements are not range-checked here:
out-of-range or non-finite values are neutralized during normalization
instead of failing the whole score.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class UserFeatures(_Frozen):
    """Rider/driver account history."""
    user_id: Optional[str] = Field(
        default=None,
        description="Subject identifier used for alerts and history",
    )
    account_age: float = Field(
        ...,
        description="Account age in days",
    )
    total_rides: int = Field(
        ...,
        description="Lifetime completed rides",
    )
    cancelation_rate: float = Field(
        ...,
        description="Share of trips cancelled (0-1)",
    )
    rating_average: float = Field(
        ...,
        description="Average rating (0-5)",
    )
    device_changes: int = Field(
        ...,
        description="Device changes on the account",
    )
    location_consistency: float = Field(
        ...,
        description="Consistency of usual locations (0-1)",
    )


class TripFeatures(_Frozen):
    """The trip being scored."""
    trip_id: Optional[str] = Field(
        default=None,
        description="Trip identifier",
    )
    distance: float = Field(
        ...,
        description="Trip distance in km",
    )
    duration: float = Field(
        ...,
        description="Trip duration in minutes",
    )
    price: float = Field(
        ...,
        description="Fare in PHP",
    )
    time_of_day: int = Field(
        ...,
        description="Hour of day (0-23)",
    )
    day_of_week: int = Field(
        ...,
        description="Day of week (0-6)",
    )
    is_weekend: bool = Field(
        ...,
        description="Trip happens on a weekend",
    )
    is_holiday: bool = Field(
        ...,
        description="Trip happens on a public holiday",
    )
    route_deviation: float = Field(
        ...,
        description="Deviation from the optimal route (0-1)",
    )
    speed_anomaly: float = Field(
        ...,
        description="Speed anomaly score (0-1)",
    )


class LocationFeatures(_Frozen):
    """Pickup/dropoff context and GPS quality."""
    pickup_region: str = Field(
        ...,
        description="Pickup region (e.g., manila, cebu, davao)",
    )
    dropoff_region: str = Field(
        ...,
        description="Dropoff region",
    )
    pickup_risk_score: float = Field(
        ...,
        description="Risk score of the pickup area (0-1)",
    )
    dropoff_risk_score: float = Field(
        ...,
        description="Risk score of the dropoff area (0-1)",
    )
    gps_accuracy: float = Field(
        ...,
        description="Reported GPS accuracy in meters",
    )
    location_jumps: int = Field(
        ...,
        description="Sudden location jumps observed during the trip",
    )
    impossible_speeds: int = Field(
        ...,
        description="Segments with physically impossible speed",
    )


class PaymentFeatures(_Frozen):
    """Payment behavior."""
    method: str = Field(
        ...,
        description="Payment method: cash, card, wallet, corporate",
    )
    card_failures: int = Field(
        ...,
        description="Recent card failures",
    )
    unusual_amounts: bool = Field(
        ...,
        description="Payment amounts flagged as unusual",
    )
    payment_velocity: float = Field(
        ...,
        description="Payments per hour",
    )
    chargeback_history: int = Field(
        ...,
        description="Lifetime chargebacks",
    )


class DeviceFeatures(_Frozen):
    """Device fingerprint signals."""
    fingerprint: str = Field(
        ...,
        description="Device fingerprint hash",
    )
    is_rooted: bool = Field(
        ...,
        description="Device is rooted/jailbroken",
    )
    is_emulator: bool = Field(
        ...,
        description="Device is an emulator",
    )
    vpn_usage: bool = Field(
        ...,
        description="VPN app detected on device",
    )
    multiple_accounts: int = Field(
        ...,
        description="Accounts seen on this device",
    )
    device_age: float = Field(
        ...,
        description="Days since the device was first seen",
    )


class NetworkFeatures(_Frozen):
    """Network/IP intelligence."""
    ip_risk_score: float = Field(
        ...,
        description="IP reputation risk (0-1)",
    )
    is_vpn: bool = Field(
        ...,
        description="IP is a VPN endpoint",
    )
    is_proxy: bool = Field(
        ...,
        description="IP is a proxy",
    )
    is_tor: bool = Field(
        ...,
        description="IP is a Tor exit node",
    )
    network_changes: int = Field(
        ...,
        description="Network changes during the session",
    )
    country_code: str = Field(
        ...,
        description="IP country (ISO 3166-1 alpha-2)",
    )


class FeatureVector(_Frozen):
    """
    Complete scoring input.

    Grouped by source so the feature-assembly service can fill each
    block independently. All six blocks are required.
    """
    user: UserFeatures
    trip: TripFeatures
    location: LocationFeatures
    payment: PaymentFeatures
    device: DeviceFeatures
    network: NetworkFeatures

    @property
    def subject_id(self) -> str:
        """Identifier used for alerts, history and pattern bookkeeping."""
        return self.user.user_id or "unknown"
