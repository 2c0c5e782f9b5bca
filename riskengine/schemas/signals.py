"""
Risk Signals

Structured tags emitted by the dimension scorers and the ensemble
reason rules. Archetype matching works on sets of these tags rather
than on the generated natural-language text.

Format: {CATEGORY}_{DETAIL}
"""

from enum import Enum


class RiskSignal(str, Enum):
    # Temporal
    TEMPORAL_UNUSUAL_HOUR = "TEMPORAL_UNUSUAL_HOUR"
    TEMPORAL_WEEKEND_DEVIATION = "TEMPORAL_WEEKEND_DEVIATION"
    TEMPORAL_HOLIDAY = "TEMPORAL_HOLIDAY"
    TEMPORAL_HIGH_TRIP_FREQUENCY = "TEMPORAL_HIGH_TRIP_FREQUENCY"

    # Behavioral
    BEHAVIOR_ROUTE_DEVIATION = "BEHAVIOR_ROUTE_DEVIATION"
    BEHAVIOR_SPEED_ANOMALY = "BEHAVIOR_SPEED_ANOMALY"
    BEHAVIOR_HIGH_CANCELATION = "BEHAVIOR_HIGH_CANCELATION"
    BEHAVIOR_INCONSISTENT_LOCATION = "BEHAVIOR_INCONSISTENT_LOCATION"
    BEHAVIOR_CLUSTER_MEMBERSHIP = "BEHAVIOR_CLUSTER_MEMBERSHIP"

    # Geographical
    GEO_LOCATION_JUMPS = "GEO_LOCATION_JUMPS"
    GEO_IMPOSSIBLE_SPEED = "GEO_IMPOSSIBLE_SPEED"
    GEO_POOR_GPS_ACCURACY = "GEO_POOR_GPS_ACCURACY"
    GEO_HIGH_RISK_AREA = "GEO_HIGH_RISK_AREA"
    GEO_CROSS_REGION = "GEO_CROSS_REGION"
    GEO_CLUSTER_MEMBERSHIP = "GEO_CLUSTER_MEMBERSHIP"

    # Payment / Financial
    PAYMENT_CARD_FAILURES = "PAYMENT_CARD_FAILURES"
    PAYMENT_UNUSUAL_AMOUNTS = "PAYMENT_UNUSUAL_AMOUNTS"
    PAYMENT_HIGH_VELOCITY = "PAYMENT_HIGH_VELOCITY"
    PAYMENT_CHARGEBACK_HISTORY = "PAYMENT_CHARGEBACK_HISTORY"
    PAYMENT_FARE_MISMATCH = "PAYMENT_FARE_MISMATCH"

    # Device
    DEVICE_EMULATOR = "DEVICE_EMULATOR"
    DEVICE_ROOTED = "DEVICE_ROOTED"
    DEVICE_MULTIPLE_ACCOUNTS = "DEVICE_MULTIPLE_ACCOUNTS"

    # Network
    NETWORK_HIGH_RISK_IP = "NETWORK_HIGH_RISK_IP"
    NETWORK_VPN_PROXY = "NETWORK_VPN_PROXY"
    NETWORK_TOR = "NETWORK_TOR"
    NETWORK_FREQUENT_CHANGES = "NETWORK_FREQUENT_CHANGES"
    NETWORK_FOREIGN_COUNTRY = "NETWORK_FOREIGN_COUNTRY"

    # Sub-model verdicts
    MODEL_GPS_SPOOFING = "MODEL_GPS_SPOOFING"
    MODEL_MULTI_ACCOUNT = "MODEL_MULTI_ACCOUNT"
