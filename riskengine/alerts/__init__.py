# Alert Module
from .store import AlertStore, alert_severity_for, alert_type_for, build_alert
from .publisher import AlertPublisher, RedisAlertPublisher, create_redis_publisher

__all__ = [
    "AlertStore",
    "alert_severity_for",
    "alert_type_for",
    "build_alert",
    "AlertPublisher",
    "RedisAlertPublisher",
    "create_redis_publisher",
]
