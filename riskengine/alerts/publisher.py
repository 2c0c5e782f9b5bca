"""
Alert Publishing

Forwards newly created alerts to external consumers (investigation
queues, notification services). Publishing happens after the scoring
result is built, so a failed publish never changes an assessment.

RedisAlertPublisher:
- LPUSH the alert JSON onto a capped list ({prefix}alerts)
- PUBLISH it on a channel ({prefix}alerts:live) for live subscribers
"""

import logging
from typing import Protocol, runtime_checkable

import redis.asyncio as redis

from ..schemas import AnomalyAlert

logger = logging.getLogger("riskengine.alerts")


@runtime_checkable
class AlertPublisher(Protocol):
    """Delivers alerts to an external system."""

    async def publish(self, alert: AnomalyAlert) -> None:
        ...

    async def close(self) -> None:
        ...


class RedisAlertPublisher:
    """Publishes alerts to Redis."""

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "riskengine:",
        max_list_size: int = 1000,
    ):
        """
        Initialize publisher.

        Args:
            redis_client: Async Redis client
            key_prefix: Prefix for the list key and channel
            max_list_size: Alerts retained in the Redis list
        """
        self.redis = redis_client
        self.list_key = f"{key_prefix}alerts"
        self.channel = f"{key_prefix}alerts:live"
        self.max_list_size = max_list_size

    async def publish(self, alert: AnomalyAlert) -> None:
        payload = alert.model_dump_json()

        pipe = self.redis.pipeline()
        pipe.lpush(self.list_key, payload)
        pipe.ltrim(self.list_key, 0, self.max_list_size - 1)
        pipe.publish(self.channel, payload)
        await pipe.execute()

        logger.debug("Published alert %s", alert.id)

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def close(self) -> None:
        await self.redis.aclose()


def create_redis_publisher(
    host: str,
    port: int,
    db: int = 0,
    password: str | None = None,
    key_prefix: str = "riskengine:",
    max_list_size: int = 1000,
) -> RedisAlertPublisher:
    """Build a publisher with its own Redis connection pool."""
    client = redis.Redis(
        host=host,
        port=port,
        db=db,
        password=password,
        decode_responses=True,
    )
    return RedisAlertPublisher(client, key_prefix=key_prefix, max_list_size=max_list_size)
