"""
Alert Tests

Tests for alert construction, the bounded alert store and Redis publishing.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock, MagicMock

import pytest

from riskengine.alerts import (
    AlertStore,
    RedisAlertPublisher,
    alert_severity_for,
    alert_type_for,
    build_alert,
)
from riskengine.schemas import AlertType, AnomalyScore, DimensionScores, RiskLevel, RiskSignal


def anomaly(
    overall: float = 0.8,
    explanation: list[str] | None = None,
    signals: list[RiskSignal] | None = None,
    **dims: float,
) -> AnomalyScore:
    return AnomalyScore(
        overall=overall,
        dimensions=DimensionScores(**dims),
        confidence=0.6,
        explanation=explanation if explanation is not None else ["Location anomaly detected"],
        signals=signals or [],
    )


class TestAlertConstruction:
    """Tests for alert type, severity and content."""

    @pytest.mark.parametrize(
        "dims,expected",
        [
            ({"temporal": 0.9, "geographical": 0.5}, AlertType.SEQUENTIAL),
            ({"geographical": 0.9}, AlertType.CONTEXTUAL),
            ({"behavioral": 0.9}, AlertType.STATISTICAL),
            ({"financial": 0.9}, AlertType.STATISTICAL),
            ({}, AlertType.STATISTICAL),
        ],
    )
    def test_type_from_strongest_dimension(self, dims, expected):
        assert alert_type_for(anomaly(**dims)) == expected

    def test_tie_goes_to_first_dimension(self):
        assert alert_type_for(anomaly(temporal=0.8, geographical=0.8)) == AlertType.SEQUENTIAL

    @pytest.mark.parametrize(
        "dims,signal",
        [
            ({"geographical": 0.9, "temporal": 0.4}, RiskSignal.GEO_CLUSTER_MEMBERSHIP),
            ({"behavioral": 0.9}, RiskSignal.BEHAVIOR_CLUSTER_MEMBERSHIP),
        ],
    )
    def test_cluster_boosted_dimension_is_clustering(self, dims, signal):
        assert alert_type_for(anomaly(signals=[signal], **dims)) == AlertType.CLUSTERING

    def test_membership_of_weaker_dimension_ignored(self):
        alert = anomaly(signals=[RiskSignal.BEHAVIOR_CLUSTER_MEMBERSHIP], temporal=0.9, behavioral=0.6)

        assert alert_type_for(alert) == AlertType.SEQUENTIAL

    @pytest.mark.parametrize(
        "overall,severity",
        [
            (0.95, RiskLevel.CRITICAL),
            (0.9, RiskLevel.CRITICAL),
            (0.75, RiskLevel.HIGH),
            (0.5, RiskLevel.MEDIUM),
            (0.2, RiskLevel.LOW),
        ],
    )
    def test_severity(self, overall, severity):
        assert alert_severity_for(overall) == severity

    def test_build_alert(self):
        alert = build_alert(anomaly(overall=0.8, geographical=0.9, network=0.6, financial=0.4), "user_1")

        assert alert.id.startswith("anomaly_")
        assert alert.subject_id == "user_1"
        assert alert.description == "Location anomaly detected"
        assert alert.features == ["geographical", "network"]
        assert alert.confidence == 0.6
        assert not alert.resolved

    def test_alert_ids_unique(self):
        ids = {build_alert(anomaly(), "user_1").id for _ in range(100)}

        assert len(ids) == 100


class TestAlertStore:
    """Tests for the bounded alert store."""

    def test_keeps_most_recent_alerts(self):
        store = AlertStore(capacity=1000)
        alerts = [build_alert(anomaly(), f"user_{i}") for i in range(1001)]
        for alert in alerts:
            store.append(alert)

        recent = store.recent(1000)

        assert len(recent) == 1000
        assert alerts[0].id not in {a.id for a in recent}
        assert recent[0].id == alerts[-1].id

    def test_append_returns_evicted(self):
        store = AlertStore(capacity=1)
        first = build_alert(anomaly(), "a")

        assert store.append(first) is None
        assert store.append(build_alert(anomaly(), "b")).id == first.id
        assert store.get(first.id) is None

    def test_recent_limit(self):
        store = AlertStore()
        for i in range(5):
            store.append(build_alert(anomaly(), f"user_{i}"))

        assert len(store.recent(3)) == 3
        assert store.recent(0) == []

    def test_recent_returns_copies(self):
        store = AlertStore()
        alert = build_alert(anomaly(), "user_1")
        store.append(alert)

        store.recent(1)[0].resolved = True

        assert not store.get(alert.id).resolved

    def test_resolve(self):
        store = AlertStore()
        alert = build_alert(anomaly(), "user_1")
        store.append(alert)

        assert store.resolve(alert.id, false_positive=True)
        assert store.resolve(alert.id)
        resolved = store.get(alert.id)
        assert resolved.resolved
        assert not resolved.false_positive

    def test_resolve_unknown(self):
        assert not AlertStore().resolve("anomaly_missing")

    def test_stats(self):
        store = AlertStore()
        alerts = [
            build_alert(anomaly(overall=0.95, geographical=0.9), "a"),
            build_alert(anomaly(overall=0.75, temporal=0.9), "b"),
            build_alert(anomaly(overall=0.75, behavioral=0.9), "c"),
            build_alert(anomaly(overall=0.75, behavioral=0.9), "d"),
        ]
        for alert in alerts:
            store.append(alert)
        store.resolve(alerts[0].id, false_positive=True)

        stats = store.stats()

        assert stats.total == 4
        assert stats.by_type == {"contextual": 1, "sequential": 1, "statistical": 2}
        assert stats.by_severity == {"critical": 1, "high": 3}
        assert stats.false_positive_rate == pytest.approx(0.25)

    def test_empty_stats(self):
        stats = AlertStore().stats()

        assert stats.total == 0
        assert stats.false_positive_rate == 0.0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            AlertStore(capacity=0)


class TestAlertStoreConcurrency:
    """FIFO eviction under concurrent writers."""

    def test_concurrent_appends_keep_newest(self):
        capacity, threads, per_thread = 500, 8, 200
        store = AlertStore(capacity=capacity)
        batches = [
            [build_alert(anomaly(), f"user_{n}") for _ in range(per_thread)]
            for n in range(threads)
        ]
        barrier = threading.Barrier(threads)

        def writer(batch):
            barrier.wait()
            evicted = []
            for alert in batch:
                old = store.append(alert)
                if old is not None:
                    evicted.append(old)
            return evicted

        with ThreadPoolExecutor(max_workers=threads) as pool:
            evicted = [alert for result in pool.map(writer, batches) for alert in result]

        total = threads * per_thread
        survivors = store.recent(capacity)
        survivor_ids = [alert.id for alert in survivors]
        evicted_ids = {alert.id for alert in evicted}

        assert len(store) == min(capacity, total)
        assert len(evicted) == total - capacity
        assert evicted_ids.isdisjoint(survivor_ids)
        assert evicted_ids | set(survivor_ids) == {a.id for batch in batches for a in batch}

        # Each writer's survivors are its newest alerts, still newest-first
        for batch in batches:
            ids = [alert.id for alert in batch]
            own = set(ids)
            kept = [alert_id for alert_id in survivor_ids if alert_id in own]
            assert kept == list(reversed(ids))[:len(kept)]

        oldest = survivors[-1]
        assert store.append(build_alert(anomaly(), "late")).id == oldest.id

    def test_concurrent_resolve_and_append(self):
        store = AlertStore(capacity=50)
        alerts = [build_alert(anomaly(), f"user_{i}") for i in range(50)]
        for alert in alerts:
            store.append(alert)

        def resolver():
            for alert in alerts:
                store.resolve(alert.id, false_positive=True)

        def writer():
            for i in range(50):
                store.append(build_alert(anomaly(), f"new_{i}"))

        with ThreadPoolExecutor(max_workers=2) as pool:
            for future in [pool.submit(resolver), pool.submit(writer)]:
                future.result()

        stats = store.stats()
        assert len(store) == 50
        assert stats.total == 50
        assert all(alert.subject_id.startswith("new_") for alert in store.recent(50))


class TestRedisAlertPublisher:
    """Tests for Redis publishing with a mocked client."""

    @pytest.fixture
    def redis_client(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, True, 1])
        client = MagicMock()
        client.pipeline.return_value = pipe
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_publish(self, redis_client):
        publisher = RedisAlertPublisher(redis_client, key_prefix="test:", max_list_size=50)
        alert = build_alert(anomaly(), "user_1")

        await publisher.publish(alert)

        pipe = redis_client.pipeline.return_value
        payload = alert.model_dump_json()
        pipe.lpush.assert_called_once_with("test:alerts", payload)
        pipe.ltrim.assert_called_once_with("test:alerts", 0, 49)
        pipe.publish.assert_called_once_with("test:alerts:live", payload)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_publish_propagates_failure(self, redis_client):
        redis_client.pipeline.return_value.execute.side_effect = ConnectionError("down")
        publisher = RedisAlertPublisher(redis_client)

        with pytest.raises(ConnectionError):
            await publisher.publish(build_alert(anomaly(), "user_1"))

    @pytest.mark.asyncio
    async def test_ping(self, redis_client):
        publisher = RedisAlertPublisher(redis_client)

        assert await publisher.ping()

        redis_client.ping.side_effect = ConnectionError("down")
        assert not await publisher.ping()

    @pytest.mark.asyncio
    async def test_close(self, redis_client):
        await RedisAlertPublisher(redis_client).close()

        redis_client.aclose.assert_awaited_once()
