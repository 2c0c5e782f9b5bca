"""
Prometheus Metrics

Defines all metrics exposed by the risk engine.
Metrics cover:
- SLA monitoring (scoring latency)
- Risk outcomes (risk levels, score distributions, alerts)
- Background work (pattern matches, clustering runs)
- Operational health (errors, alert publishing failures)
"""

import logging

from prometheus_client import Counter, Histogram, Gauge, start_http_server

from ..config import settings

logger = logging.getLogger("riskengine.metrics")

SCORE_BUCKETS = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]


class RiskMetrics:
    """
    Container for all Prometheus metrics.

    Organized by category:
    - Request metrics
    - Latency metrics
    - Scoring metrics
    - Alert metrics
    - Pattern and clustering metrics
    """

    def __init__(self):
        """Initialize all metrics."""

        # =====================================================================
        # Request Metrics
        # =====================================================================
        self.requests_total = Counter(
            "riskengine_requests_total",
            "Total number of API requests",
            labelnames=["endpoint"],
        )

        self.errors_total = Counter(
            "riskengine_errors_total",
            "Total number of errors",
            labelnames=["error_type"],
        )

        # =====================================================================
        # Latency Metrics
        # =====================================================================
        # Scoring latency (target: low milliseconds)
        self.scoring_latency = Histogram(
            "riskengine_scoring_latency_ms",
            "Scoring latency in milliseconds",
            buckets=[0.5, 1, 2, 5, 10, 25, 50, 100],
        )

        self.slow_requests = Counter(
            "riskengine_slow_requests_total",
            "Number of scoring calls exceeding the latency target",
        )

        # =====================================================================
        # Scoring Metrics
        # =====================================================================
        self.risk_levels_total = Counter(
            "riskengine_risk_levels_total",
            "Scored assessments by combined risk level",
            labelnames=["risk_level"],
        )

        self.fraud_score_distribution = Histogram(
            "riskengine_fraud_score",
            "Distribution of ensemble fraud scores",
            buckets=SCORE_BUCKETS,
        )

        self.anomaly_score_distribution = Histogram(
            "riskengine_anomaly_score",
            "Distribution of overall anomaly scores",
            buckets=SCORE_BUCKETS,
        )

        self.flagged_total = Counter(
            "riskengine_flagged_for_review_total",
            "Assessments flagged for manual review",
        )

        # =====================================================================
        # Alert Metrics
        # =====================================================================
        self.alerts_total = Counter(
            "riskengine_alerts_total",
            "Anomaly alerts generated",
            labelnames=["type", "severity"],
        )

        self.alert_publish_failures = Counter(
            "riskengine_alert_publish_failures_total",
            "Alerts that failed to publish to external consumers",
        )

        self.alert_store_size = Gauge(
            "riskengine_alert_store_size",
            "Alerts currently held in memory",
        )

        # =====================================================================
        # Pattern and Clustering Metrics
        # =====================================================================
        self.pattern_matches_total = Counter(
            "riskengine_pattern_matches_total",
            "Predictions matched to fraud archetypes",
            labelnames=["pattern"],
        )

        self.clustering_runs_total = Counter(
            "riskengine_clustering_runs_total",
            "Clustering runs by outcome",
            labelnames=["outcome"],
        )

        self.clustering_duration = Histogram(
            "riskengine_clustering_duration_ms",
            "Clustering run duration in milliseconds",
            buckets=[1, 5, 10, 50, 100, 500, 1000, 5000],
        )


# Global metrics instance
metrics = RiskMetrics()


def setup_metrics() -> None:
    """
    Setup standalone Prometheus metrics server.

    Starts an HTTP server on the configured port in addition to the
    /metrics endpoint of the API.
    """
    if settings.metrics_enabled and settings.metrics_external_enabled:
        try:
            start_http_server(settings.metrics_port)
            logger.info("Metrics server started on port %d", settings.metrics_port)
        except Exception as e:
            logger.warning("Failed to start metrics server: %s", e)
