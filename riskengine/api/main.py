"""
Ride Risk Engine API

FastAPI application exposing the risk engine.
Scoring is designed for low-millisecond latency.

Endpoints:
- POST /score: Score a feature vector
- POST /activity: Record a completed trip for temporal history
- POST /patterns/detect: Match predictions against fraud archetypes
- GET /patterns: List fraud archetypes
- POST /clusters/run: Run clustering and publish the result (admin)
- GET /clusters: Published clusters
- GET /alerts, GET /alerts/stats, POST /alerts/{id}/resolve: Alert lifecycle
- GET /health: Health check
- GET /metrics: Prometheus metrics
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .. import __version__
from ..alerts import AlertPublisher, create_redis_publisher
from ..clustering import ClusterJob, ClusteringCancelled
from ..config import settings
from ..engine import RiskEngine, build_engine
from ..errors import InvalidFeatureVectorError
from ..metrics import metrics, setup_metrics
from ..schemas import (
    ActivityRecord,
    AlertStats,
    AnomalyAlert,
    ClusterAnalysis,
    ClusteringRequest,
    FeatureVector,
    FraudPattern,
    FraudPrediction,
    ResolveAlertRequest,
    ScoreResponse,
)
from ..utils import get_logger
from .auth import require_admin_token, require_api_token, require_metrics_token
from .dependencies import get_engine, get_publisher

logger = logging.getLogger("riskengine.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Initializes and cleans up resources:
    - Risk engine
    - Redis alert publisher (optional)
    - Periodic clustering job (optional)
    """
    get_logger("riskengine", settings.app_log_level)

    engine = build_engine(settings)
    app.state.engine = engine

    # Initialize alert publisher
    publisher = None
    if settings.alert_publish_enabled:
        publisher = create_redis_publisher(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            key_prefix=settings.redis_key_prefix,
            max_list_size=settings.redis_alert_list_size,
        )
        if not await publisher.ping():
            # Continue without Redis; publish failures are counted
            logger.warning("Redis unavailable, alert publishing will fail until it recovers")
    app.state.publisher = publisher

    # Start periodic clustering
    cluster_job = None
    if settings.clustering_enabled:
        cluster_job = ClusterJob(
            lambda cancel: engine.run_clustering(cancel_event=cancel),
            interval_seconds=settings.clustering_interval_seconds,
        )
        cluster_job.start()
    app.state.cluster_job = cluster_job

    # Setup metrics
    if settings.metrics_enabled:
        setup_metrics()

    yield

    # Cleanup
    if cluster_job:
        await cluster_job.stop()
    if publisher:
        await publisher.close()
    app.state.engine = None


async def _invalid_feature_vector(request: Request, exc: InvalidFeatureVectorError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.errors})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Ride Risk Engine API",
        description="Fraud and anomaly risk scoring for ride-hailing trips",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(InvalidFeatureVectorError, _invalid_feature_vector)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


def _fire_and_forget(coro, name: str) -> None:
    """Run a coroutine in the background and log failures."""
    task = asyncio.create_task(coro)

    def _log_exception(task_ref: asyncio.Task) -> None:
        try:
            task_ref.result()
        except Exception as exc:  # pragma: no cover - best effort logging
            logger.warning("Background task %s failed: %s", name, exc)

    task.add_done_callback(_log_exception)


async def _publish_alert(publisher: AlertPublisher, alert: AnomalyAlert) -> None:
    """Publish an alert; failures are counted and never reach the caller."""
    try:
        await publisher.publish(alert)
    except Exception as e:
        metrics.alert_publish_failures.inc()
        logger.warning("Alert %s publish failed: %s", alert.id, e)


@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns service health status and component availability.
    """
    engine: Optional[RiskEngine] = getattr(request.app.state, "engine", None)
    health = {
        "status": "healthy",
        "version": __version__,
        "components": {
            "engine": engine is not None,
        },
    }

    publisher = getattr(request.app.state, "publisher", None)
    if publisher is not None:
        health["components"]["redis"] = await publisher.ping()

    cluster_job = getattr(request.app.state, "cluster_job", None)
    if cluster_job is not None:
        health["components"]["clustering"] = cluster_job.running

    if engine is not None:
        health["alerts"] = len(engine.alerts)
        health["clusters"] = len(engine.registry.snapshot())

    # Overall status
    if not all(health["components"].values()):
        health["status"] = "degraded"

    return health


@app.get("/metrics")
def metrics_endpoint(_: None = Depends(require_metrics_token)):
    """Expose Prometheus metrics with optional token auth."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/score", response_model=ScoreResponse)
async def score(
    features: FeatureVector,
    engine: RiskEngine = Depends(get_engine),
    publisher: Optional[AlertPublisher] = Depends(get_publisher),
    _: None = Depends(require_api_token),
):
    """
    Score a trip feature vector.

    Returns the anomaly score, the fraud prediction and the combined
    triage result. New alerts are published in the background.
    """
    start_time = time.perf_counter()

    try:
        metrics.requests_total.labels(endpoint="/score").inc()

        assessment = engine.score(features)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        # Track metrics
        metrics.scoring_latency.observe(elapsed_ms)
        metrics.risk_levels_total.labels(risk_level=assessment.risk_level.value).inc()
        metrics.fraud_score_distribution.observe(assessment.prediction.fraud_score)
        metrics.anomaly_score_distribution.observe(assessment.anomaly.overall)
        if assessment.flagged_for_review:
            metrics.flagged_total.inc()
        if elapsed_ms > settings.target_scoring_latency_ms:
            metrics.slow_requests.inc()

        if assessment.alert is not None and publisher is not None:
            _fire_and_forget(_publish_alert(publisher, assessment.alert), "publish_alert")

        return ScoreResponse(assessment=assessment, processing_time_ms=round(elapsed_ms, 3))

    except InvalidFeatureVectorError:
        raise
    except Exception as e:
        metrics.errors_total.labels(error_type=type(e).__name__).inc()
        logger.exception("Scoring failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/activity")
async def record_activity(
    record: ActivityRecord,
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Record a completed trip for the subject's temporal history."""
    metrics.requests_total.labels(endpoint="/activity").inc()
    engine.record_activity(record.subject_id, record.timestamp, is_weekend=record.is_weekend)
    return {"status": "recorded", "subject_id": record.subject_id}


@app.post("/patterns/detect", response_model=list[FraudPattern])
async def detect_patterns(
    predictions: list[FraudPrediction],
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Match recent predictions against fraud archetypes; returns active archetypes."""
    metrics.requests_total.labels(endpoint="/patterns/detect").inc()
    return engine.detect_patterns(predictions)


@app.get("/patterns", response_model=list[FraudPattern])
async def list_patterns(
    active_only: bool = False,
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """List fraud archetypes with their running statistics."""
    return engine.list_patterns(active_only=active_only)


@app.post("/clusters/run", response_model=list[ClusterAnalysis])
async def run_clustering(
    body: Optional[ClusteringRequest] = None,
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_admin_token),
):
    """
    Run clustering and publish the result.

    Clusters the supplied vectors, or the accumulated vector buffer when
    none are given. Runs in a worker thread.
    """
    metrics.requests_total.labels(endpoint="/clusters/run").inc()
    vectors = body.vectors if body else None

    try:
        return await asyncio.to_thread(engine.run_clustering, vectors)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ClusteringCancelled as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/clusters", response_model=list[ClusterAnalysis])
async def list_clusters(
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Currently published clusters."""
    return engine.active_clusters()


@app.get("/alerts", response_model=list[AnomalyAlert])
async def recent_alerts(
    limit: int = Query(default=50, ge=1, le=1000),
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Most recent alerts, newest first."""
    return engine.recent_alerts(limit)


@app.get("/alerts/stats", response_model=AlertStats)
async def alert_stats(
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Alert counts by type and severity, plus the false-positive rate."""
    return engine.alert_stats()


@app.post("/alerts/{alert_id}/resolve")
async def resolve_alert(
    alert_id: str,
    body: Optional[ResolveAlertRequest] = None,
    engine: RiskEngine = Depends(get_engine),
    _: None = Depends(require_api_token),
):
    """Resolve an alert, optionally marking it a false positive."""
    false_positive = body.false_positive if body else False

    if not engine.resolve_alert(alert_id, false_positive=false_positive):
        raise HTTPException(status_code=404, detail=f"Alert not found: {alert_id}")

    return {"id": alert_id, "resolved": True, "false_positive": false_positive}


# Entry point for running directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "riskengine.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_debug,
    )
