"""
Ride Risk Engine - Configuration Settings

Centralized configuration using Pydantic Settings for type-safe
environment variable handling with validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: ALERT_THRESHOLD=0.8 will set alert_threshold to 0.8
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    app_debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # =========================================================================
    # API Configuration
    # =========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="API server bind address"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_token: str | None = Field(
        default=None,
        description="API token for scoring and alert endpoints (optional)"
    )
    admin_token: str | None = Field(
        default=None,
        description="Admin token for clustering runs (optional)"
    )
    metrics_token: str | None = Field(
        default=None,
        description="Token required to access /metrics (optional)"
    )
    cors_allow_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_allow_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        if not self.cors_allow_origins:
            return []
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    # =========================================================================
    # Metrics Configuration
    # =========================================================================
    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics endpoint"
    )
    metrics_external_enabled: bool = Field(
        default=False,
        description="Enable standalone metrics server (binds separate port)"
    )
    metrics_port: int = Field(
        default=9100,
        description="Prometheus metrics port"
    )
    target_scoring_latency_ms: float = Field(
        default=5.0,
        description="Scoring latency above which a call is counted as slow"
    )

    # =========================================================================
    # Alert Publishing (Redis)
    # Alerts are always kept in memory; publishing to Redis is optional
    # =========================================================================
    alert_publish_enabled: bool = Field(
        default=False,
        description="Publish generated alerts to Redis"
    )
    redis_host: str = Field(
        default="localhost",
        description="Redis server hostname"
    )
    redis_port: int = Field(
        default=6379,
        description="Redis server port"
    )
    redis_db: int = Field(
        default=0,
        description="Redis database number"
    )
    redis_password: str | None = Field(
        default=None,
        description="Redis password (optional)"
    )
    redis_key_prefix: str = Field(
        default="riskengine:",
        description="Prefix for all Redis keys to avoid conflicts"
    )
    redis_alert_list_size: int = Field(
        default=1000,
        ge=1,
        description="Number of alerts retained in the Redis alert list"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # =========================================================================
    # Scoring Thresholds
    # =========================================================================
    alert_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Anomaly overall score above which an alert is generated"
    )
    pattern_match_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Fraud score above which predictions are matched to archetypes"
    )
    review_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Combined score at which an assessment is flagged for review"
    )
    home_country: str = Field(
        default="PH",
        description="Country code where the platform operates"
    )
    expected_price_per_km: float = Field(
        default=16.0,
        gt=0.0,
        description="Expected fare per kilometre (PHP)"
    )
    model_version: str = Field(
        default="ensemble_v2.1",
        description="Version tag stamped on fraud predictions"
    )
    uncertainty_seed: int | None = Field(
        default=None,
        description="Seed for simulated model uncertainty (unset = deterministic neutral draws)"
    )

    # =========================================================================
    # Alerts & Patterns
    # =========================================================================
    alert_capacity: int = Field(
        default=1000,
        ge=1,
        description="Maximum alerts retained in memory (oldest evicted first)"
    )
    pattern_active_window_hours: int = Field(
        default=24,
        ge=1,
        description="Hours since last match during which a pattern is active"
    )
    patterns_path: str | None = Field(
        default=None,
        description="Optional YAML file with the fraud pattern catalog"
    )

    # =========================================================================
    # Clustering
    # =========================================================================
    cluster_k: int = Field(
        default=5,
        ge=1,
        description="Number of clusters per clustering run"
    )
    cluster_radius: float = Field(
        default=0.5,
        gt=0.0,
        description="Euclidean distance within which a vector joins a cluster"
    )
    cluster_outlier_distance: float = Field(
        default=0.3,
        ge=0.0,
        description="Distance beyond which a member is reported as outlier"
    )
    cluster_seed: int | None = Field(
        default=42,
        description="Seed for center selection (None for nondeterministic runs)"
    )
    clustering_enabled: bool = Field(
        default=False,
        description="Run the periodic clustering job"
    )
    clustering_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Seconds between periodic clustering runs"
    )
    vector_buffer_size: int = Field(
        default=5000,
        ge=1,
        description="Recent cluster-space vectors kept for clustering"
    )

    # =========================================================================
    # Activity History (temporal scoring)
    # =========================================================================
    history_max_subjects: int = Field(
        default=10000,
        ge=1,
        description="Subjects tracked in activity history (LRU eviction)"
    )
    history_max_points: int = Field(
        default=200,
        ge=1,
        description="Trip timestamps kept per subject"
    )
    history_window_days: int = Field(
        default=30,
        ge=1,
        description="Days of trip history kept per subject"
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Enforce required security settings in production."""
        if self.app_env == "production":
            missing: list[str] = []
            if not self.api_token:
                missing.append("API_TOKEN")
            if not self.admin_token:
                missing.append("ADMIN_TOKEN")
            if not self.metrics_token:
                missing.append("METRICS_TOKEN")
            if missing:
                raise ValueError(
                    "Missing required settings for production: "
                    + ", ".join(missing)
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()


# Singleton settings instance for easy import
settings = get_settings()
