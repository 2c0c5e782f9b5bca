"""
Pytest Configuration and Fixtures - Ride Risk Engine

Provides feature vectors for the reference trip scenarios, a fully
wired engine and an ASGI client for API tests.
"""

import copy
from datetime import datetime, UTC
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from riskengine.api.main import app
from riskengine.config import Settings
from riskengine.engine import RiskEngine, build_engine
from riskengine.schemas import FeatureVector


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests (no infrastructure)")
    config.addinivalue_line("markers", "integration: engine and API tests")


# Every measurement at (or close to) its population baseline
NOMINAL_FEATURES = {
    "user": {
        "user_id": "user_nominal",
        "account_age": 365,
        "total_rides": 120,
        "cancelation_rate": 0.08,
        "rating_average": 4.7,
        "device_changes": 1,
        "location_consistency": 0.85,
    },
    "trip": {
        "trip_id": "trip_nominal",
        "distance": 15.5,
        "duration": 35,
        "price": 250,
        "time_of_day": 14,
        "day_of_week": 2,
        "is_weekend": False,
        "is_holiday": False,
        "route_deviation": 0.1,
        "speed_anomaly": 0.1,
    },
    "location": {
        "pickup_region": "manila",
        "dropoff_region": "manila",
        "pickup_risk_score": 0.2,
        "dropoff_risk_score": 0.2,
        "gps_accuracy": 5.2,
        "location_jumps": 0,
        "impossible_speeds": 0,
    },
    "payment": {
        "method": "card",
        "card_failures": 0,
        "unusual_amounts": False,
        "payment_velocity": 1.0,
        "chargeback_history": 0,
    },
    "device": {
        "fingerprint": "fp_nominal",
        "is_rooted": False,
        "is_emulator": False,
        "vpn_usage": False,
        "multiple_accounts": 1,
        "device_age": 180,
    },
    "network": {
        "ip_risk_score": 0.1,
        "is_vpn": False,
        "is_proxy": False,
        "is_tor": False,
        "network_changes": 0,
        "country_code": "PH",
    },
}

# Saturates every dimension
EXTREME_OVERRIDES = {
    "user": {"user_id": "user_extreme", "cancelation_rate": 0.6, "location_consistency": 0.1},
    "trip": {"time_of_day": 3, "is_weekend": True, "is_holiday": True,
             "route_deviation": 0.9, "speed_anomaly": 0.9},
    "location": {"pickup_risk_score": 0.9, "dropoff_risk_score": 0.9,
                 "location_jumps": 5, "impossible_speeds": 3},
    "payment": {"unusual_amounts": True, "payment_velocity": 15, "chargeback_history": 5},
    "device": {"is_emulator": True},
    "network": {"ip_risk_score": 0.95, "is_tor": True, "country_code": "US"},
}


def build_payload(overrides: dict | None = None) -> dict:
    """Nominal feature payload with per-section overrides applied."""
    payload = copy.deepcopy(NOMINAL_FEATURES)
    for section, values in (overrides or {}).items():
        payload[section].update(values)
    return payload


@pytest.fixture
def make_vector() -> Callable[..., FeatureVector]:
    """Factory: make_vector(location={"location_jumps": 5}) -> FeatureVector."""
    def _make(**overrides: dict) -> FeatureVector:
        return FeatureVector.model_validate(build_payload(overrides))
    return _make


@pytest.fixture
def nominal_vector(make_vector) -> FeatureVector:
    return make_vector()


@pytest.fixture
def gps_spoofing_vector(make_vector) -> FeatureVector:
    return make_vector(location={"location_jumps": 5, "impossible_speeds": 3})


@pytest.fixture
def device_farm_vector(make_vector) -> FeatureVector:
    return make_vector(device={"is_emulator": True, "multiple_accounts": 5})


@pytest.fixture
def extreme_vector(make_vector) -> FeatureVector:
    return make_vector(**EXTREME_OVERRIDES)


@pytest.fixture
def extreme_payload() -> dict:
    return build_payload(EXTREME_OVERRIDES)


@pytest.fixture
def nominal_payload() -> dict:
    return build_payload()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def engine_settings() -> Settings:
    return Settings(_env_file=None, app_env="development", uncertainty_seed=None)


@pytest.fixture
def engine(engine_settings) -> RiskEngine:
    """Fresh engine with default configuration."""
    return build_engine(engine_settings)


@pytest_asyncio.fixture
async def api_client() -> AsyncGenerator[AsyncClient, None]:
    """
    Get async HTTP client for API tests.

    Uses lifespan context manager to properly initialize app resources.
    """
    from riskengine.api.main import lifespan

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
