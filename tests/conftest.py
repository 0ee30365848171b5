"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample tree, stump and work-area data
- Engines and a fake clock for the calculation cache
- FastAPI test clients
"""
import math
import os

# Keep the per-client limit out of the way of the integration tests
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from typing import AsyncGenerator
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from estimator.main import app
from estimator.domain.factor_catalog import FactorCatalog
from estimator.domain.models import (
    GeoPoint,
    HazardFlags,
    Polygon,
    ServiceType,
    StumpMeasurement,
    TreeMeasurement,
)
from estimator.services.application.estimate_service import EstimateService
from estimator.services.domain.calculation_cache import CalculationCache
from estimator.services.domain.pricing_engine import PricingEngine
from estimator.services.domain.score_engine import ScoreEngine
from estimator.utils.geo_measurements import EARTH_RADIUS_M


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def oak() -> TreeMeasurement:
    """A 40 ft oak with 20 in DBH and a 15 ft canopy radius."""
    return TreeMeasurement(height=40, dbh=20, canopy_radius=15, species="Live Oak")


@pytest.fixture
def stump() -> StumpMeasurement:
    """A 24 in stump, one foot above grade, ground one foot deep."""
    return StumpMeasurement(diameter=24, height_above_grade=1, grind_depth=1)


@pytest.fixture
def risky_flags() -> HazardFlags:
    return HazardFlags(near_structure=True, power_lines=True, slope=False, access_difficulty=1.5)


def _square_ring(side_m: float, lat: float = 0.0, lon: float = 0.0) -> list[GeoPoint]:
    step = math.degrees(side_m / EARTH_RADIUS_M)
    return [
        GeoPoint(latitude=lat, longitude=lon),
        GeoPoint(latitude=lat, longitude=lon + step),
        GeoPoint(latitude=lat + step, longitude=lon + step),
        GeoPoint(latitude=lat + step, longitude=lon),
    ]


@pytest.fixture
def square_ring():
    """Factory for square rings whose sides are side_m under the area approximation."""
    return _square_ring


@pytest.fixture
def one_acre_ring() -> list[GeoPoint]:
    """Square ring of 4046.825 m² (43,560 sq ft)."""
    return _square_ring(math.sqrt(4046.825))


@pytest.fixture
def one_acre_clearing(one_acre_ring) -> Polygon:
    return Polygon(
        polygon_id="area-1",
        points=one_acre_ring,
        label="North lot",
        service_type=ServiceType.CLEARING,
    )


# ============================================================
# Engine Fixtures
# ============================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def score_engine() -> ScoreEngine:
    return ScoreEngine()


@pytest.fixture
def pricing_engine() -> PricingEngine:
    return PricingEngine()


@pytest.fixture
def catalog() -> FactorCatalog:
    return FactorCatalog()


@pytest.fixture
def estimate_service(score_engine, pricing_engine, catalog, clock) -> EstimateService:
    """Service with its own cache so tests never share results."""
    return EstimateService(
        score_engine=score_engine,
        pricing_engine=pricing_engine,
        catalog=catalog,
        cache=CalculationCache(ttl_seconds=60, clock=clock),
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture
async def async_test_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for FastAPI."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
