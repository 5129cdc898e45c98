"""
Tests for the foot traffic HTTP routes.

The analyzer dependency is overridden with one backed by fakes.
"""
import pytest
from fastapi.testclient import TestClient

from footfall.analytics.cache import InMemoryAnalysisCache
from footfall.analytics.engine import FootTrafficAnalyzer
from footfall.analytics.jitter import Jitter
from footfall.analytics.visit_stats import VisitStatsResolver
from footfall.api.v1 import foot_traffic
from footfall.api.v1.foot_traffic import get_analyzer
from footfall.core.api_errors import RetryableError
from footfall.main import app
from conftest import FakeDirectory, make_venue


@pytest.fixture
def directory():
    return FakeDirectory([
        make_venue(f"v{i}", popularity=p, rating=r)
        for i, (p, r) in enumerate([(80, 4.5), (60, 4.0), (40, 3.5)])
    ])


@pytest.fixture
def client(clean_env, directory):
    analyzer = FootTrafficAnalyzer(
        directory=directory,
        resolver=VisitStatsResolver(jitter=Jitter(1)),
        cache=InMemoryAnalysisCache(),
    )
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.mark.unit
def test_post_area_analysis(client):
    response = client.post(
        "/api/v1/foot-traffic/area-analysis",
        json={"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 1000},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_venues"] == 3
    assert body["location"] == {"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 1000}
    assert 0 <= body["opportunity_score"] <= 100
    assert body["estimated_data"] is True
    assert body["cached"] is False
    assert len(body["hourly_distribution"]) == 24
    assert body["weekly_pattern"][0]["weekday"] == "monday"


@pytest.mark.unit
def test_get_area_analysis_uses_default_radius(client, directory):
    response = client.get(
        "/api/v1/foot-traffic/area-analysis",
        params={"latitude": 13.7563, "longitude": 100.5018},
    )

    assert response.status_code == 200
    assert response.json()["location"]["radius_meters"] == 1000
    assert directory.calls[0]["radius_meters"] == 1000


@pytest.mark.unit
def test_repeat_request_is_cached(client, directory):
    params = {"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 800}

    first = client.get("/api/v1/foot-traffic/area-analysis", params=params).json()
    second = client.get("/api/v1/foot-traffic/area-analysis", params=params).json()

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["cache_date"] is not None
    assert second["opportunity_score"] == first["opportunity_score"]
    assert len(directory.calls) == 1


@pytest.mark.unit
@pytest.mark.parametrize("payload", [
    {"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 0},
    {"latitude": 13.7563, "longitude": 100.5018, "radius_meters": -50},
    {"latitude": 95.0, "longitude": 100.5018, "radius_meters": 1000},
    {"latitude": 13.7563, "longitude": 190.0, "radius_meters": 1000},
    {"longitude": 100.5018, "radius_meters": 1000},
])
def test_invalid_query_rejected(client, payload):
    response = client.post("/api/v1/foot-traffic/area-analysis", json=payload)

    assert response.status_code == 422


@pytest.mark.unit
def test_directory_unavailable_is_503(client, directory):
    directory.error = RetryableError("Server error", source="foursquare", status_code=502)

    response = client.post(
        "/api/v1/foot-traffic/area-analysis",
        json={"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 1000},
    )

    assert response.status_code == 503
    assert "Retry-After" in response.headers
    assert "Venue directory unavailable" in response.json()["detail"]


@pytest.mark.unit
def test_empty_area(client, directory):
    directory.venues = []

    body = client.post(
        "/api/v1/foot-traffic/area-analysis",
        json={"latitude": 0.0, "longitude": 0.0, "radius_meters": 500},
    ).json()

    assert body["opportunity_score"] == 95
    assert body["confidence_level"] == 0.2
    assert len(body["insights"]) == 3


@pytest.mark.unit
def test_cache_stats(client):
    client.get(
        "/api/v1/foot-traffic/area-analysis",
        params={"latitude": 13.7563, "longitude": 100.5018},
    )

    stats = client.get("/api/v1/foot-traffic/cache/stats").json()

    assert stats["backend"] == "memory"
    assert stats["misses"] == 1
    assert stats["sets"] == 1


@pytest.mark.unit
def test_unconfigured_analyzer_is_503(clean_env, monkeypatch):
    monkeypatch.setattr(foot_traffic, "_analyzer", None)
    client = TestClient(app)

    response = client.post(
        "/api/v1/foot-traffic/area-analysis",
        json={"latitude": 13.7563, "longitude": 100.5018, "radius_meters": 1000},
    )

    assert response.status_code == 503
    assert "FOURSQUARE_API_KEY" in response.json()["detail"]


@pytest.mark.unit
def test_health(clean_env):
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["cache_backend"] == "memory"
    assert body["foursquare"] == "missing_api_key"
