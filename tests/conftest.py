"""
Pytest configuration and shared fixtures.
"""
import asyncio
import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from footfall.analytics.exceptions import VisitStatisticsUnavailable
from footfall.analytics.models import AreaQuery, Venue
from footfall.core.config import reset_settings
from footfall.core.models import Base


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all app-related env vars to ensure clean state.
    """
    env_vars = [
        "DATABASE_URL",
        "FOURSQUARE_API_KEY",
        "FOURSQUARE_BASE_URL",
        "MAX_CONCURRENCY",
        "LOG_LEVEL",
        "MAX_RETRIES",
        "RETRY_BACKOFF_FACTOR",
        "ANALYSIS_CACHE_BACKEND",
        "ANALYSIS_CACHE_TTL_HOURS",
        "DIRECTORY_TIMEOUT_SECONDS",
        "STATS_TIMEOUT_SECONDS",
        "CACHE_TIMEOUT_SECONDS",
        "VENUE_SEARCH_LIMIT",
        "VENUE_CATEGORY_FILTER",
        "DEFAULT_RADIUS_METERS",
        "JITTER_SEED",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings singleton
    reset_settings()

    yield

    # Reset again after test
    reset_settings()


@pytest.fixture(scope="function")
def test_engine():
    """
    In-memory SQLite engine shared across threads.

    DatabaseAnalysisCache runs its sessions in worker threads, so every
    connection must see the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """
    Create an in-memory SQLite database session for testing.

    Fresh database for each test.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Domain Fixtures
# =============================================================================


BANGKOK = AreaQuery(latitude=13.7563, longitude=100.5018, radius_meters=1000)


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now=None):
        self.now = now or datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class FakeDirectory:
    """Venue directory returning a fixed list, or raising a fixed error."""

    def __init__(self, venues=None, error=None, delay=0.0):
        self.venues = list(venues or [])
        self.error = error
        self.delay = delay
        self.calls = []

    async def search_venues(self, latitude, longitude, radius_meters, categories=None,
                            limit=50, sort="POPULARITY"):
        self.calls.append({
            "latitude": latitude,
            "longitude": longitude,
            "radius_meters": radius_meters,
            "categories": categories,
            "limit": limit,
            "sort": sort,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.venues)


class FakeStatsProvider:
    """Statistics provider serving fixed stats per venue; unknown venues raise."""

    def __init__(self, stats_by_venue=None, error=None, delay=0.0):
        self.stats_by_venue = dict(stats_by_venue or {})
        self.error = error
        self.delay = delay
        self.calls = []

    async def get_venue_stats(self, venue_id):
        self.calls.append(venue_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if venue_id not in self.stats_by_venue:
            raise VisitStatisticsUnavailable(
                "Venue stats require premium Foursquare API access",
                venue_id=venue_id,
                source="foursquare",
                status_code=403,
            )
        return self.stats_by_venue[venue_id]


def make_venue(venue_id="v1", name=None, tags=("Restaurant",), price_tier=2,
               rating=4.0, popularity=60.0, verified=False):
    return Venue(
        id=venue_id,
        name=name or f"Venue {venue_id}",
        category_tags=frozenset(tags),
        price_tier=price_tier,
        rating=rating,
        popularity=popularity,
        verified=verified,
    )


@pytest.fixture
def bangkok_query():
    return BANGKOK


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_venue():
    return make_venue()


@pytest.fixture
def bangkok_restaurants():
    """Five restaurants around central Bangkok with attested popularity and rating."""
    popularity = [80, 60, 40, 90, 50]
    rating = [4.5, 4.0, 3.5, 4.8, 3.9]
    return [
        make_venue(f"rest-{i}", tags=("Thai Restaurant",), popularity=p, rating=r)
        for i, (p, r) in enumerate(zip(popularity, rating), start=1)
    ]
